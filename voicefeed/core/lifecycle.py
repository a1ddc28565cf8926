"""Liveness tracking for views that outlive their async calls.

Network calls are never cancelled when a view goes away. A ``ViewScope``
lets the late completion be dropped instead of applied to dead state.
"""

import logging
from collections.abc import Awaitable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ViewScope:
    """Liveness flag owned by one view (page, modal, card)."""

    def __init__(self, name: str = "view") -> None:
        self.name = name
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def close(self) -> None:
        """Mark the view as torn down."""
        self._alive = False

    async def guard(self, awaitable: Awaitable[T]) -> T | None:
        """Await *awaitable* and return its result only if the view is still alive."""
        result = await awaitable
        if not self._alive:
            logger.debug("Discarding result for closed scope %s", self.name)
            return None
        return result
