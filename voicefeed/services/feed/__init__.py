"""
Feed module - posts, comments, likes and saves.
"""

from .repository import FeedRepository
from .state import FeedState, Patch

__all__ = ["FeedRepository", "FeedState", "Patch"]
