"""
Per-browser-session service wiring for the Streamlit UI.

Streamlit scripts run synchronously, while the services are async. Each
browser session gets its own event loop (kept in ``st.session_state``) and
runs service coroutines on it with ``AppContext.run``. Session state is
per-user, so nothing here goes through ``st.cache_resource``. Local storage
is per browser session too: each one gets a random client id and its own
file under ``Settings.local_storage_dir``.
"""

import asyncio
import logging
import uuid
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
import streamlit as st

from voicefeed.core.config import Settings, get_settings
from voicefeed.core.lifecycle import ViewScope
from voicefeed.core.local_storage import LocalStorage
from voicefeed.services.backend import Backend, create_backend
from voicefeed.services.feed import FeedRepository, FeedState
from voicefeed.services.player import AudioPlayer
from voicefeed.services.publish import PublishPipeline
from voicefeed.services.session import SessionStore
from voicefeed.ui.components.audio import StreamlitAudioOutput
from voicefeed.ui.notify import notify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONTEXT_KEY = "_voicefeed_context"
_CLIENT_ID_KEY = "_voicefeed_client_id"


@dataclass
class AppContext:
    """Everything a page needs, owned by one browser session."""

    loop: asyncio.AbstractEventLoop
    backend: Backend
    session: SessionStore
    feed: FeedRepository
    feed_state: FeedState
    player: AudioPlayer
    pipeline: PublishPipeline

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run a service coroutine to completion on this session's loop."""
        return self.loop.run_until_complete(coro)

    @property
    def user_id(self) -> str | None:
        return self.session.user_id


def build_context(
    settings: Settings,
    client_id: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AppContext:
    """Wire the services for one browser session and resolve its initial session.

    Args:
        settings: Shared configuration.
        client_id: Identifies the browser session; selects its local storage file.
        transport: Optional httpx transport override (tests).
    """
    local_storage = LocalStorage.for_client(settings.local_storage_dir, client_id)
    loop = asyncio.new_event_loop()
    backend = create_backend(settings, local_storage=local_storage, transport=transport)
    feed = FeedRepository(backend.tables, backend.storage, settings)
    ctx = AppContext(
        loop=loop,
        backend=backend,
        session=SessionStore(
            backend.auth,
            backend.tables,
            local_storage,
            storage_key=settings.session_storage_key,
        ),
        feed=feed,
        feed_state=FeedState(feed, ViewScope("feed")),
        player=AudioPlayer(StreamlitAudioOutput(), feed.resolve_audio_url, notify=notify_error),
        pipeline=PublishPipeline(backend.tables, backend.storage, settings),
    )
    ctx.run(ctx.session.initialize())
    logger.info("Initialized app context for client %s", client_id)
    return ctx


def get_context() -> AppContext:
    """Return this browser session's AppContext, creating it on first use."""
    if _CONTEXT_KEY not in st.session_state:
        client_id = st.session_state.setdefault(_CLIENT_ID_KEY, uuid.uuid4().hex)
        st.session_state[_CONTEXT_KEY] = build_context(get_settings(), client_id)
    return st.session_state[_CONTEXT_KEY]
