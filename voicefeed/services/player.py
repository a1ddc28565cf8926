"""Single-flight audio player.

At most one audio handle exists at a time. Starting another post pauses and
releases the current handle before the new source is even resolved.

States: idle -> loading -> playing -> idle

- toggling the post that is loading/playing pauses it (-> idle)
- toggling another post switches targets (playing(a) -> loading(b) -> playing(b))
- "canplay" moves loading -> playing, "error" aborts to idle with a
  notification, "ended" moves playing -> idle
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from voicefeed.core.exceptions import VoiceFeedError
from voicefeed.core.models import PlayerState

logger = logging.getLogger(__name__)


class AudioHandle(ABC):
    """One playable audio element.

    The player assigns the three event hooks before calling ``play()``;
    implementations call them when the underlying element reports the event.
    """

    def __init__(self) -> None:
        self.on_canplay: Callable[[], None] | None = None
        self.on_error: Callable[[str], None] | None = None
        self.on_ended: Callable[[], None] | None = None

    def _fire_canplay(self) -> None:
        if self.on_canplay:
            self.on_canplay()

    def _fire_error(self, message: str) -> None:
        if self.on_error:
            self.on_error(message)

    def _fire_ended(self) -> None:
        if self.on_ended:
            self.on_ended()

    @abstractmethod
    def play(self) -> None:
        """Start loading/playing the source."""

    @abstractmethod
    def pause(self) -> None:
        """Pause playback."""

    @abstractmethod
    def release(self) -> None:
        """Free the underlying element; the handle is unusable afterwards."""


class AudioOutput(ABC):
    """Factory for audio handles (browser element, Streamlit widget, test fake)."""

    @abstractmethod
    def open(self, url: str) -> AudioHandle:
        """Create a handle for *url* without starting playback."""


class AudioPlayer:
    """Process-wide owner of the single playing audio handle.

    Args:
        output: Creates handles for resolved URLs.
        resolve_url: Async callable turning a storage key into a playable URL.
        notify: Called with a user-facing message when playback fails.
    """

    def __init__(
        self,
        output: AudioOutput,
        resolve_url: Callable[[str], Awaitable[str]],
        notify: Callable[[str], None] | None = None,
    ) -> None:
        self._output = output
        self._resolve_url = resolve_url
        self._notify = notify
        self._state = PlayerState.idle
        self._post_id: str | None = None
        self._handle: AudioHandle | None = None
        # Bumped on every target change; stale resolutions and events compare against it.
        self._generation = 0

    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def current_post_id(self) -> str | None:
        return self._post_id

    @property
    def handle(self) -> AudioHandle | None:
        return self._handle

    def is_playing(self, post_id: str) -> bool:
        return self._post_id == post_id and self._state != PlayerState.idle

    async def toggle(self, post_id: str, audio_key: str) -> None:
        """Pause *post_id* if it is active, otherwise switch playback to it."""
        if self.is_playing(post_id):
            logger.debug("Pausing post %s", post_id)
            self.stop()
            return

        self._release_current()
        self._generation += 1
        generation = self._generation
        self._state = PlayerState.loading
        self._post_id = post_id

        try:
            url = await self._resolve_url(audio_key)
        except VoiceFeedError as exc:
            if generation == self._generation:
                self._fail(f"Could not load audio: {exc.detail}")
            return

        if generation != self._generation:
            logger.debug("Dropping stale URL resolution for post %s", post_id)
            return

        handle = self._output.open(url)
        handle.on_canplay = lambda: self._on_canplay(generation)
        handle.on_error = lambda message: self._on_error(generation, message)
        handle.on_ended = lambda: self._on_ended(generation)
        self._handle = handle
        handle.play()

    def stop(self) -> None:
        """Pause and release the current handle; return to idle."""
        self._generation += 1
        self._release_current()
        self._state = PlayerState.idle
        self._post_id = None

    def _release_current(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        handle.on_canplay = handle.on_error = handle.on_ended = None
        handle.pause()
        handle.release()

    def _fail(self, message: str) -> None:
        logger.warning("Playback failed for post %s: %s", self._post_id, message)
        self.stop()
        if self._notify:
            self._notify(message)

    def _on_canplay(self, generation: int) -> None:
        if generation == self._generation and self._state == PlayerState.loading:
            self._state = PlayerState.playing

    def _on_error(self, generation: int, message: str) -> None:
        if generation == self._generation:
            self._fail(f"Could not play audio: {message}")

    def _on_ended(self, generation: int) -> None:
        if generation == self._generation:
            self.stop()
