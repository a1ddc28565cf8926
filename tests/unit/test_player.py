"""Unit tests for the single-flight AudioPlayer.

Uses a recording fake AudioOutput so the order of pause/release/open/play
calls across handles can be asserted.
"""

import asyncio

import pytest

from voicefeed.core.exceptions import BackendError
from voicefeed.core.models import PlayerState
from voicefeed.services.player import AudioHandle, AudioOutput, AudioPlayer


class FakeHandle(AudioHandle):
    def __init__(self, url, log):
        super().__init__()
        self.url = url
        self._log = log

    def play(self):
        self._log.append(("play", self.url))

    def pause(self):
        self._log.append(("pause", self.url))

    def release(self):
        self._log.append(("release", self.url))


class FakeOutput(AudioOutput):
    def __init__(self):
        self.log = []
        self.handles = []

    def open(self, url):
        self.log.append(("open", url))
        handle = FakeHandle(url, self.log)
        self.handles.append(handle)
        return handle


async def _resolve(key):
    return f"https://cdn.test/{key}"


@pytest.fixture
def output():
    return FakeOutput()


@pytest.fixture
def notices():
    return []


@pytest.fixture
def player(output, notices):
    """Player with an instant resolver and a list collecting notifications."""
    return AudioPlayer(output, _resolve, notify=notices.append)


class TestToggle:
    """Verify the idle/loading/playing transitions."""

    @pytest.mark.asyncio
    async def test_play_goes_through_loading(self, player, output):
        """A new target is loading until the handle reports canplay."""
        await player.toggle("a", "a.webm")
        assert player.state == PlayerState.loading
        assert player.current_post_id == "a"

        output.handles[0]._fire_canplay()
        assert player.state == PlayerState.playing
        assert player.is_playing("a")

    @pytest.mark.asyncio
    async def test_toggle_same_post_pauses(self, player, output):
        """Toggling the active post pauses and releases it."""
        await player.toggle("a", "a.webm")
        output.handles[0]._fire_canplay()

        await player.toggle("a", "a.webm")

        assert player.state == PlayerState.idle
        assert player.current_post_id is None
        assert output.log[-2:] == [
            ("pause", "https://cdn.test/a.webm"),
            ("release", "https://cdn.test/a.webm"),
        ]

    @pytest.mark.asyncio
    async def test_switching_releases_previous_first(self, player, output):
        """A is paused and released before B is opened or played."""
        await player.toggle("a", "a.webm")
        output.handles[0]._fire_canplay()

        await player.toggle("b", "b.webm")

        a_url, b_url = "https://cdn.test/a.webm", "https://cdn.test/b.webm"
        assert output.log == [
            ("open", a_url),
            ("play", a_url),
            ("pause", a_url),
            ("release", a_url),
            ("open", b_url),
            ("play", b_url),
        ]
        assert player.current_post_id == "b"
        assert player.state == PlayerState.loading

    @pytest.mark.asyncio
    async def test_at_most_one_handle(self, player, output):
        """Only the newest handle is held by the player."""
        for post in ("a", "b", "c"):
            await player.toggle(post, f"{post}.webm")
        assert player.handle is output.handles[-1]
        assert [h.on_canplay for h in output.handles[:-1]] == [None, None]


class TestEvents:
    """Verify handle events and failures."""

    @pytest.mark.asyncio
    async def test_ended_returns_to_idle(self, player, output):
        """Playback ending releases the handle."""
        await player.toggle("a", "a.webm")
        output.handles[0]._fire_canplay()
        output.handles[0]._fire_ended()
        assert player.state == PlayerState.idle
        assert player.handle is None

    @pytest.mark.asyncio
    async def test_error_notifies_and_idles(self, player, output, notices):
        """A handle error aborts to idle with a user-facing message."""
        await player.toggle("a", "a.webm")
        output.handles[0]._fire_error("decode failed")
        assert player.state == PlayerState.idle
        assert notices == ["Could not play audio: decode failed"]

    @pytest.mark.asyncio
    async def test_resolution_failure_notifies(self, output, notices):
        """A URL that cannot be resolved never opens a handle."""

        async def missing(key):
            raise BackendError("Object not found", status_code=404)

        player = AudioPlayer(output, missing, notify=notices.append)
        await player.toggle("a", "a.webm")

        assert player.state == PlayerState.idle
        assert output.handles == []
        assert notices == ["Could not load audio: Object not found"]

    @pytest.mark.asyncio
    async def test_stale_resolution_dropped(self, output):
        """A slow resolution finishing after a newer toggle is discarded."""
        release_a = asyncio.Event()

        async def resolve(key):
            if key == "a.webm":
                await release_a.wait()
            return f"https://cdn.test/{key}"

        player = AudioPlayer(output, resolve)
        task_a = asyncio.create_task(player.toggle("a", "a.webm"))
        await asyncio.sleep(0)
        await player.toggle("b", "b.webm")
        release_a.set()
        await task_a

        assert [h.url for h in output.handles] == ["https://cdn.test/b.webm"]
        assert player.current_post_id == "b"

    @pytest.mark.asyncio
    async def test_events_from_released_handle_ignored(self, player, output):
        """Late events on a replaced handle cannot change state."""
        await player.toggle("a", "a.webm")
        old = output.handles[0]
        captured = old.on_ended
        await player.toggle("b", "b.webm")
        output.handles[1]._fire_canplay()

        captured()

        assert player.state == PlayerState.playing
        assert player.current_post_id == "b"
