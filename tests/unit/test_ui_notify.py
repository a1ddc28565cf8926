"""Unit tests for the UI error boundary and the Streamlit audio handle."""

import asyncio
from unittest.mock import patch

import pytest

from voicefeed.core.exceptions import FetchError
from voicefeed.core.models import PlayerState
from voicefeed.services.player import AudioPlayer
from voicefeed.ui.components.audio import (
    StreamlitAudioHandle,
    StreamlitAudioOutput,
    play_button,
)
from voicefeed.ui.notify import user_action


class TestUserAction:
    """Verify VoiceFeedError becomes a toast and other errors propagate."""

    def test_domain_error_toasted(self):
        with patch("voicefeed.ui.notify.st.toast") as toast:
            with user_action("Failed to load posts"):
                raise FetchError("backend down")
        toast.assert_called_once()
        assert toast.call_args.args[0] == "Failed to load posts: backend down"

    def test_other_errors_propagate(self):
        with patch("voicefeed.ui.notify.st.toast") as toast:
            with pytest.raises(KeyError):
                with user_action("Failed"):
                    raise KeyError("bug")
        toast.assert_not_called()


class TestStreamlitAudio:
    """Verify the Streamlit handle drives the player to playing."""

    @pytest.mark.asyncio
    async def test_play_reports_canplay(self):
        async def resolve(key):
            return f"https://cdn.test/{key}"

        player = AudioPlayer(StreamlitAudioOutput(), resolve)
        await player.toggle("a", "a.webm")

        assert player.state == PlayerState.playing
        assert isinstance(player.handle, StreamlitAudioHandle)
        assert player.handle.paused is False

    def test_released_handle_errors_on_play(self):
        handle = StreamlitAudioHandle("https://cdn.test/a.webm")
        errors = []
        handle.on_error = errors.append
        handle.release()
        handle.play()
        assert errors == ["audio handle was released"]


class TestPlayButton:
    """Verify a play click switches the handle and reruns the script."""

    @pytest.fixture
    def loop(self):
        loop = asyncio.new_event_loop()
        yield loop
        loop.close()

    @pytest.fixture
    def player(self):
        async def resolve(key):
            return f"https://cdn.test/{key}"

        return AudioPlayer(StreamlitAudioOutput(), resolve)

    def test_click_switches_and_reruns(self, loop, player):
        """Playing B stops A before the rerun draws B's widget."""
        loop.run_until_complete(player.toggle("a", "a.webm"))
        first = player.handle

        with patch("voicefeed.ui.components.audio.st") as st:
            st.button.return_value = True
            play_button(player, loop.run_until_complete, "b", "b.webm", key="play_b")

        assert st.button.call_args.args[0] == "▶ Play"
        st.rerun.assert_called_once()
        assert first.paused and first.released
        assert player.is_playing("b")
        assert not player.is_playing("a")

    def test_pause_label_and_no_click(self, loop, player):
        loop.run_until_complete(player.toggle("a", "a.webm"))

        with patch("voicefeed.ui.components.audio.st") as st:
            st.button.return_value = False
            play_button(player, loop.run_until_complete, "a", "a.webm", key="play_a")

        assert st.button.call_args.args[0] == "⏸ Pause"
        st.rerun.assert_not_called()
        assert player.is_playing("a")
