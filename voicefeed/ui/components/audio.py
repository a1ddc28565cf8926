"""
Streamlit-backed audio output for the single-flight player.

Streamlit has no long-lived audio element to observe, so a handle is ready
as soon as it is played, and the active handle is drawn with
``st.audio(..., autoplay=True)`` under its post.
"""

import streamlit as st

from voicefeed.services.player import AudioHandle, AudioOutput, AudioPlayer
from voicefeed.ui.notify import user_action


class StreamlitAudioHandle(AudioHandle):
    """An audio widget waiting to be rendered."""

    def __init__(self, url: str) -> None:
        super().__init__()
        self.url = url
        self.paused = True
        self.released = False

    def play(self) -> None:
        if self.released:
            self._fire_error("audio handle was released")
            return
        self.paused = False
        self._fire_canplay()

    def pause(self) -> None:
        self.paused = True

    def release(self) -> None:
        self.released = True


class StreamlitAudioOutput(AudioOutput):
    def open(self, url: str) -> AudioHandle:
        return StreamlitAudioHandle(url)


def render_active_audio(player: AudioPlayer, post_id: str) -> None:
    """Draw the playing widget if *post_id* owns the player's handle."""
    handle = player.handle
    if not player.is_playing(post_id) or not isinstance(handle, StreamlitAudioHandle):
        return
    if not handle.paused:
        st.audio(handle.url, autoplay=True)


def play_button(player: AudioPlayer, run, post_id: str, audio_url: str, key: str) -> None:
    """Play/pause button for one post.

    A click reruns the script so no audio widget drawn earlier in the run
    keeps autoplaying next to the new one.
    """
    label = "⏸ Pause" if player.is_playing(post_id) else "▶ Play"
    if st.button(label, key=key):
        with user_action("Failed to play"):
            run(player.toggle(post_id, audio_url))
        st.rerun()
