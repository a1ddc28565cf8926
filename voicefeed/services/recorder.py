"""Microphone recorder.

States: idle -> recording -> uploading -> idle

Incoming chunks are kept in arrival order and concatenated into one
``AudioBlob`` on stop. Once stopped, the recorder hands the blob to its
completion callback (the publish pipeline); that hand-off cannot be undone,
so a caller keeps its inputs locked while ``inputs_locked`` is true.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from voicefeed.core.exceptions import MicrophonePermissionError
from voicefeed.core.models import AudioBlob, RecorderState

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[bytes], None]


class AudioSource(ABC):
    """A capture device producing an ordered sequence of binary chunks."""

    mime_type: str = "audio/webm"

    @abstractmethod
    async def start(self, on_chunk: ChunkCallback) -> None:
        """Open the device and begin delivering chunks to *on_chunk*.

        Raises:
            PermissionError: If access to the microphone is denied.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Deliver any remaining chunks, then release the device."""


class BufferedAudioSource(AudioSource):
    """Replays an already-captured clip as fixed-size chunks.

    Streamlit's ``st.audio_input`` hands over the whole clip at once; this
    source feeds it through the recorder like a live device would.

    Args:
        audio_bytes: The captured clip, or None if nothing was captured.
        mime_type: MIME type of the clip.
        chunk_size: Bytes per delivered chunk.
    """

    def __init__(
        self,
        audio_bytes: bytes | None,
        mime_type: str = "audio/wav",
        chunk_size: int = 32000,
    ) -> None:
        self._audio = audio_bytes
        self.mime_type = mime_type
        self._chunk_size = chunk_size
        self._on_chunk: ChunkCallback | None = None

    async def start(self, on_chunk: ChunkCallback) -> None:
        if self._audio is None:
            raise PermissionError("No microphone input available")
        self._on_chunk = on_chunk

    async def stop(self) -> None:
        if self._on_chunk is None or self._audio is None:
            return
        offset = 0
        while offset < len(self._audio):
            self._on_chunk(self._audio[offset : offset + self._chunk_size])
            offset += self._chunk_size
        self._on_chunk = None
        self._audio = None


class Recorder:
    """Captures one clip and hands it to *on_complete*.

    Args:
        source: Capture device.
        on_complete: Async callback receiving the finished clip, typically
            the publish pipeline.
    """

    def __init__(
        self,
        source: AudioSource,
        on_complete: Callable[[AudioBlob], Awaitable[None]],
    ) -> None:
        self._source = source
        self._on_complete = on_complete
        self._state = RecorderState.idle
        self._chunks: list[bytes] = []

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def inputs_locked(self) -> bool:
        """True while title/description edits and closing must be blocked."""
        return self._state != RecorderState.idle

    @property
    def buffered_bytes(self) -> int:
        return sum(len(c) for c in self._chunks)

    def _append(self, chunk: bytes) -> None:
        if self._state == RecorderState.recording and chunk:
            self._chunks.append(chunk)

    async def start(self) -> None:
        """Request the microphone and start recording.

        Raises:
            MicrophonePermissionError: Access denied; state stays idle.
        """
        if self._state != RecorderState.idle:
            logger.debug("start() ignored in state %s", self._state)
            return
        self._chunks = []
        self._state = RecorderState.recording
        try:
            await self._source.start(self._append)
        except PermissionError as exc:
            self._state = RecorderState.idle
            logger.warning("Microphone access denied: %s", exc)
            raise MicrophonePermissionError() from exc

    async def stop(self) -> AudioBlob | None:
        """Finish recording, release the device and run the completion callback.

        Returns:
            The assembled clip, or None if the recorder was not recording.
        """
        if self._state != RecorderState.recording:
            return None
        await self._source.stop()
        blob = AudioBlob(data=b"".join(self._chunks), mime_type=self._source.mime_type)
        self._chunks = []
        self._state = RecorderState.uploading
        logger.info("Recorded %d bytes (%s)", blob.size, blob.mime_type)
        try:
            await self._on_complete(blob)
        finally:
            self._state = RecorderState.idle
        return blob
