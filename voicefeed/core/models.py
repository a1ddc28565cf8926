"""
Pydantic v2 models shared by the services and the UI.

Rows coming back from the backend are validated into these models by the
service layer; the UI only ever sees the view models (``VoicePost``,
``Comment``, ``Profile``).
"""

import time
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class User(BaseModel):
    """Identity issued by the auth provider."""

    id: str
    email: str | None = None
    user_metadata: dict = Field(default_factory=dict)

    @property
    def avatar_url(self) -> str | None:
        return self.user_metadata.get("avatar_url")


class Session(BaseModel):
    """Authenticated session handle for the current user."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    expires_at: int | None = None
    user: User

    def is_expired(self, now: float | None = None, margin: int = 10) -> bool:
        """True when the access token expires within *margin* seconds."""
        if self.expires_at is None:
            return False
        current = time.time() if now is None else now
        return self.expires_at - margin <= current


class AuthEvent(StrEnum):
    """Auth state changes pushed by the provider."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


# ---------------------------------------------------------------------------
# Profiles & posts
# ---------------------------------------------------------------------------


class Profile(BaseModel):
    """One row per user in ``profiles``."""

    id: str
    username: str
    avatar_url: str | None = None
    bio: str | None = None
    website: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Author(BaseModel):
    """Author summary embedded in posts and comments."""

    username: str = "unknown"
    avatar_url: str | None = None

    @property
    def initial(self) -> str:
        return self.username[:1].upper() or "?"


class VoicePost(BaseModel):
    """Feed view model: a ``voice_posts`` row plus derived counts and membership."""

    id: str
    user_id: str
    title: str
    description: str | None = None
    image_url: str | None = None
    audio_url: str
    created_at: datetime
    author: Author = Field(default_factory=Author)
    like_count: int = 0
    comment_count: int = 0
    liked: bool = False
    saved: bool = False


class Comment(BaseModel):
    """A ``post_comments`` row with its author."""

    id: str
    post_id: str
    user_id: str
    content: str
    created_at: datetime
    author: Author = Field(default_factory=Author)


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------

_AUDIO_EXTENSIONS = {
    "audio/webm": ".webm",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/ogg": ".ogg",
    "audio/mpeg": ".mp3",
    "audio/mp4": ".m4a",
}


class AudioBlob(BaseModel):
    """A finished recording assembled from the recorder's chunks."""

    data: bytes
    mime_type: str = "audio/webm"

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return _AUDIO_EXTENSIONS.get(self.mime_type, ".webm")


class ImageFile(BaseModel):
    """An image picked by the user (post cover or avatar)."""

    filename: str
    data: bytes
    content_type: str = "image/jpeg"

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        _, dot, ext = self.filename.rpartition(".")
        return f".{ext.lower()}" if dot and ext else ""


class PublishDraft(BaseModel):
    """Title, description and optional cover image entered in the create modal."""

    title: str = ""
    description: str = ""
    image: ImageFile | None = None


# ---------------------------------------------------------------------------
# State machines
# ---------------------------------------------------------------------------


class PlayerState(StrEnum):
    """States of the single-flight audio player."""

    idle = "idle"
    loading = "loading"
    playing = "playing"


class RecorderState(StrEnum):
    """States of the microphone recorder."""

    idle = "idle"
    recording = "recording"
    uploading = "uploading"
