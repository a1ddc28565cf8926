"""
Client configuration: backend project, local persistence, buckets and limits.

Values come from the environment or a local .env file; the defaults target a
locally running backend. Call ``get_settings()`` for the shared instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """VoiceFeed settings loaded from environment / .env file.

    Every field can be set through an environment variable of the same name
    (any case), e.g. ``SUPABASE_URL``.

    Attributes:
        supabase_url: Base URL of the hosted backend project.
        supabase_anon_key: Public anon key sent with every backend request.
        local_storage_dir: Folder holding one local storage file per browser session.
        session_storage_key: Local storage key holding the mirrored session.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Backend project ---
    supabase_url: str = "http://localhost:54321"
    supabase_anon_key: str = ""
    http_timeout: float = 30.0

    # --- Persisted client state ---
    local_storage_dir: str = "data/local_storage"
    session_storage_key: str = "supabase.auth.token"  # Mirror written by SessionStore
    auth_storage_key: str = "sb-auth-token"  # Auth provider's own persistence

    # --- Storage buckets ---
    avatars_bucket: str = "avatars"
    post_images_bucket: str = "post-images"
    voice_recordings_bucket: str = "voice-recordings"
    max_image_bytes: int = 2 * 1024 * 1024  # 2 MB, avatars and post covers

    # --- Recorder ---
    audio_chunk_size: int = 32000  # Bytes per chunk fed from a captured clip

    # --- Application ---
    log_level: str = "INFO"  # Python logging level


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, reading the environment on first call."""
    return Settings()
