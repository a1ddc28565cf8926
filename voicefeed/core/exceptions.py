"""
VoiceFeed exception hierarchy.

All application-specific exceptions inherit from VoiceFeedError, so the UI
can catch one type at the boundary nearest the user action and turn it into
a transient notification.
"""

from datetime import UTC, datetime


class VoiceFeedError(Exception):
    """Base exception for all VoiceFeed errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "VOICEFEED_ERROR",
    ) -> None:
        self.detail = detail
        self.code = code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


class BackendError(VoiceFeedError):
    """Raised when a call to the hosted backend fails.

    Categories: "connection", "timeout", "http", "network".
    ``backend_code`` carries the backend's own error code when one was
    returned (e.g. ``"23505"`` for a unique violation).
    """

    def __init__(
        self,
        detail: str = "Backend request failed",
        category: str = "http",
        status_code: int | None = None,
        backend_code: str | None = None,
    ) -> None:
        self.category = category
        self.status_code = status_code
        self.backend_code = backend_code
        super().__init__(detail=detail, code="BACKEND_ERROR")

    @property
    def is_conflict(self) -> bool:
        """True when the backend rejected a write on a uniqueness constraint."""
        return self.status_code == 409 or self.backend_code == "23505"


class AuthError(VoiceFeedError):
    """Raised on invalid credentials or any identity provider failure."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(detail=detail, code="AUTH_ERROR")


class UsernameTakenError(VoiceFeedError):
    """Raised when a sign-up username already belongs to another profile."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(
            detail=f"Username is already taken: {username}",
            code="USERNAME_TAKEN",
        )


class ProfileCreationError(VoiceFeedError):
    """Raised when the identity was created but its profile row was not."""

    def __init__(self, detail: str = "Failed to create profile. Please try again.") -> None:
        super().__init__(detail=detail, code="PROFILE_CREATION_ERROR")


class MicrophonePermissionError(VoiceFeedError):
    """Raised when microphone access is denied or unavailable."""

    def __init__(
        self, detail: str = "Could not access microphone. Please check permissions."
    ) -> None:
        super().__init__(detail=detail, code="MICROPHONE_PERMISSION")


class UploadError(VoiceFeedError):
    """Raised when a storage upload or a publish-time insert fails."""

    def __init__(self, detail: str = "Upload failed", code: str = "UPLOAD_ERROR") -> None:
        super().__init__(detail=detail, code=code)


class PublishError(UploadError):
    """Raised when any step of the publish pipeline fails."""

    def __init__(self, detail: str = "Failed to publish recording. Please try again.") -> None:
        super().__init__(detail=detail, code="PUBLISH_ERROR")


class FetchError(VoiceFeedError):
    """Raised when a read from the backend fails."""

    def __init__(self, detail: str = "Failed to load data") -> None:
        super().__init__(detail=detail, code="FETCH_ERROR")


class ValidationError(VoiceFeedError):
    """Raised when user input is rejected before any backend call."""

    def __init__(self, detail: str = "Invalid input") -> None:
        super().__init__(detail=detail, code="VALIDATION_ERROR")


class NotAuthorizedError(VoiceFeedError):
    """Raised when the current user may not perform an action."""

    def __init__(self, detail: str = "You are not allowed to do that") -> None:
        super().__init__(detail=detail, code="NOT_AUTHORIZED")
