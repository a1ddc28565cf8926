"""UI utility functions."""

from datetime import UTC, datetime

from voicefeed.core.models import ImageFile

_UNITS = (
    ("year", 365 * 24 * 3600),
    ("month", 30 * 24 * 3600),
    ("day", 24 * 3600),
    ("hour", 3600),
    ("minute", 60),
)


def time_ago(moment: datetime, now: datetime | None = None) -> str:
    """Human distance from *moment* to now, e.g. "3 hours ago"."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    now = now or datetime.now(UTC)
    seconds = int((now - moment).total_seconds())
    if seconds < 60:
        return "just now"
    for name, size in _UNITS:
        if seconds >= size:
            count = seconds // size
            return f"{count} {name}{'s' if count != 1 else ''} ago"
    return "just now"


def image_from_upload(uploaded) -> ImageFile | None:  # noqa: ANN001
    """Convert a Streamlit ``UploadedFile`` into an ImageFile (None passes through)."""
    if uploaded is None:
        return None
    return ImageFile(
        filename=uploaded.name,
        data=uploaded.getvalue(),
        content_type=uploaded.type or "image/jpeg",
    )
