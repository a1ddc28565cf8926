"""Logging setup shared by the Streamlit entry point and scripts."""

import logging

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger.

    Safe to call on every Streamlit rerun; the handler is only added once.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not any(getattr(h, "_voicefeed", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._voicefeed = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
