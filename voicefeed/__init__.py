"""VoiceFeed: voice-note sharing client."""

__version__ = "0.1.0"
