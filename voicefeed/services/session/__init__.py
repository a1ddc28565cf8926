"""
Session module - auth session state and the local storage mirror.
"""

from .store import SessionStore

__all__ = ["SessionStore"]
