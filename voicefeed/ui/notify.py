"""Transient notifications and the error boundary around user actions."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import streamlit as st

from voicefeed.core.exceptions import VoiceFeedError

logger = logging.getLogger(__name__)


def notify_success(message: str) -> None:
    st.toast(message, icon="✅")


def notify_error(message: str) -> None:
    st.toast(message, icon="⚠️")


@contextmanager
def user_action(failure: str | None = None) -> Iterator[None]:
    """Turn any VoiceFeedError raised inside the block into a toast.

    Args:
        failure: Prefix shown before the error detail, e.g. "Failed to like post".
    """
    try:
        yield
    except VoiceFeedError as exc:
        logger.warning("%s: %s (%s)", failure or "Action failed", exc.detail, exc.code)
        notify_error(f"{failure}: {exc.detail}" if failure else exc.detail)
