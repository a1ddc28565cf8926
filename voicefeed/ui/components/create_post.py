"""
Create-post dialog: title, description, cover image and voice recording.

UX flow: idle -> uploading -> closed
While a clip is being published the inputs are disabled. A successful
publish closes the dialog; a failed one unlocks the inputs again.
"""

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any

import streamlit as st

from voicefeed.core.config import get_settings
from voicefeed.core.exceptions import VoiceFeedError
from voicefeed.core.models import AudioBlob, PublishDraft, VoicePost
from voicefeed.services.recorder import BufferedAudioSource, Recorder
from voicefeed.ui.context import AppContext, get_context
from voicefeed.ui.notify import notify_error, notify_success
from voicefeed.ui.utils import image_from_upload

logger = logging.getLogger(__name__)

_PENDING_KEY = "_pending_publish"


def _publish(ctx: AppContext, draft: PublishDraft, audio_bytes: bytes, mime_type: str) -> bool:
    """Run the captured clip through the recorder and publish pipeline."""
    user_id = ctx.user_id

    async def on_published(_post: VoicePost) -> None:
        await ctx.feed_state.refresh(user_id)

    async def on_complete(blob: AudioBlob) -> None:
        await ctx.pipeline.publish(draft, blob, user_id, on_published=on_published)

    source = BufferedAudioSource(
        audio_bytes,
        mime_type=mime_type,
        chunk_size=get_settings().audio_chunk_size,
    )
    recorder = Recorder(source, on_complete)
    try:
        ctx.run(recorder.start())
        ctx.run(recorder.stop())
    except VoiceFeedError as exc:
        logger.warning("Publish failed: %s", exc.detail)
        notify_error(exc.detail)
        return False
    return True


@dataclass
class PendingPublish:
    """A publish requested in one script run and executed in the next."""

    draft: PublishDraft
    audio_bytes: bytes
    mime_type: str


def queue_publish(state: MutableMapping[str, Any], pending: PendingPublish) -> None:
    state[_PENDING_KEY] = pending


def inputs_locked(state: MutableMapping[str, Any]) -> bool:
    """True from the Publish click until the queued publish has finished."""
    return _PENDING_KEY in state


def run_pending(ctx: AppContext, state: MutableMapping[str, Any]) -> bool | None:
    """Publish the queued draft, if any, and unlock the inputs.

    Returns None when nothing was queued, else whether the publish succeeded.
    """
    pending = state.get(_PENDING_KEY)
    if pending is None:
        return None
    try:
        return _publish(ctx, pending.draft, pending.audio_bytes, pending.mime_type)
    finally:
        state.pop(_PENDING_KEY, None)


@st.dialog("Create New Post")
def create_post_dialog() -> None:
    """Render the create modal; closes itself after a successful publish.

    Publish takes two runs of the dialog: the click queues the draft and
    reruns it, and the next run renders every input disabled before the
    upload starts.
    """
    ctx = get_context()
    locked = inputs_locked(st.session_state)

    title = st.text_input("Title", placeholder="Enter post title", disabled=locked)
    description = st.text_area(
        "Description",
        placeholder="Enter post description",
        height=90,
        disabled=locked,
    )
    image = st.file_uploader(
        "Cover Image (Optional)",
        type=["png", "jpg", "jpeg", "gif", "webp"],
        disabled=locked,
    )
    audio = st.audio_input("Record Voice", disabled=locked)

    if st.button("Publish", type="primary", disabled=locked or audio is None):
        draft = PublishDraft(
            title=title,
            description=description,
            image=image_from_upload(image),
        )
        queue_publish(
            st.session_state,
            PendingPublish(draft, audio.getvalue(), audio.type or "audio/wav"),
        )
        st.rerun(scope="fragment")

    if locked:
        with st.spinner("Uploading..."):
            ok = run_pending(ctx, st.session_state)
        if ok:
            notify_success("Recording published")
            st.rerun()
        st.rerun(scope="fragment")
