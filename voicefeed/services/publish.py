"""
Publish pipeline: optional cover image, audio upload, then the post row.

Usage::

    pipeline = PublishPipeline(backend.tables, backend.storage)
    post = await pipeline.publish(draft, blob, user_id, on_published=refresh)

The row is inserted last so a post never references a missing object. When
a later step fails, objects already uploaded in this attempt are deleted
best-effort; anything that survives is an orphan with no referencing row.
"""

import logging
from collections.abc import Awaitable, Callable

from voicefeed.core.config import Settings, get_settings
from voicefeed.core.exceptions import AuthError, BackendError, PublishError, ValidationError
from voicefeed.core.models import AudioBlob, PublishDraft, VoicePost
from voicefeed.services.backend.rest import TableAPI
from voicefeed.services.backend.storage import StorageAPI
from voicefeed.services.feed.repository import post_from_row, storage_key

logger = logging.getLogger(__name__)


class PublishPipeline:
    """Sequences the uploads and insert that make up one "publish".

    Args:
        tables: Table API (profile check, ``voice_posts`` insert).
        storage: Storage API (image and audio uploads).
        settings: Bucket names and image size limit.
    """

    def __init__(
        self,
        tables: TableAPI,
        storage: StorageAPI,
        settings: Settings | None = None,
    ) -> None:
        self._tables = tables
        self._storage = storage
        self._settings = settings or get_settings()

    def validate(self, draft: PublishDraft, audio: AudioBlob, user_id: str | None) -> None:
        """Reject a draft before anything is written.

        Raises:
            AuthError: Nobody is signed in.
            ValidationError: Empty title, oversized image or empty recording.
        """
        if not user_id:
            raise AuthError("You must be logged in to upload recordings")
        if not draft.title.strip():
            raise ValidationError("Please enter a title for your recording")
        if draft.image is not None and draft.image.size > self._settings.max_image_bytes:
            raise ValidationError("Image size should be less than 2MB")
        if audio.size == 0:
            raise ValidationError("The recording is empty")

    async def _ensure_profile(self, user_id: str) -> None:
        try:
            profile = await self._tables.select_one("profiles", "id", eq={"id": user_id})
        except BackendError as exc:
            raise PublishError("Failed to verify user profile") from exc
        if profile is None:
            raise PublishError("User profile not found. Please try logging out and back in.")

    async def _remove_uploaded(self, uploaded: list[tuple[str, str]]) -> None:
        for bucket, key in uploaded:
            try:
                await self._storage.remove(bucket, [key])
                logger.info("Removed %s/%s after failed publish", bucket, key)
            except BackendError as exc:
                logger.warning("Orphaned object %s/%s left behind: %s", bucket, key, exc.detail)

    async def publish(
        self,
        draft: PublishDraft,
        audio: AudioBlob,
        user_id: str | None,
        on_published: Callable[[VoicePost], Awaitable[None]] | None = None,
    ) -> VoicePost:
        """Upload and insert one voice post.

        Raises:
            AuthError / ValidationError: From :meth:`validate`; nothing written.
            PublishError: Any later step failed; remaining steps were skipped.
        """
        self.validate(draft, audio, user_id)
        await self._ensure_profile(user_id)

        s = self._settings
        uploaded: list[tuple[str, str]] = []
        step = "upload image"
        try:
            image_key = None
            if draft.image is not None:
                image_key = await self._storage.upload(
                    s.post_images_bucket,
                    storage_key(user_id, draft.image.extension),
                    draft.image.data,
                    draft.image.content_type,
                )
                uploaded.append((s.post_images_bucket, image_key))

            step = "upload audio"
            audio_key = await self._storage.upload(
                s.voice_recordings_bucket,
                storage_key(user_id, audio.extension),
                audio.data,
                audio.mime_type,
            )
            uploaded.append((s.voice_recordings_bucket, audio_key))

            step = "save post"
            rows = await self._tables.insert(
                "voice_posts",
                {
                    "user_id": user_id,
                    "title": draft.title.strip(),
                    "description": draft.description.strip() or None,
                    "image_url": image_key,
                    "audio_url": audio_key,
                },
            )
            if not rows:
                raise BackendError("Post was not saved")
        except BackendError as exc:
            logger.error("Publish failed at '%s': %s", step, exc.detail)
            await self._remove_uploaded(uploaded)
            raise PublishError(f"Failed to {step}. Please try again.") from exc

        post = post_from_row(rows[0])
        logger.info("Published post %s (%d bytes audio)", post.id, audio.size)
        if on_published is not None:
            await on_published(post)
        return post
