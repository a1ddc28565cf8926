"""
Feed data accessor: translates backend rows into view models.

``FeedRepository`` performs exactly one logical backend operation per
method and never touches view state; optimistic patching lives in
:class:`voicefeed.services.feed.state.FeedState`.
"""

import asyncio
import logging
import time
from datetime import UTC, datetime

from voicefeed.core.config import Settings, get_settings
from voicefeed.core.exceptions import (
    BackendError,
    FetchError,
    NotAuthorizedError,
    UploadError,
    UsernameTakenError,
    ValidationError,
)
from voicefeed.core.models import Author, Comment, ImageFile, Profile, VoicePost
from voicefeed.services.backend.rest import TableAPI
from voicefeed.services.backend.storage import StorageAPI

logger = logging.getLogger(__name__)

# Posts joined with author profile and aggregate like/comment counts in one round trip.
POST_COLUMNS = """
    *,
    profiles(username, avatar_url),
    post_likes(count),
    post_comments(count)
"""

COMMENT_COLUMNS = """
    id, post_id, user_id, comment, created_at,
    profiles:user_id(username, avatar_url)
"""


def _aggregate_count(value: object) -> int:
    """Read ``[{"count": n}]`` as returned for an embedded aggregate."""
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return int(value[0].get("count", 0))
    if isinstance(value, int):
        return value
    return 0


def _author(value: object) -> Author:
    return Author.model_validate(value) if isinstance(value, dict) else Author()


def post_from_row(
    row: dict, liked: set[str] | None = None, saved: set[str] | None = None
) -> VoicePost:
    post_id = str(row["id"])
    return VoicePost(
        id=post_id,
        user_id=str(row["user_id"]),
        title=row.get("title") or "",
        description=row.get("description"),
        image_url=row.get("image_url"),
        audio_url=row["audio_url"],
        created_at=row["created_at"],
        author=_author(row.get("profiles")),
        like_count=_aggregate_count(row.get("post_likes")),
        comment_count=_aggregate_count(row.get("post_comments")),
        liked=post_id in (liked or set()),
        saved=post_id in (saved or set()),
    )


def comment_from_row(row: dict, author: Author | None = None) -> Comment:
    return Comment(
        id=str(row["id"]),
        post_id=str(row["post_id"]),
        user_id=str(row["user_id"]),
        content=row.get("comment") or "",
        created_at=row["created_at"],
        author=author or _author(row.get("profiles")),
    )


def ensure_owner(post: VoicePost, user_id: str | None) -> None:
    """Client-side owner gate. The backend enforces its own authorization."""
    if user_id is None or post.user_id != user_id:
        raise NotAuthorizedError("Only the author can delete this post")


def storage_key(user_id: str, extension: str = "") -> str:
    """Unique object key: millisecond timestamp plus the owner's id."""
    return f"{int(time.time() * 1000)}-{user_id}{extension}"


class FeedRepository:
    """Reads and writes for posts, comments, likes, saves and profiles.

    Args:
        tables: Table API.
        storage: Storage API (public URLs, avatar uploads, cleanup).
        settings: Bucket names and size limits; defaults to ``get_settings()``.
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

    # ------------------------------------------------------------------
    # Public URLs
    # ------------------------------------------------------------------

    def image_url(self, key: str) -> str:
        return self._storage.public_url(self._settings.post_images_bucket, key)

    def avatar_url(self, key: str) -> str:
        return self._storage.public_url(self._settings.avatars_bucket, key)

    def audio_url(self, key: str) -> str:
        return self._storage.public_url(self._settings.voice_recordings_bucket, key)

    async def resolve_audio_url(self, key: str) -> str:
        return await self._storage.resolve_public_url(
            self._settings.voice_recordings_bucket, key
        )

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    async def fetch_posts(self, user_id: str | None = None) -> list[VoicePost]:
        """Return the feed, newest first, with like/save membership for *user_id*."""
        try:
            rows = await self._tables.select(
                "voice_posts", POST_COLUMNS, order="created_at", ascending=False
            )
            liked: set[str] = set()
            saved: set[str] = set()
            if user_id:
                like_rows, save_rows = await asyncio.gather(
                    self._tables.select("post_likes", "post_id", eq={"user_id": user_id}),
                    self._tables.select("saved_posts", "post_id", eq={"user_id": user_id}),
                )
                liked = {str(r["post_id"]) for r in like_rows}
                saved = {str(r["post_id"]) for r in save_rows}
        except BackendError as exc:
            raise FetchError(f"Failed to load posts: {exc.detail}") from exc

        logger.debug("Fetched %d posts", len(rows))
        return [post_from_row(row, liked, saved) for row in rows]

    async def fetch_user_posts(self, user_id: str) -> list[VoicePost]:
        try:
            rows = await self._tables.select(
                "voice_posts",
                POST_COLUMNS,
                eq={"user_id": user_id},
                order="created_at",
                ascending=False,
            )
        except BackendError as exc:
            raise FetchError(f"Failed to load posts: {exc.detail}") from exc
        return [post_from_row(row) for row in rows]

    async def fetch_saved_posts(self, user_id: str) -> list[VoicePost]:
        """Return the posts *user_id* saved, newest post first, with their like state."""
        try:
            rows, like_rows = await asyncio.gather(
                self._tables.select(
                    "saved_posts",
                    f"post_id, voice_posts({' '.join(POST_COLUMNS.split())})",
                    eq={"user_id": user_id},
                ),
                self._tables.select("post_likes", "post_id", eq={"user_id": user_id}),
            )
        except BackendError as exc:
            raise FetchError(f"Failed to load saved posts: {exc.detail}") from exc

        liked = {str(r["post_id"]) for r in like_rows}
        posts = [
            post_from_row(row["voice_posts"], liked, saved={str(row["post_id"])})
            for row in rows
            if row.get("voice_posts")
        ]
        posts.sort(key=lambda p: p.created_at, reverse=True)
        return posts

    async def delete_post(self, post: VoicePost, user_id: str | None) -> None:
        """Delete *post* if *user_id* owns it, then drop its storage objects.

        Raises:
            NotAuthorizedError: Not the owner, or the backend deleted nothing.
        """
        ensure_owner(post, user_id)
        deleted = await self._tables.delete(
            "voice_posts", eq={"id": post.id, "user_id": user_id}
        )
        if not deleted:
            raise NotAuthorizedError("Post could not be deleted")
        logger.info("Deleted post %s", post.id)

        cleanup = [(self._settings.voice_recordings_bucket, post.audio_url)]
        if post.image_url:
            cleanup.append((self._settings.post_images_bucket, post.image_url))
        for bucket, key in cleanup:
            try:
                await self._storage.remove(bucket, [key])
            except BackendError as exc:
                logger.warning("Left orphaned object %s/%s: %s", bucket, key, exc.detail)

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def fetch_comments(self, post_id: str) -> list[Comment]:
        """Return comments on *post_id*, oldest first."""
        try:
            rows = await self._tables.select(
                "post_comments",
                COMMENT_COLUMNS,
                eq={"post_id": post_id},
                order="created_at",
                ascending=True,
            )
        except BackendError as exc:
            raise FetchError(f"Failed to load comments: {exc.detail}") from exc
        return [comment_from_row(row) for row in rows]

    async def add_comment(
        self,
        post_id: str,
        user_id: str,
        content: str,
        author: Author | None = None,
    ) -> Comment:
        content = content.strip()
        if not content:
            raise ValidationError("Comment cannot be empty")
        rows = await self._tables.insert(
            "post_comments",
            {"post_id": post_id, "user_id": user_id, "comment": content},
        )
        if rows:
            return comment_from_row(rows[0], author)
        return Comment(
            id="",
            post_id=post_id,
            user_id=user_id,
            content=content,
            created_at=datetime.now(UTC),
            author=author or Author(),
        )

    # ------------------------------------------------------------------
    # Likes & saves
    # ------------------------------------------------------------------

    async def _set_membership(self, table: str, post_id: str, user_id: str, member: bool) -> None:
        key = {"post_id": post_id, "user_id": user_id}
        if not member:
            await self._tables.delete(table, eq=key)
            return
        try:
            await self._tables.insert(table, key)
        except BackendError as exc:
            # Row already present: membership is what was asked for.
            if not exc.is_conflict:
                raise

    async def set_like(self, post_id: str, user_id: str, liked: bool) -> None:
        await self._set_membership("post_likes", post_id, user_id, liked)

    async def set_save(self, post_id: str, user_id: str, saved: bool) -> None:
        await self._set_membership("saved_posts", post_id, user_id, saved)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    async def fetch_profile(self, user_id: str) -> Profile:
        try:
            row = await self._tables.select_one("profiles", "*", eq={"id": user_id})
        except BackendError as exc:
            raise FetchError(f"Failed to load profile: {exc.detail}") from exc
        if row is None:
            raise FetchError("Profile not found")
        return Profile.model_validate(row)

    async def update_profile(
        self,
        user_id: str,
        username: str,
        bio: str = "",
        website: str = "",
        avatar: ImageFile | None = None,
        current_avatar: str | None = None,
    ) -> Profile:
        """Update the owner's profile, uploading a new avatar first if given.

        Raises:
            ValidationError: Blank username or oversized avatar.
            UploadError: Avatar upload failed.
            UsernameTakenError: Username belongs to another profile.
        """
        username = username.strip()
        if not username:
            raise ValidationError("Username is required")
        if avatar is not None and avatar.size > self._settings.max_image_bytes:
            raise ValidationError("Image size should be less than 2MB")

        avatar_key = current_avatar
        if avatar is not None:
            try:
                avatar_key = await self._storage.upload(
                    self._settings.avatars_bucket,
                    storage_key(user_id),
                    avatar.data,
                    avatar.content_type,
                )
            except BackendError as exc:
                raise UploadError(f"Failed to upload avatar: {exc.detail}") from exc

        try:
            rows = await self._tables.update(
                "profiles",
                {
                    "username": username,
                    "bio": bio,
                    "website": website,
                    "avatar_url": avatar_key,
                    "updated_at": datetime.now(UTC).isoformat(),
                },
                eq={"id": user_id},
            )
        except BackendError as exc:
            if exc.is_conflict:
                raise UsernameTakenError(username) from exc
            raise
        if not rows:
            raise NotAuthorizedError("Profile could not be updated")
        return Profile.model_validate(rows[0])
