"""
Feed view state with optimistic, reversible updates.

Each mutation records a ``Patch`` (the delta it applied), calls the
repository, and on failure reverts exactly that delta before re-raising.
Counts are reverted by subtracting the delta rather than restoring a
snapshot, so interleaved mutations on the same post are not clobbered.
"""

import logging
from dataclasses import dataclass, field

from voicefeed.core.exceptions import AuthError, ValidationError
from voicefeed.core.lifecycle import ViewScope
from voicefeed.core.models import Author, Comment, VoicePost
from voicefeed.services.feed.repository import FeedRepository, ensure_owner

logger = logging.getLogger(__name__)


@dataclass
class Patch:
    """A speculative change to one post: flag values before, count deltas applied."""

    post_id: str
    flags_before: dict[str, bool] = field(default_factory=dict)
    count_deltas: dict[str, int] = field(default_factory=dict)


class FeedState:
    """Posts and loaded comments for one feed view.

    Args:
        repository: Data accessor used for every read and write.
        scope: Liveness of the owning view; fetch results arriving after
            the view closed are dropped.
    """

    def __init__(self, repository: FeedRepository, scope: ViewScope | None = None) -> None:
        self._repo = repository
        self.scope = scope or ViewScope("feed")
        self.posts: list[VoicePost] = []
        self.comments: dict[str, list[Comment]] = {}

    def get(self, post_id: str) -> VoicePost | None:
        return next((p for p in self.posts if p.id == post_id), None)

    def _require(self, post_id: str) -> VoicePost:
        post = self.get(post_id)
        if post is None:
            raise ValidationError(f"Post not found: {post_id}")
        return post

    # ------------------------------------------------------------------
    # Patches
    # ------------------------------------------------------------------

    def _apply(self, post: VoicePost, flags: dict[str, bool], deltas: dict[str, int]) -> Patch:
        patch = Patch(post_id=post.id)
        for name, value in flags.items():
            patch.flags_before[name] = getattr(post, name)
            setattr(post, name, value)
        for name, delta in deltas.items():
            setattr(post, name, max(getattr(post, name) + delta, 0))
            patch.count_deltas[name] = delta
        return patch

    def _revert(self, patch: Patch) -> None:
        post = self.get(patch.post_id)
        if post is None:
            return
        for name, value in patch.flags_before.items():
            setattr(post, name, value)
        for name, delta in patch.count_deltas.items():
            setattr(post, name, max(getattr(post, name) - delta, 0))
        logger.info("Reverted optimistic update on post %s", patch.post_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def refresh(self, user_id: str | None = None) -> list[VoicePost]:
        """Refetch the whole feed; replaces all optimistic counts with server truth."""
        posts = await self.scope.guard(self._repo.fetch_posts(user_id))
        if posts is not None:
            self.posts = posts
        return self.posts

    async def load_comments(self, post_id: str) -> list[Comment]:
        comments = await self.scope.guard(self._repo.fetch_comments(post_id))
        if comments is not None:
            self.comments[post_id] = comments
        return self.comments.get(post_id, [])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def toggle_like(self, post_id: str, user_id: str | None) -> bool:
        """Flip the like on *post_id*; returns the new membership."""
        if user_id is None:
            raise AuthError("Sign in to like posts")
        post = self._require(post_id)
        liked = not post.liked
        patch = self._apply(post, {"liked": liked}, {"like_count": 1 if liked else -1})
        try:
            await self._repo.set_like(post_id, user_id, liked)
        except Exception:
            self._revert(patch)
            raise
        return liked

    async def toggle_save(self, post_id: str, user_id: str | None) -> bool:
        """Flip the save on *post_id*; returns the new membership."""
        if user_id is None:
            raise AuthError("Sign in to save posts")
        post = self._require(post_id)
        saved = not post.saved
        patch = self._apply(post, {"saved": saved}, {})
        try:
            await self._repo.set_save(post_id, user_id, saved)
        except Exception:
            self._revert(patch)
            raise
        return saved

    async def add_comment(
        self,
        post_id: str,
        user_id: str | None,
        content: str,
        author: Author | None = None,
    ) -> Comment:
        if user_id is None:
            raise AuthError("Sign in to comment")
        if not content.strip():
            raise ValidationError("Comment cannot be empty")
        post = self._require(post_id)
        patch = self._apply(post, {}, {"comment_count": 1})
        try:
            comment = await self._repo.add_comment(post_id, user_id, content, author)
        except Exception:
            self._revert(patch)
            raise
        if self.scope.alive and post_id in self.comments:
            self.comments[post_id].append(comment)
        return comment

    async def delete_post(self, post_id: str, user_id: str | None) -> None:
        """Remove *post_id* from view, delete it, and put it back on failure."""
        post = self._require(post_id)
        ensure_owner(post, user_id)
        index = self.posts.index(post)
        self.posts.pop(index)
        try:
            await self._repo.delete_post(post, user_id)
        except Exception:
            self.posts.insert(min(index, len(self.posts)), post)
            raise
        self.comments.pop(post_id, None)
