"""
Reader engagement: claps, bookmarks and comments.

Each mutation that touches a post's counters re-syncs the search index and
invalidates the home feed cache before returning, so the next feed read
reflects it.
"""

from typing import Any, Optional

import structlog

from inkwell.core.errors import NotFoundError, ValidationError
from inkwell.models.comment import Comment, CommentStatus
from inkwell.models.post import Post
from inkwell.services.comments import CommentStore
from inkwell.services.feed import FeedAggregator
from inkwell.services.post_store import FilePostStore
from inkwell.services.search import SearchIndexSync
from inkwell.services.text import normalize_author

logger = structlog.get_logger(__name__)

DEFAULT_MAX_CLAPS = 50


def clamp_claps(amount: Any = 1, maximum: int = DEFAULT_MAX_CLAPS) -> int:
    """
    Claps added by one request: at least 1, at most ``maximum``.

    Non-numeric, zero and negative amounts count as a single clap.
    """
    try:
        number = int(float(amount))
    except (TypeError, ValueError, OverflowError):
        number = 1
    if number < 1:
        number = 1
    return min(number, maximum)


def post_not_found(post_id: str) -> NotFoundError:
    return NotFoundError("Post not found.", code="POST_NOT_FOUND", details={"id": post_id})


class Engagement:
    def __init__(
        self,
        store: FilePostStore,
        comments: CommentStore,
        feed: FeedAggregator,
        search: SearchIndexSync,
        max_claps: int = DEFAULT_MAX_CLAPS,
    ):
        self.store = store
        self.comments = comments
        self.feed = feed
        self.search = search
        self.max_claps = max_claps

    async def _bump(self, post_id: str, **increments: int) -> Post:
        def apply(current: Post) -> Post:
            stats = current.stats.model_copy(
                update={name: getattr(current.stats, name) + delta for name, delta in increments.items()}
            )
            return current.model_copy(update={"stats": stats})

        updated = await self.store.update_with(post_id, apply)
        if updated is None:
            raise post_not_found(post_id)

        await self.search.upsert(updated)
        await self.feed.invalidate()
        return updated

    async def clap(self, post_id: str, amount: Any = 1) -> Post:
        """Add between 1 and ``max_claps`` claps. Repeat calls keep adding."""
        claps = clamp_claps(amount, self.max_claps)
        updated = await self._bump(post_id, claps=claps)
        logger.info("Post clapped", post_id=post_id, added=claps, total=updated.stats.claps)
        return updated

    async def bookmark(self, post_id: str) -> Post:
        updated = await self._bump(post_id, bookmarks=1)
        logger.info("Post bookmarked", post_id=post_id, total=updated.stats.bookmarks)
        return updated

    async def add_comment(self, post_id: str, body: Optional[str], author: Any = None) -> Comment:
        if await self.store.get(post_id) is None:
            raise post_not_found(post_id)

        text = (body or "").strip()
        if not text:
            raise ValidationError("Comment text is required.", details={"field": "body"})

        comment = await self.comments.create(post_id, text, normalize_author(author))
        await self._bump(post_id, comments=1)
        logger.info("Comment created", post_id=post_id, comment_id=comment.id)
        return comment

    async def edit_comment(
        self,
        comment_id: str,
        body: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Comment:
        """Change body and/or status. The post's comment count is not touched."""
        fields: dict[str, Any] = {}
        if body is not None:
            text = body.strip()
            if not text:
                raise ValidationError("Comment text cannot be empty.", details={"field": "body"})
            fields["body"] = text
        if status:
            try:
                fields["status"] = CommentStatus(str(status).strip().lower())
            except ValueError:
                raise ValidationError(
                    "Unknown comment status.",
                    details={"field": "status", "allowed": [s.value for s in CommentStatus]},
                ) from None

        updated = await self.comments.update(comment_id, fields)
        if updated is None:
            raise NotFoundError("Comment not found.", code="COMMENT_NOT_FOUND", details={"id": comment_id})
        return updated
