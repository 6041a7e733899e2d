"""Comment persistence: a single JSON array file, loaded once and rewritten on change."""

import asyncio
import uuid
from pathlib import Path
from typing import Any, Callable, Optional

import structlog
from anyio import to_thread

from inkwell.core.clock import utc_now
from inkwell.core.errors import StorageError
from inkwell.models.comment import Comment
from inkwell.services.storage import read_json_file, write_json_file

logger = structlog.get_logger(__name__)


class CommentStore:
    def __init__(self, path: Path, clock: Callable = utc_now):
        self.path = Path(path)
        self._clock = clock
        self._comments: Optional[dict[str, Comment]] = None
        self._lock = asyncio.Lock()

    async def _load(self) -> dict[str, Comment]:
        if self._comments is not None:
            return self._comments
        try:
            raw = await to_thread.run_sync(read_json_file, self.path)
        except (OSError, ValueError) as exc:
            logger.error("Failed to load comments", path=str(self.path), error=str(exc))
            raise StorageError("Unable to load comments.", details={"path": str(self.path)}) from exc

        comments: dict[str, Comment] = {}
        for item in raw or []:
            comment = Comment.model_validate(item)
            comments[comment.id] = comment
        self._comments = comments
        return comments

    async def _save(self, comments: dict[str, Comment]) -> None:
        payload = [comment.model_dump(by_alias=True, mode="json") for comment in comments.values()]
        try:
            await to_thread.run_sync(write_json_file, self.path, payload)
        except OSError as exc:
            logger.error("Failed to save comments", path=str(self.path), error=str(exc))
            raise StorageError("Unable to save comments.", details={"path": str(self.path)}) from exc

    async def list_for_post(self, post_id: str) -> list[Comment]:
        """Comments on one post, oldest first."""
        async with self._lock:
            comments = await self._load()
            matching = [comment for comment in comments.values() if comment.post_id == post_id]
        return sorted(matching, key=lambda comment: comment.created_at)

    async def get(self, comment_id: str) -> Optional[Comment]:
        async with self._lock:
            comments = await self._load()
            return comments.get(comment_id)

    async def count(self) -> int:
        async with self._lock:
            return len(await self._load())

    async def create(self, post_id: str, body: str, author: Any) -> Comment:
        now = self._clock()
        comment = Comment(
            id=uuid.uuid4().hex,
            post_id=post_id,
            author=author,
            body=body,
            created_at=now,
            updated_at=now,
        )
        async with self._lock:
            comments = {**await self._load(), comment.id: comment}
            await self._save(comments)
            self._comments = comments
        return comment

    async def update(self, comment_id: str, fields: dict[str, Any]) -> Optional[Comment]:
        """Apply ``fields`` to a comment. None when the id is unknown."""
        async with self._lock:
            comments = await self._load()
            current = comments.get(comment_id)
            if current is None:
                return None
            updated = current.model_copy(update={**fields, "updated_at": self._clock()})
            comments = {**comments, comment_id: updated}
            await self._save(comments)
            self._comments = comments
        return updated
