"""
Search index synchronization.

Keeps the search index consistent with the published subset of posts:

    create/update/publish -> remove existing entry, add again if published
    delete                -> remove

Write-path index failures are logged and swallowed so the triggering post
mutation always succeeds. Queries fall back to an in-memory substring match
when the index is missing or raises.
"""

import threading
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol

import structlog

from inkwell.core.errors import IndexSyncError, capture_exception, error_boundary
from inkwell.models.post import Post, PostStatus
from inkwell.services.text import build_search_document, strip_search_metadata

logger = structlog.get_logger(__name__)

SEARCH_COLLECTION = "blog-posts"


class SearchIndex(Protocol):
    async def add(self, key: str, document: dict, collection: str) -> None: ...

    async def remove(self, key: str, collection: str) -> None: ...

    async def search(self, query: str, collection: str) -> list[dict]: ...


class MemorySearchIndex:
    """
    In-process full-text index.

    A document matches when every whitespace-separated query term appears in
    its ``searchText`` (case-insensitive). Results are ``{"key", "object"}``
    pairs in insertion order.
    """

    def __init__(self):
        self._collections: dict[str, dict[str, dict]] = {}
        self._lock = threading.Lock()

    async def add(self, key: str, document: dict, collection: str) -> None:
        with self._lock:
            self._collections.setdefault(collection, {})[key] = document

    async def remove(self, key: str, collection: str) -> None:
        with self._lock:
            self._collections.get(collection, {}).pop(key, None)

    async def search(self, query: str, collection: str) -> list[dict]:
        terms = query.lower().split()
        if not terms:
            return []
        with self._lock:
            documents = list(self._collections.get(collection, {}).items())
        return [
            {"key": key, "object": document}
            for key, document in documents
            if all(term in str(document.get("searchText", "")).lower() for term in terms)
        ]

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collections.get(collection, {}))


def matches_query(post: Post, term: str, include_author: bool = False) -> bool:
    """Case-insensitive substring match over title, subtitle, excerpt and tags."""
    needle = term.strip().lower()
    if not needle:
        return True
    fields = [post.title, post.subtitle, post.excerpt, *post.tags]
    if include_author and post.author:
        fields.append(post.author.name)
    return any(needle in (value or "").lower() for value in fields)


class SearchIndexSync:
    def __init__(
        self,
        index: Optional[SearchIndex] = None,
        log: Any = None,
        collection: str = SEARCH_COLLECTION,
    ):
        self.index = index
        self.log = log or logger
        self.collection = collection

    async def remove(self, post_id: str) -> None:
        if self.index is None:
            return
        with error_boundary("search_index_remove", post_id=post_id):
            await self.index.remove(post_id, self.collection)

    async def upsert(self, post: Post) -> None:
        """Remove any existing entry, then index the post again if it is published."""
        if self.index is None:
            return
        await self.remove(post.id)
        if post.status != PostStatus.PUBLISHED:
            return

        document = build_search_document(post)
        if document is None:
            return
        with error_boundary("search_index_add", post_id=post.id) as boundary:
            await self.index.add(post.id, document, self.collection)
        if not boundary.failed:
            self.log.debug("Indexed post for search", post_id=post.id, search_text_length=len(document["searchText"]))

    async def warm(self, posts: Iterable[Post]) -> int:
        """Index every published post. Returns the number of posts processed."""
        count = 0
        for post in posts:
            await self.upsert(post)
            count += 1
        self.log.info("Search index warmed", count=count)
        return count

    async def search(
        self,
        query: str,
        load_posts: Callable[[], Awaitable[list[Post]]],
        get_post: Callable[[str], Awaitable[Optional[Post]]],
    ) -> list[Post]:
        """Published posts matching ``query``. Empty queries match nothing."""
        term = (query or "").strip()
        if not term:
            return []

        if self.index is not None:
            try:
                return await self._search_index(term, get_post)
            except Exception as exc:
                capture_exception(
                    IndexSyncError("Search index query failed.", details={"query": term}),
                    context={"operation": "search_index_query", "error": str(exc)},
                    level="warning",
                )

        posts = await load_posts()
        return [post for post in posts if post.status == PostStatus.PUBLISHED and matches_query(post, term)]

    async def _search_index(
        self,
        term: str,
        get_post: Callable[[str], Awaitable[Optional[Post]]],
    ) -> list[Post]:
        results = await self.index.search(term, self.collection)
        posts: list[Post] = []
        for result in results or []:
            document = strip_search_metadata(result.get("object"))
            post: Optional[Post] = None
            if document and document.get("id") and "content" in document:
                post = Post.model_validate(document)
            else:
                key = result.get("key") or (document or {}).get("id")
                if key:
                    post = await get_post(key)
            if post is not None and post.status == PostStatus.PUBLISHED:
                posts.append(post)
        return posts
