"""
Home feed aggregator.

Builds the landing page read-model (featured, latest, trending, tags, drafts
and totals) from the full post set and keeps it in a short-lived cache.

Ranking:
    freshness      = published_at ?? updated_at ?? created_at
    trending score = claps * 3 + bookmarks * 2 + views, ties broken by freshness

Only published posts are candidates for the reader-facing sections. Cache
failures never fail a read; the feed is rebuilt instead.
"""

import time
from collections import Counter
from typing import Any, Callable, Iterable, Optional

import structlog

from inkwell.core.cache import Cache
from inkwell.core.clock import to_epoch_ms
from inkwell.core.errors import error_boundary
from inkwell.models.feed import FeedTotals, HomeFeed, TagCount
from inkwell.models.post import Post, PostStatus
from inkwell.services.post_store import FilePostStore
from inkwell.services.text import to_slug

logger = structlog.get_logger(__name__)

HOME_FEED_CACHE_KEY = "blog:feed:home"

LATEST_LIMIT = 6
TRENDING_LIMIT = 5
FEATURED_LIMIT = 1
TAG_LIMIT = 10
DRAFT_LIMIT = 6


def freshness(post: Post) -> int:
    """Epoch milliseconds of the most relevant timestamp."""
    return to_epoch_ms(post.published_at or post.updated_at or post.created_at)


def trending_score(post: Post) -> int:
    stats = post.stats
    return stats.claps * 3 + stats.bookmarks * 2 + stats.views


def count_tags(posts: Iterable[Post], limit: int = TAG_LIMIT) -> list[TagCount]:
    """Tag occurrence counts, most used first. Equal counts keep first-seen order."""
    counts: Counter = Counter()
    for post in posts:
        counts.update(post.tags)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [TagCount(tag=tag, count=count, slug=to_slug(tag)) for tag, count in ranked[:limit]]


class FeedAggregator:
    def __init__(
        self,
        store: FilePostStore,
        cache: Optional[Cache] = None,
        log: Any = None,
        ttl_seconds: float = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.cache = cache
        self.log = log or logger
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def build(self) -> HomeFeed:
        """Compute the feed from the store, bypassing the cache."""
        posts = await self.store.list_all()
        published = [post for post in posts if post.status == PostStatus.PUBLISHED]
        drafts = [post for post in posts if post.status != PostStatus.PUBLISHED]

        latest = sorted(published, key=freshness, reverse=True)
        trending = sorted(
            published,
            key=lambda post: (trending_score(post), freshness(post)),
            reverse=True,
        )

        return HomeFeed(
            featured=trending[:FEATURED_LIMIT],
            latest=latest[:LATEST_LIMIT],
            trending=trending[:TRENDING_LIMIT],
            tags=count_tags(published),
            drafts=drafts[:DRAFT_LIMIT],
            totals=FeedTotals(
                posts=len(posts),
                published=len(published),
                drafts=len(drafts),
            ),
        )

    async def get_home_feed(self) -> HomeFeed:
        """Read-through cached feed. Without a cache every call rebuilds."""
        if self.cache is None:
            return await self.build()

        cached = None
        with error_boundary("feed_cache_get", key=HOME_FEED_CACHE_KEY):
            cached = await self.cache.get(HOME_FEED_CACHE_KEY)

        if (
            isinstance(cached, dict)
            and cached.get("value") is not None
            and cached.get("expiresAt", 0) > self._now_ms()
        ):
            return cached["value"]

        feed = await self.build()
        entry = {"value": feed, "expiresAt": self._now_ms() + int(self.ttl_seconds * 1000)}
        with error_boundary("feed_cache_put", key=HOME_FEED_CACHE_KEY):
            await self.cache.put(HOME_FEED_CACHE_KEY, entry)
        return feed

    async def invalidate(self) -> None:
        if self.cache is None:
            return
        with error_boundary("feed_cache_invalidate", key=HOME_FEED_CACHE_KEY) as boundary:
            await self.cache.delete(HOME_FEED_CACHE_KEY)
        if not boundary.failed:
            self.log.debug("Home feed cache invalidated")
