"""
Tests for the home feed aggregator.

Tests:
- Trending score and freshness ordering
- Section limits (featured, latest, trending, tags, drafts)
- Read-through caching, expiry and invalidation
- Degraded mode when the cache fails
"""

from unittest.mock import AsyncMock

import pytest

from inkwell.core.cache import MemoryCache
from inkwell.models.post import PostStatus
from inkwell.services.feed import (
    HOME_FEED_CACHE_KEY,
    FeedAggregator,
    count_tags,
    freshness,
    trending_score,
)
from tests.factories import StaticPostStore, make_post


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestScoring:
    """Tests for the pure ranking helpers."""

    def test_trending_score(self):
        post = make_post("p", claps=10, bookmarks=5, views=7)
        assert trending_score(post) == 10 * 3 + 5 * 2 + 7

    def test_freshness_prefers_published_at(self):
        post = make_post("p", published_offset_hours=5)
        draft = make_post("d", status=PostStatus.DRAFT, published_offset_hours=2)

        assert freshness(post) > freshness(draft)
        assert freshness(draft) == int(draft.updated_at.timestamp() * 1000)

    def test_count_tags(self):
        posts = [
            make_post("a", tags=["life", "craft"]),
            make_post("b", tags=["life"]),
            make_post("c", tags=["Slow Living", "life"]),
        ]
        counts = count_tags(posts)

        assert counts[0].tag == "life"
        assert counts[0].count == 3
        assert {c.tag for c in counts[1:]} == {"craft", "Slow Living"}
        assert next(c for c in counts if c.tag == "Slow Living").slug == "slow-living"

    def test_count_tags_limit(self):
        posts = [make_post(f"p{i}", tags=[f"tag-{i}"]) for i in range(15)]
        assert len(count_tags(posts)) == 10
        assert len(count_tags(posts, limit=None)) == 15


class TestBuild:
    """Tests for feed sections."""

    @pytest.mark.asyncio
    async def test_trending_order(self):
        posts = [
            make_post("a", claps=10, published_offset_hours=1),
            make_post("b", bookmarks=5, published_offset_hours=2),
            make_post("c", views=100, published_offset_hours=3),
        ]
        feed = await FeedAggregator(StaticPostStore(posts)).build()

        assert [p.id for p in feed.trending] == ["c", "a", "b"]
        assert [p.id for p in feed.featured] == ["c"]

    @pytest.mark.asyncio
    async def test_trending_ties_broken_by_freshness(self):
        posts = [
            make_post("older", claps=1, published_offset_hours=1),
            make_post("newer", claps=1, published_offset_hours=9),
        ]
        feed = await FeedAggregator(StaticPostStore(posts)).build()
        assert [p.id for p in feed.trending] == ["newer", "older"]

    @pytest.mark.asyncio
    async def test_featured_comes_from_trending_not_latest(self):
        posts = [
            make_post("popular", claps=50, published_offset_hours=1),
            make_post("fresh", published_offset_hours=10),
        ]
        feed = await FeedAggregator(StaticPostStore(posts)).build()

        assert feed.latest[0].id == "fresh"
        assert feed.featured[0].id == "popular"

    @pytest.mark.asyncio
    async def test_section_limits(self):
        published = [make_post(f"pub-{i}", views=i, published_offset_hours=i) for i in range(9)]
        drafts = [make_post(f"draft-{i}", status=PostStatus.DRAFT) for i in range(8)]
        feed = await FeedAggregator(StaticPostStore(published + drafts)).build()

        assert [p.id for p in feed.latest] == [f"pub-{i}" for i in range(8, 2, -1)]
        assert len(feed.trending) == 5
        assert len(feed.featured) == 1
        assert len(feed.drafts) == 6
        assert feed.totals.posts == 17
        assert feed.totals.published == 9
        assert feed.totals.drafts == 8

    @pytest.mark.asyncio
    async def test_only_published_posts_in_reader_sections(self):
        posts = [
            make_post("live", tags=["public"]),
            make_post("hidden", status=PostStatus.DRAFT, claps=999, tags=["secret"]),
            make_post("later", status=PostStatus.SCHEDULED, tags=["secret"]),
        ]
        feed = await FeedAggregator(StaticPostStore(posts)).build()

        assert [p.id for p in feed.trending] == ["live"]
        assert [p.id for p in feed.latest] == ["live"]
        assert [t.tag for t in feed.tags] == ["public"]
        assert {p.id for p in feed.drafts} == {"hidden", "later"}

    @pytest.mark.asyncio
    async def test_empty_store(self):
        feed = await FeedAggregator(StaticPostStore([])).build()
        assert feed.featured == []
        assert feed.totals.posts == 0


class TestCaching:
    """Tests for the read-through cache."""

    @pytest.mark.asyncio
    async def test_second_read_served_from_cache(self, memory_cache):
        store = StaticPostStore([make_post("a")])
        aggregator = FeedAggregator(store, memory_cache)

        first = await aggregator.get_home_feed()
        second = await aggregator.get_home_feed()

        assert store.list_calls == 1
        assert second == first

    @pytest.mark.asyncio
    async def test_cache_entry_shape(self, memory_cache):
        clock = FakeClock()
        aggregator = FeedAggregator(StaticPostStore([make_post("a")]), memory_cache, ttl_seconds=60, clock=clock)
        await aggregator.get_home_feed()

        entry = await memory_cache.get(HOME_FEED_CACHE_KEY)
        assert entry["expiresAt"] == int(clock.now * 1000) + 60_000
        assert entry["value"].totals.posts == 1

    @pytest.mark.asyncio
    async def test_expired_entry_rebuilds(self, memory_cache):
        clock = FakeClock()
        store = StaticPostStore([make_post("a")])
        aggregator = FeedAggregator(store, memory_cache, ttl_seconds=60, clock=clock)

        await aggregator.get_home_feed()
        clock.now += 61
        await aggregator.get_home_feed()

        assert store.list_calls == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_rebuild(self, memory_cache):
        store = StaticPostStore([make_post("a")])
        aggregator = FeedAggregator(store, memory_cache)

        await aggregator.get_home_feed()
        store.posts.append(make_post("b"))
        await aggregator.invalidate()
        feed = await aggregator.get_home_feed()

        assert store.list_calls == 2
        assert feed.totals.posts == 2

    @pytest.mark.asyncio
    async def test_no_cache_always_recomputes(self):
        store = StaticPostStore([make_post("a")])
        aggregator = FeedAggregator(store, cache=None)

        await aggregator.get_home_feed()
        await aggregator.get_home_feed()
        await aggregator.invalidate()

        assert store.list_calls == 2

    @pytest.mark.asyncio
    async def test_failing_cache_degrades_to_recompute(self):
        cache = AsyncMock(spec=MemoryCache)
        cache.get.side_effect = ConnectionError("cache down")
        cache.put.side_effect = ConnectionError("cache down")
        cache.delete.side_effect = ConnectionError("cache down")
        store = StaticPostStore([make_post("a")])
        aggregator = FeedAggregator(store, cache)

        feed = await aggregator.get_home_feed()
        await aggregator.invalidate()

        assert feed.totals.posts == 1
        assert cache.put.await_count == 1
