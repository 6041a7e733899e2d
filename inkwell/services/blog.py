"""
Blog service facade.

One object that owns the post store, comment store, site settings, feed
aggregator, search sync and engagement mutators, wired through explicit
constructor parameters. API routes call these operations and nothing else.

Every post mutation re-syncs the search index and invalidates the home feed
before returning. Reading a post counts a view but leaves the feed cache
alone; view counts in the feed may lag by up to one cache TTL.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from inkwell import __version__
from inkwell.core.cache import MemoryCache
from inkwell.core.clock import ensure_utc, to_epoch_ms
from inkwell.core.config import Settings
from inkwell.core.errors import ValidationError, error_boundary
from inkwell.models.comment import Comment, CommentCreate, CommentUpdate
from inkwell.models.feed import HomeFeed, TagCount
from inkwell.models.post import Post, PostCreate, PostStatus, PostUpdate, SeoMeta
from inkwell.models.site_settings import SiteSettings, SiteSettingsUpdate
from inkwell.services.comments import CommentStore
from inkwell.services.engagement import Engagement, post_not_found
from inkwell.services.feed import FeedAggregator, count_tags, freshness
from inkwell.services.post_store import FilePostStore
from inkwell.services.search import MemorySearchIndex, SearchIndexSync, matches_query
from inkwell.services.site_settings import SiteSettingsStore
from inkwell.services.storage import FileStorage
from inkwell.services.text import normalize_author, normalize_tags, to_slug

logger = structlog.get_logger(__name__)


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


class BlogService:
    def __init__(
        self,
        store: FilePostStore,
        comments: CommentStore,
        site_settings: SiteSettingsStore,
        feed: FeedAggregator,
        search: SearchIndexSync,
        engagement: Optional[Engagement] = None,
    ):
        self.store = store
        self.comments = comments
        self.site_settings = site_settings
        self.feed = feed
        self.search = search
        self.engagement = engagement or Engagement(store, comments, feed, search)

    @classmethod
    def from_settings(cls, config: Settings) -> "BlogService":
        store = FilePostStore(FileStorage(), config.POSTS_DIR, seed_samples=config.SEED_SAMPLE_POSTS)
        cache = MemoryCache(maxsize=config.CACHE_MAX_ENTRIES, ttl=config.FEED_CACHE_TTL_SECONDS)
        feed = FeedAggregator(store, cache, ttl_seconds=config.FEED_CACHE_TTL_SECONDS)
        search = SearchIndexSync(
            MemorySearchIndex() if config.SEARCH_ENABLED else None,
            collection=config.SEARCH_COLLECTION,
        )
        comments = CommentStore(config.comments_path)
        return cls(
            store=store,
            comments=comments,
            site_settings=SiteSettingsStore(config.site_settings_path),
            feed=feed,
            search=search,
            engagement=Engagement(store, comments, feed, search, max_claps=config.CLAP_MAX_PER_REQUEST),
        )

    async def startup(self) -> None:
        """Prepare storage and warm the search index. Failures are logged, not raised."""
        with error_boundary("blog_startup", root=str(self.store.root)):
            await self.store.ready()
            posts = await self.store.list_all()
            await self.search.warm(posts)

    async def _after_change(self, post: Post) -> Post:
        await self.search.upsert(post)
        await self.feed.invalidate()
        return post

    # =========================================================================
    # POSTS
    # =========================================================================

    async def list_posts(
        self,
        status: Optional[str] = None,
        tag: Optional[str] = None,
        author: Optional[str] = None,
        query: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> tuple[list[Post], int]:
        """
        Filtered posts, freshest first.

        Returns the (possibly limited) page and the total number of matches.
        """
        posts = await self.store.list_all()

        if status:
            posts = [post for post in posts if post.status.value == status]
        if tag:
            posts = [post for post in posts if tag in post.tags]
        if author:
            posts = [post for post in posts if author in (post.author.handle, post.author.name)]
        if query and query.strip():
            posts = [post for post in posts if matches_query(post, query, include_author=True)]

        posts = sorted(posts, key=freshness, reverse=True)
        total = len(posts)
        if limit:
            posts = posts[:limit]
        return posts, total

    async def get_post(self, post_id: str) -> Post:
        """Fetch a post and count the view."""

        def count_view(current: Post) -> Post:
            stats = current.stats.model_copy(update={"views": current.stats.views + 1})
            return current.model_copy(update={"stats": stats})

        updated = await self.store.update_with(post_id, count_view)
        if updated is None:
            raise post_not_found(post_id)
        return updated

    async def create_post(self, payload: PostCreate) -> Post:
        if _blank(payload.title) or _blank(payload.content):
            raise ValidationError("Title and content are required.", details={"fields": ["title", "content"]})

        created = await self.store.create(
            {
                "title": payload.title.strip(),
                "subtitle": (payload.subtitle or "").strip(),
                "content": payload.content,
                "slug": payload.slug,
                "tags": payload.tags or [],
                "status": payload.status,
                "author": payload.author,
                "cover_image": payload.cover_image,
                "seo": payload.seo.model_dump(exclude_none=True) if payload.seo else None,
                "scheduled_for": payload.scheduled_for,
            }
        )
        logger.info("Post created", post_id=created.id, status=created.status.value)
        return await self._after_change(created)

    async def update_post(self, post_id: str, payload: PostUpdate) -> Post:
        """Apply the fields present in ``payload``. Absent fields keep their values."""
        provided = payload.model_fields_set
        if "title" in provided and _blank(payload.title):
            raise ValidationError("Title cannot be empty.", details={"field": "title"})
        if "content" in provided and _blank(payload.content):
            raise ValidationError("Content cannot be empty.", details={"field": "content"})

        def apply(current: Post) -> Post:
            title = payload.title.strip() if "title" in provided else current.title
            seo = current.seo
            if payload.seo is not None:
                seo = SeoMeta(
                    title=payload.seo.title or current.seo.title,
                    description=payload.seo.description or current.seo.description,
                    canonical_url=(
                        payload.seo.canonical_url
                        if "canonical_url" in payload.seo.model_fields_set
                        else current.seo.canonical_url
                    ),
                )
            return current.model_copy(
                update={
                    "title": title,
                    "subtitle": (payload.subtitle or "").strip() if "subtitle" in provided else current.subtitle,
                    "slug": to_slug(payload.slug) or to_slug(title) or current.slug,
                    "content": payload.content if "content" in provided else current.content,
                    "tags": normalize_tags(payload.tags) if payload.tags is not None else current.tags,
                    "status": PostStatus.normalize(payload.status) if payload.status else current.status,
                    "author": normalize_author(payload.author) if payload.author else current.author,
                    "cover_image": payload.cover_image if "cover_image" in provided else current.cover_image,
                    "scheduled_for": (
                        ensure_utc(payload.scheduled_for) if "scheduled_for" in provided else current.scheduled_for
                    ),
                    "seo": seo,
                }
            )

        updated = await self.store.update_with(post_id, apply)
        if updated is None:
            raise post_not_found(post_id)
        logger.info("Post updated", post_id=post_id, status=updated.status.value, fields=sorted(provided))
        return await self._after_change(updated)

    async def delete_post(self, post_id: str) -> None:
        if not await self.store.remove(post_id):
            raise post_not_found(post_id)
        await self.search.remove(post_id)
        await self.feed.invalidate()
        logger.info("Post deleted", post_id=post_id)

    async def publish_post(self, post_id: str, scheduled_for: Optional[datetime] = None) -> Post:
        """Publish now, or schedule when ``scheduled_for`` is given."""

        def apply(current: Post) -> Post:
            return current.model_copy(
                update={
                    "status": PostStatus.SCHEDULED if scheduled_for else PostStatus.PUBLISHED,
                    "scheduled_for": ensure_utc(scheduled_for),
                }
            )

        updated = await self.store.update_with(post_id, apply)
        if updated is None:
            raise post_not_found(post_id)
        logger.info("Post published", post_id=post_id, status=updated.status.value)
        return await self._after_change(updated)

    # =========================================================================
    # ENGAGEMENT
    # =========================================================================

    async def clap(self, post_id: str, amount: Any = 1) -> Post:
        return await self.engagement.clap(post_id, amount)

    async def bookmark(self, post_id: str) -> Post:
        return await self.engagement.bookmark(post_id)

    async def list_comments(self, post_id: str) -> list[Comment]:
        return await self.comments.list_for_post(post_id)

    async def create_comment(self, post_id: str, payload: CommentCreate) -> Comment:
        return await self.engagement.add_comment(post_id, payload.body, payload.author)

    async def update_comment(self, comment_id: str, payload: CommentUpdate) -> Comment:
        return await self.engagement.edit_comment(comment_id, body=payload.body, status=payload.status)

    # =========================================================================
    # READ MODELS
    # =========================================================================

    async def list_tags(self) -> list[TagCount]:
        """Every tag used by a published post, most used first."""
        posts = await self.store.list_all()
        return count_tags((post for post in posts if post.is_published), limit=None)

    async def search_posts(self, query: str) -> list[Post]:
        return await self.search.search(query, self.store.list_all, self.store.get)

    async def home_feed(self) -> HomeFeed:
        return await self.feed.get_home_feed()

    async def status(self) -> dict[str, Any]:
        posts = await self.store.list_all()
        return {
            "status": "running",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "totals": {
                "posts": len(posts),
                "published": sum(1 for post in posts if post.is_published),
                "comments": await self.comments.count(),
            },
        }

    async def sitemap_posts(self) -> list[Post]:
        """Published posts, most recently modified first."""
        posts = [post for post in await self.store.list_all() if post.is_published]
        return sorted(
            posts,
            key=lambda post: to_epoch_ms(post.updated_at or post.published_at or post.created_at),
            reverse=True,
        )

    # =========================================================================
    # SITE SETTINGS
    # =========================================================================

    async def get_settings(self) -> SiteSettings:
        return await self.site_settings.get()

    async def update_settings(self, payload: SiteSettingsUpdate) -> SiteSettings:
        return await self.site_settings.update(payload)
