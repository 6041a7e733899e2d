"""
Post model.

A post is backed by exactly one ``<id>.post`` file, located in ``published/``
when its status is published and in ``drafts/`` otherwise.

Attributes:
    id: Filename stem, derived from the slug, unique across both directories
    slug: URL-safe identifier, never empty once persisted
    excerpt: First 220 characters of the collapsed content (derived)
    tags: Up to 10 normalized tags in first-seen order
    tag_slugs: One slug per tag (derived)
    status: draft, scheduled or published
    published_at: Set when the post becomes published, preserved thereafter
    scheduled_for: Only meaningful while scheduled
    read_time_minutes: ceil(words / 220), minimum 1 (derived)
    stats: Engagement counters, non-negative integers
    seo: Defaulted from title and excerpt when absent
    created_at: Set once, never changes
    updated_at: Refreshed on every persisted mutation
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import Field, field_validator

from inkwell.core.clock import ensure_utc
from inkwell.models.base import CamelModel


class PostStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"

    @classmethod
    def normalize(cls, value: Any) -> "PostStatus":
        """Case-insensitive match on published/scheduled; anything else is draft."""
        if isinstance(value, PostStatus):
            return value
        text = str(value or "").strip().lower()
        if text == cls.PUBLISHED.value:
            return cls.PUBLISHED
        if text == cls.SCHEDULED.value:
            return cls.SCHEDULED
        return cls.DRAFT


class Author(CamelModel):
    name: str = "Anonymous"
    handle: str = "anonymous"
    avatar: Optional[str] = None
    bio: Optional[str] = None


class PostStats(CamelModel):
    views: int = 0
    claps: int = 0
    bookmarks: int = 0
    comments: int = 0

    @field_validator("views", "claps", "bookmarks", "comments", mode="before")
    @classmethod
    def _non_negative_int(cls, value: Any) -> int:
        try:
            number = int(float(value or 0))
        except (TypeError, ValueError, OverflowError):
            return 0
        return max(0, number)


class SeoMeta(CamelModel):
    title: str = ""
    description: str = ""
    canonical_url: Optional[str] = None


class Post(CamelModel):
    id: str
    title: str = "Untitled"
    subtitle: str = ""
    slug: str = ""
    author: Author = Field(default_factory=Author)
    content: str = ""
    excerpt: str = ""
    cover_image: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    tag_slugs: List[str] = Field(default_factory=list)
    status: PostStatus = PostStatus.DRAFT
    published_at: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    read_time_minutes: int = 1
    stats: PostStats = Field(default_factory=PostStats)
    seo: SeoMeta = Field(default_factory=SeoMeta)
    content_format: str = "markdown"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> PostStatus:
        return PostStatus.normalize(value)

    @field_validator("published_at", "scheduled_for", "created_at", "updated_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @property
    def is_published(self) -> bool:
        return self.status == PostStatus.PUBLISHED


# =============================================================================
# REQUEST PAYLOADS
# =============================================================================


class AuthorIn(CamelModel):
    name: Optional[str] = None
    handle: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None


class SeoIn(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    canonical_url: Optional[str] = None


class PostCreate(CamelModel):
    title: Optional[str] = None
    subtitle: Optional[str] = None
    content: Optional[str] = None
    slug: Optional[str] = None
    tags: Optional[List[Any]] = None
    status: Optional[str] = None
    author: Optional[Union[str, AuthorIn]] = None
    cover_image: Optional[str] = None
    seo: Optional[SeoIn] = None
    scheduled_for: Optional[datetime] = None


class PostUpdate(PostCreate):
    """Partial update. Only fields present in the request are applied."""


class PublishRequest(CamelModel):
    scheduled_for: Optional[datetime] = None


class ClapRequest(CamelModel):
    amount: Any = 1
