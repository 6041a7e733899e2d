from typing import List

from pydantic import Field

from inkwell.models.base import CamelModel
from inkwell.models.post import Post


class TagCount(CamelModel):
    tag: str
    count: int
    slug: str


class FeedTotals(CamelModel):
    posts: int = 0
    published: int = 0
    drafts: int = 0


class HomeFeed(CamelModel):
    """Landing page read-model, rebuilt from the full post set."""

    featured: List[Post] = Field(default_factory=list)
    latest: List[Post] = Field(default_factory=list)
    trending: List[Post] = Field(default_factory=list)
    tags: List[TagCount] = Field(default_factory=list)
    drafts: List[Post] = Field(default_factory=list)
    totals: FeedTotals = Field(default_factory=FeedTotals)
