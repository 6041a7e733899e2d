from inkwell.models.post import Author, Post, PostStats, PostStatus, SeoMeta
from inkwell.models.comment import Comment, CommentStatus
from inkwell.models.feed import FeedTotals, HomeFeed, TagCount
from inkwell.models.site_settings import CustomLink, SiteSettings, SocialLinks

__all__ = [
    "Author",
    "Post",
    "PostStats",
    "PostStatus",
    "SeoMeta",
    "Comment",
    "CommentStatus",
    "FeedTotals",
    "HomeFeed",
    "TagCount",
    "CustomLink",
    "SiteSettings",
    "SocialLinks",
]
