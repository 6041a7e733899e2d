"""Tag listing and full-text search."""

from typing import Optional

from fastapi import APIRouter, Depends

from inkwell.api.deps import get_blog_service
from inkwell.api.responses import envelope
from inkwell.services.blog import BlogService

router = APIRouter()


@router.get("/tags")
async def list_tags(blog: BlogService = Depends(get_blog_service)):
    """Tags used by published posts with their post counts, most used first."""
    tags = await blog.list_tags()
    return envelope(tags, {"total": len(tags)})


@router.get("/search")
async def search_posts(q: Optional[str] = None, blog: BlogService = Depends(get_blog_service)):
    """Published posts matching ``q``. A blank query returns an empty list."""
    posts = await blog.search_posts(q or "")
    return envelope(posts, {"total": len(posts)})
