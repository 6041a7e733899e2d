"""Post CRUD and publishing endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from inkwell.api.deps import get_blog_service
from inkwell.api.responses import envelope
from inkwell.models.post import PostCreate, PostUpdate, PublishRequest
from inkwell.services.blog import BlogService

router = APIRouter()


@router.get("")
async def list_posts(
    status: Optional[str] = None,
    tag: Optional[str] = None,
    author: Optional[str] = None,
    q: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    blog: BlogService = Depends(get_blog_service),
):
    """
    List posts, freshest first.

    Filters combine: exact status, exact tag, author handle or name, and a
    case-insensitive text query over title, subtitle, excerpt, tags and author.
    """
    posts, total = await blog.list_posts(status=status, tag=tag, author=author, query=q, limit=limit)
    return envelope(posts, {"total": total, "limit": limit})


@router.post("")
async def create_post(payload: PostCreate, blog: BlogService = Depends(get_blog_service)):
    post = await blog.create_post(payload)
    return envelope(post, status_code=201)


@router.get("/{post_id}")
async def get_post(post_id: str, blog: BlogService = Depends(get_blog_service)):
    """Post detail. Each call counts one view."""
    return envelope(await blog.get_post(post_id))


@router.patch("/{post_id}")
async def update_post(post_id: str, payload: PostUpdate, blog: BlogService = Depends(get_blog_service)):
    return envelope(await blog.update_post(post_id, payload))


@router.delete("/{post_id}")
async def delete_post(post_id: str, blog: BlogService = Depends(get_blog_service)):
    await blog.delete_post(post_id)
    return envelope({"id": post_id}, {"deleted": True})


@router.post("/{post_id}/publish")
async def publish_post(
    post_id: str,
    payload: Optional[PublishRequest] = None,
    blog: BlogService = Depends(get_blog_service),
):
    """Publish immediately, or schedule when ``scheduledFor`` is sent."""
    scheduled_for = payload.scheduled_for if payload else None
    return envelope(await blog.publish_post(post_id, scheduled_for))
