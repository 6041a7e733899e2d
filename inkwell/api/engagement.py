"""Clap and bookmark endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends

from inkwell.api.deps import get_blog_service
from inkwell.api.responses import envelope
from inkwell.models.post import ClapRequest
from inkwell.services.blog import BlogService

router = APIRouter()


@router.post("/{post_id}/clap")
async def clap_post(
    post_id: str,
    payload: Optional[ClapRequest] = None,
    blog: BlogService = Depends(get_blog_service),
):
    """Add 1 to 50 claps per request (``amount`` is clamped)."""
    amount = payload.amount if payload else 1
    return envelope(await blog.clap(post_id, amount))


@router.post("/{post_id}/bookmark")
async def bookmark_post(post_id: str, blog: BlogService = Depends(get_blog_service)):
    return envelope(await blog.bookmark(post_id))
