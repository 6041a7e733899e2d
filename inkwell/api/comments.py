from fastapi import APIRouter, Depends

from inkwell.api.deps import get_blog_service
from inkwell.api.responses import envelope
from inkwell.models.comment import CommentCreate, CommentUpdate
from inkwell.services.blog import BlogService

router = APIRouter()


@router.get("/posts/{post_id}/comments")
async def list_comments(post_id: str, blog: BlogService = Depends(get_blog_service)):
    comments = await blog.list_comments(post_id)
    return envelope(comments, {"total": len(comments)})


@router.post("/posts/{post_id}/comments")
async def create_comment(post_id: str, payload: CommentCreate, blog: BlogService = Depends(get_blog_service)):
    comment = await blog.create_comment(post_id, payload)
    return envelope(comment, status_code=201)


@router.patch("/comments/{comment_id}")
async def update_comment(comment_id: str, payload: CommentUpdate, blog: BlogService = Depends(get_blog_service)):
    return envelope(await blog.update_comment(comment_id, payload))
