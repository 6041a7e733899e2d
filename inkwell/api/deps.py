from fastapi import Request

from inkwell.services.blog import BlogService


def get_blog_service(request: Request) -> BlogService:
    """The BlogService created by the app factory."""
    return request.app.state.blog
