from fastapi import APIRouter, Depends

from inkwell.api.deps import get_blog_service
from inkwell.api.responses import envelope
from inkwell.models.site_settings import SiteSettingsUpdate
from inkwell.services.blog import BlogService

router = APIRouter()


@router.get("/settings")
async def get_site_settings(blog: BlogService = Depends(get_blog_service)):
    return envelope(await blog.get_settings())


@router.patch("/settings")
async def update_site_settings(payload: SiteSettingsUpdate, blog: BlogService = Depends(get_blog_service)):
    """Partial update: only the fields sent (including nested links) change."""
    return envelope(await blog.update_settings(payload))
