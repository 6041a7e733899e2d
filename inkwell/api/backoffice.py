"""
Backoffice endpoints: service status, home feed and the XML sitemap.

The sitemap is served outside the API prefix at ``/sitemaps``.
"""

from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from inkwell.api.deps import get_blog_service
from inkwell.api.responses import envelope
from inkwell.core.clock import utc_now
from inkwell.core.config import settings
from inkwell.core.errors import BlogError
from inkwell.models.post import Post
from inkwell.services.blog import BlogService
from inkwell.services.codec import format_iso
from inkwell.services.text import escape_xml

logger = structlog.get_logger(__name__)

router = APIRouter()
sitemap_router = APIRouter()

SITEMAP_CONTENT_TYPE = "application/xml"


@router.get("/status")
async def blog_status(blog: BlogService = Depends(get_blog_service)):
    return envelope(await blog.status())


@router.get("/feed/home")
async def home_feed(blog: BlogService = Depends(get_blog_service)):
    """Featured, latest, trending, tags and drafts. Cached for up to a minute."""
    return envelope(await blog.home_feed(), {"cached": False})


def request_base_url(request: Request) -> str:
    """Public origin of the request, honouring X-Forwarded-Proto and X-Forwarded-Host."""
    forwarded_proto = request.headers.get("x-forwarded-proto")
    forwarded_host = request.headers.get("x-forwarded-host")
    protocol = (forwarded_proto.split(",")[0].strip() if forwarded_proto else request.url.scheme) or "http"
    host = (forwarded_host.split(",")[0].strip() if forwarded_host else request.headers.get("host")) or ""
    return f"{protocol}://{host}" if host else ""


def render_sitemap(posts: list[Post], base_url: str, view_prefix: str = settings.VIEW_PREFIX) -> str:
    post_prefix = f"{base_url}{view_prefix}/posts"
    entries = []
    for post in posts:
        loc = f"{post_prefix}/{quote(post.slug or post.id, safe='')}"
        last_modified = format_iso(post.updated_at or post.published_at or post.created_at or utc_now())
        entries.append(
            "  <url>\n"
            f"    <loc>{escape_xml(loc)}</loc>\n"
            f"    <lastmod>{escape_xml(last_modified)}</lastmod>\n"
            "    <changefreq>weekly</changefreq>\n"
            "    <priority>0.6</priority>\n"
            "  </url>"
        )

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        "\n".join(entries),
        "</urlset>",
    ]
    return "\n".join(line for line in lines if line)


@sitemap_router.get("/sitemaps")
async def sitemap(request: Request, blog: BlogService = Depends(get_blog_service)):
    try:
        posts = await blog.sitemap_posts()
    except BlogError as exc:
        logger.error("Failed to build sitemap", error=exc.message)
        return Response(
            content='<?xml version="1.0" encoding="UTF-8"?><error>Unable to generate sitemap</error>',
            status_code=500,
            media_type=SITEMAP_CONTENT_TYPE,
        )
    return Response(content=render_sitemap(posts, request_base_url(request)), media_type=SITEMAP_CONTENT_TYPE)
