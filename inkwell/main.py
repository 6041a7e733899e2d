from contextlib import asynccontextmanager
from typing import Any, Optional, cast

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from inkwell import __version__
from inkwell.api import backoffice, comments, discovery, engagement, posts, site_settings
from inkwell.api.responses import register_exception_handlers
from inkwell.core.config import Settings, settings
from inkwell.core.logging_config import get_logger
from inkwell.middleware.context import RequestContextMiddleware
from inkwell.services.blog import BlogService

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    blog: BlogService = app.state.blog
    logger.info("Inkwell API starting", version=__version__, posts_dir=str(blog.store.root))
    await blog.startup()
    yield
    logger.info("Inkwell API stopped")


def create_app(service: Optional[BlogService] = None, config: Settings = settings) -> FastAPI:
    """
    Build the FastAPI application.

    Pass ``service`` to run the API against an already wired BlogService
    (tests use this to point the stores at a temporary directory).
    """
    app = FastAPI(
        title=config.PROJECT_NAME,
        version=__version__,
        openapi_url=f"{config.API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )
    app.state.blog = service or BlogService.from_settings(config)

    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        config.FRONTEND_URL,
    ]
    origins = list(set([o for o in origins if o]))

    # Requests arrive through a reverse proxy
    app.add_middleware(cast(Any, ProxyHeadersMiddleware), trusted_hosts=["*"])
    app.add_middleware(cast(Any, GZipMiddleware), minimum_size=1000)
    app.add_middleware(
        cast(Any, CORSMiddleware),
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(cast(Any, RequestContextMiddleware))

    register_exception_handlers(app)

    prefix = config.API_PREFIX
    app.include_router(posts.router, prefix=f"{prefix}/posts", tags=["posts"])
    app.include_router(engagement.router, prefix=f"{prefix}/posts", tags=["engagement"])
    app.include_router(comments.router, prefix=prefix, tags=["comments"])
    app.include_router(discovery.router, prefix=prefix, tags=["discovery"])
    app.include_router(backoffice.router, prefix=prefix, tags=["backoffice"])
    app.include_router(site_settings.router, prefix=prefix, tags=["settings"])
    app.include_router(backoffice.sitemap_router, tags=["sitemap"])

    @app.get("/health")
    def health():
        """Basic health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
