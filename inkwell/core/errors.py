"""
Error taxonomy and unified error capture.

Every failure the blog core can surface is a ``BlogError`` carrying a stable
``code`` and an HTTP-equivalent ``status_code`` so the API layer can render the
``{"errors": [{code, message, details}]}`` envelope without knowing the cause.

Failures that must never break a user-facing mutation (search index sync,
feed cache) are wrapped in ``error_boundary`` which logs and suppresses them.

Usage:
    raise NotFoundError("Post not found.", code="POST_NOT_FOUND", details={"id": post_id})

    with error_boundary("search_index_add", post_id=post.id):
        await index.add(post.id, document, collection)
"""

from typing import Optional, Any, Dict
from datetime import datetime, timezone
from contextlib import contextmanager

import structlog

from inkwell.core.context import get_context_dict

logger = structlog.get_logger(__name__)

__all__ = [
    "BlogError",
    "ValidationError",
    "NotFoundError",
    "StorageError",
    "IndexSyncError",
    "CacheBackendError",
    "capture_exception",
    "ErrorHandler",
    "error_boundary",
]


class BlogError(Exception):
    """Base class for classifiable blog errors."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(BlogError):
    """Missing or empty required fields. Never retried."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(BlogError):
    status_code = 404
    code = "NOT_FOUND"


class StorageError(BlogError):
    """Directory creation or file I/O failure on a required path."""

    status_code = 500
    code = "STORAGE_ERROR"


class IndexSyncError(BlogError):
    """Search index add/remove failure. Logged, never propagated."""

    code = "INDEX_SYNC_FAILED"


class CacheBackendError(BlogError):
    """Cache unavailable or failing. Degrades to always-recompute."""

    code = "CACHE_UNAVAILABLE"


def capture_exception(
    exc: BaseException,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error",
) -> None:
    """
    Log an exception with request context.

    Args:
        exc: Exception to capture
        context: Additional context dict (e.g., {"post_id": "quiet-courage"})
        level: Log level name (debug, info, warning, error)
    """
    enriched_context = {
        **get_context_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "error_type": type(exc).__name__,
        "error": str(exc),
        **(context or {}),
    }

    log_func = getattr(logger, level, logger.error)
    log_func("Exception captured", **enriched_context)


class ErrorHandler:
    """
    Context manager for handling errors with automatic capture.

    Usage:
        # Suppress and log errors
        with ErrorHandler("search_index_remove", context={"post_id": post_id}):
            await index.remove(post_id, collection)

        # Re-raise after logging
        with ErrorHandler("persist_post", reraise=True):
            await storage.create(path, document)

    Only ``Exception`` subclasses are handled; cancellation passes through.
    """

    def __init__(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        capture: bool = True,
        reraise: bool = False,
        level: str = "warning",
    ):
        self.operation = operation
        self.context = context or {}
        self.capture = capture
        self.reraise = reraise
        self.level = level
        self.error: Optional[Exception] = None

    def __enter__(self) -> "ErrorHandler":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_val is None or not isinstance(exc_val, Exception):
            return False

        self.error = exc_val
        if self.capture:
            capture_exception(
                exc_val,
                context={"operation": self.operation, **self.context},
                level=self.level,
            )

        # Return True to suppress exception (unless reraise=True)
        return not self.reraise

    @property
    def failed(self) -> bool:
        return self.error is not None


@contextmanager
def error_boundary(operation: str, **context):
    """
    Log and suppress any error raised inside the block.

    Usage:
        with error_boundary("feed_cache_put", key=key) as boundary:
            await cache.put(key, entry)
        if boundary.failed:
            ...
    """
    handler = ErrorHandler(operation, context=context, capture=True, reraise=False)
    with handler:
        yield handler
