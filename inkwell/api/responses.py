"""
Response envelopes.

Success: ``{"data": ..., "meta": {...}}``
Failure: ``{"errors": [{"code", "message", "details"}]}``
"""

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from inkwell.core.errors import BlogError, capture_exception

logger = structlog.get_logger(__name__)


def envelope(data: Any, meta: Optional[dict] = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "data": jsonable_encoder(data, by_alias=True),
            "meta": jsonable_encoder(meta or {}, exclude_none=True),
        },
    )


def error_response(status_code: int, code: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"errors": [{"code": code, "message": message, "details": jsonable_encoder(details or {})}]},
    )


async def blog_error_handler(request: Request, exc: BlogError) -> JSONResponse:
    level = "error" if exc.status_code >= 500 else "info"
    capture_exception(exc, context={"code": exc.code, "path": request.url.path}, level=level)
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(part) for part in error.get("loc", ())[1:]) for error in exc.errors()]
    logger.info("Request validation failed", path=request.url.path, fields=fields)
    return error_response(400, "VALIDATION_ERROR", "Request payload is invalid.", {"fields": fields})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BlogError, blog_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
