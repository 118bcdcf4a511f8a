"""Error taxonomy and the FastAPI handlers that turn it into JSON responses.

Every error body has the shape ``{"error": <message>, "type": <class name>}``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class LessonAppError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(LessonAppError):
    """Malformed or missing input."""

    status_code = 400


class ConfigError(LessonAppError):
    """A required external credential or URL is missing."""

    status_code = 500


class StoreError(LessonAppError):
    """The record store rejected or failed an operation."""

    status_code = 500


class NotFoundError(LessonAppError):
    status_code = 404


class GenerationError(LessonAppError):
    """The text-generation call failed (HTTP error, transport error, bad payload)."""

    status_code = 502

    def __init__(self, message: str, *, upstream_status: int = 0):
        super().__init__(message)
        self.upstream_status = upstream_status


def error_payload(exc: Exception) -> dict[str, str]:
    message = exc.message if isinstance(exc, LessonAppError) else str(exc)
    return {"error": message, "type": type(exc).__name__}


async def lesson_error_handler(request: Request, exc: LessonAppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc)
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report body/path validation failures as a 400 ValidationError."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    message = "; ".join(parts) or "Invalid request"
    return JSONResponse(status_code=400, content={"error": message, "type": "ValidationError"})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "type": "InternalError"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LessonAppError, lesson_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
