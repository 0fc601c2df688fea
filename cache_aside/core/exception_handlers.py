"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Maps cache exceptions that
reach the HTTP layer to JSON responses. Store-level errors never get here;
CacheService absorbs them.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cache_aside.core.config import get_settings
from cache_aside.exceptions import CacheAsideException

logger = logging.getLogger(__name__)

# Map error_code to HTTP status when applicable
_ERROR_CODE_STATUS: dict[str, int] = {
    "CACHE_NOT_INITIALIZED": 503,
    "STORE_UNAVAILABLE": 503,
}


def _cache_exception_handler(request: Request, exc: CacheAsideException) -> JSONResponse:
    """Return JSON from CacheAsideException.to_dict() with appropriate status code."""
    status = _ERROR_CODE_STATUS.get(exc.error_code, 500)
    logger.warning("%s on %s %s", exc.error_code, request.method, request.url.path)
    return JSONResponse(status_code=status, content=exc.to_dict())


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception: %s", exc)
    settings = get_settings()
    detail: Any = str(exc) if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Call once after creating the app. Handlers: CacheAsideException (and
    subclasses), generic Exception.
    """
    app.add_exception_handler(CacheAsideException, _cache_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
