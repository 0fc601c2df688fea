"""FastAPI application entry point.

Wiring only: logging, lifespan, exception handlers, middleware, routers.
No cache logic here (SRP). See cache_aside.core.lifespan and
cache_aside.core.exception_handlers.

Settings are loaded inside create_app() so that tests can set env (and
clear the get_settings cache) before calling create_app().
"""

from fastapi import FastAPI

from cache_aside.api import api_router
from cache_aside.core.config import get_settings
from cache_aside.core.exception_handlers import register_exception_handlers
from cache_aside.core.lifespan import create_lifespan
from cache_aside.middleware import ResponseCacheMiddleware
from cache_aside.shared.logging import setup_logging


def create_app() -> FastAPI:
    """Build and return the FastAPI application. Settings are resolved here (deferred from import)."""
    settings = get_settings()
    setup_logging()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )

    register_exception_handlers(app)

    if settings.response_cache_enabled:
        app.add_middleware(
            ResponseCacheMiddleware,
            ttl=settings.response_cache_ttl,
            skip_path_fragments=settings.response_cache_skip_fragments,
        )

    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()
