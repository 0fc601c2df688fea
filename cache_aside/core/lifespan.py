"""Application lifespan: startup and shutdown.

Single place for startup/shutdown logic (SRP). Used by main.py; no cache
logic here, only wiring of the CacheService onto app.state.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from cache_aside.core.config import get_settings
from cache_aside.infrastructure.cache import create_cache_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the cache on startup, yield, close it on shutdown.

    A cache that cannot reach Redis still opens (on its in-process
    fallback), so startup never fails because of the cache.
    """
    settings = get_settings()

    # ---- Startup ----
    cache = create_cache_service(settings)
    await cache.open()
    app.state.cache = cache

    yield

    # ---- Shutdown ----
    if getattr(app.state, "cache", None) is not None:
        await app.state.cache.close()
        app.state.cache = None
        logger.info("Cache disconnected")
