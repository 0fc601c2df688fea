"""FastAPI dependencies for cache access.

The CacheService is created in the app lifespan (app.state.cache) and
injected into handlers with Depends(get_cache) rather than imported as a
module-level singleton.
"""

from typing import Annotated

from fastapi import Depends, Request

from cache_aside.exceptions import CacheNotInitializedError
from cache_aside.infrastructure.cache import CacheService


def get_cache(request: Request) -> CacheService:
    """Return the app's CacheService; raise CacheNotInitializedError (503) if missing."""
    cache = getattr(request.app.state, "cache", None)
    if cache is None or not cache.is_available():
        raise CacheNotInitializedError()
    return cache


CacheDep = Annotated[CacheService, Depends(get_cache)]
