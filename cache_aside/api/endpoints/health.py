"""Health check endpoints for liveness and cache status."""

from fastapi import APIRouter

from cache_aside.api.dependencies import CacheDep
from cache_aside.schemas.health import CacheHealthResponse, HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get("/cache", response_model=CacheHealthResponse)
async def cache_health(cache: CacheDep) -> CacheHealthResponse:
    """Report the active cache backend and its counters; status is 'degraded' after demotion."""
    stats = await cache.stats()
    return CacheHealthResponse(
        status="degraded" if stats.degraded else "ok",
        backend=stats.backend,
        degraded=stats.degraded,
        hits=stats.hits,
        misses=stats.misses,
        keys=stats.keys,
    )
