"""Cache service factory: builds CacheService with a redis or memory backend from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cache_aside.core.constants import CACHE_BACKEND_MEMORY, CACHE_BACKEND_REDIS
from cache_aside.infrastructure.cache.cache_service import CacheService
from cache_aside.infrastructure.cache.memory_backend import MemoryBackend

if TYPE_CHECKING:
    from cache_aside.core.config import Settings


def create_cache_service(settings: "Settings | None" = None) -> CacheService:
    """Create a (not yet opened) CacheService from settings.

    "redis" gets a MemoryBackend fallback for demotion; "memory" has no
    fallback since the in-process map never becomes unavailable.

    Args:
        settings: Application settings; if None, uses get_settings().

    Returns:
        CacheService; call open() (or use the lifespan) before first use.

    Raises:
        ValueError: Unknown backend.
    """
    from cache_aside.core.config import get_settings

    s = settings or get_settings()
    backend = s.cache_backend.lower()

    if backend == CACHE_BACKEND_MEMORY:
        return CacheService(
            MemoryBackend(sweep_threshold=s.memory_cache_sweep_threshold),
            default_ttl=s.cache_default_ttl,
        )
    if backend == CACHE_BACKEND_REDIS:
        from cache_aside.infrastructure.cache.redis_backend import RedisBackend

        return CacheService(
            RedisBackend(
                host=s.redis_host,
                port=s.redis_port,
                db=s.redis_db,
                password=s.redis_password.get_secret_value() if s.redis_password else None,
                connect_timeout=s.redis_connect_timeout,
                command_timeout=s.redis_command_timeout,
            ),
            fallback=MemoryBackend(sweep_threshold=s.memory_cache_sweep_threshold),
            default_ttl=s.cache_default_ttl,
        )
    raise ValueError(
        f"Unknown cache backend: {backend}. Supported: '{CACHE_BACKEND_REDIS}', '{CACHE_BACKEND_MEMORY}'"
    )
