"""Cache-aside layer with Redis and in-process backends.

Public entry points for library use; FastAPI wiring lives in cache_aside.main.
"""

from cache_aside.core.config import Settings, get_settings
from cache_aside.exceptions import (
    CacheAsideException,
    CacheBackendError,
    CacheNotInitializedError,
    CacheSerializationError,
    InvalidationError,
    StoreUnavailableError,
)
from cache_aside.infrastructure.cache import (
    CacheBackend,
    CacheService,
    CacheStats,
    MemoryBackend,
    RedisBackend,
    cached,
    create_cache_service,
)

__all__ = [
    "CacheAsideException",
    "CacheBackend",
    "CacheBackendError",
    "CacheNotInitializedError",
    "CacheSerializationError",
    "CacheService",
    "CacheStats",
    "InvalidationError",
    "MemoryBackend",
    "RedisBackend",
    "Settings",
    "StoreUnavailableError",
    "cached",
    "create_cache_service",
    "get_settings",
]
