"""Cache: cache-aside service, backing stores and cache key utilities.

Used by request handlers and background jobs to memoize database queries
and secret lookups. create_cache_service builds the service from
cache_aside.core.config; key format is in keys.py (DRY).
"""

from cache_aside.infrastructure.cache.backend_protocol import CacheBackend
from cache_aside.infrastructure.cache.cache_service import CacheService, CacheStats, cached
from cache_aside.infrastructure.cache.factory import create_cache_service
from cache_aside.infrastructure.cache.keys import (
    response_key,
    response_pattern,
    tenant_key,
    tenant_pattern,
    user_key,
)
from cache_aside.infrastructure.cache.memory_backend import CacheEntry, MemoryBackend
from cache_aside.infrastructure.cache.redis_backend import RedisBackend

__all__ = [
    "CacheBackend",
    "CacheEntry",
    "CacheService",
    "CacheStats",
    "MemoryBackend",
    "RedisBackend",
    "cached",
    "create_cache_service",
    "response_key",
    "response_pattern",
    "tenant_key",
    "tenant_pattern",
    "user_key",
]
