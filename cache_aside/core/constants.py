"""Core constants: backend names, cache key prefixes and defaults.

Single source of truth for cache key structure (DRY). Used by
infrastructure.cache.keys and the response cache middleware.
"""

# Backend names (Settings.cache_backend, CacheBackend.name)
CACHE_BACKEND_REDIS = "redis"
CACHE_BACKEND_MEMORY = "memory"

# Defaults
DEFAULT_CACHE_TTL = 300
DEFAULT_SWEEP_THRESHOLD = 1000
INVALIDATION_CHUNK_SIZE = 500

# Cache key prefixes
CACHE_PREFIX_RESPONSE = "cache"
CACHE_PREFIX_TENANT = "tenant"
CACHE_PREFIX_USER = "user"

# Delimiter for composite keys
CACHE_KEY_SEP = ":"

# User segment of response keys when the request carries no user
ANONYMOUS_USER = "anonymous"
