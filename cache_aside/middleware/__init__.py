"""HTTP middleware: response cache.

Applied in main app when RESPONSE_CACHE_ENABLED is set (off by default).
Import and use from cache_aside.main.
"""

from cache_aside.middleware.response_cache import ResponseCacheMiddleware

__all__ = ["ResponseCacheMiddleware"]
