"""HTTP API: router and cache dependency."""

from cache_aside.api.router import api_router

__all__ = ["api_router"]
