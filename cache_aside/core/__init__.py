"""Core: config, constants, lifespan and exception handlers.

Single place for settings and shared constants.
"""

from cache_aside.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
