"""Application configuration (settings and environment).

Single source of truth for cache configuration. Uses pydantic-settings
with .env support. Values are validated at load time so a misconfigured
process fails on startup rather than on the first cache call.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cache_aside.core.constants import (
    CACHE_BACKEND_MEMORY,
    CACHE_BACKEND_REDIS,
    DEFAULT_CACHE_TTL,
    DEFAULT_SWEEP_THRESHOLD,
)


class Settings(BaseSettings):
    """Settings loaded from environment and .env.

    All settings have defaults; validate_cache_settings rejects unknown
    backends and non-positive TTLs or timeouts.
    """

    # App
    app_name: str = "cache-aside"
    app_version: str = "1.0.0"
    debug: bool = False

    # Backend selection: "redis" (with in-process fallback) or "memory" only
    cache_backend: str = CACHE_BACKEND_REDIS
    cache_default_ttl: int = DEFAULT_CACHE_TTL

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    redis_connect_timeout: float = 5.0
    redis_command_timeout: float = 3.0

    # In-process map: sweep expired entries once it grows past this size
    memory_cache_sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD

    # HTTP response cache (GET only)
    response_cache_enabled: bool = False
    response_cache_ttl: int = DEFAULT_CACHE_TTL
    response_cache_skip_paths: str = "/profile,/me,/health"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_cache_settings(self) -> "Settings":
        """Validate backend name, TTLs, timeouts and sweep threshold."""
        self.cache_backend = self.cache_backend.strip().lower()
        if self.cache_backend not in (CACHE_BACKEND_REDIS, CACHE_BACKEND_MEMORY):
            raise ValueError(
                f"cache_backend must be '{CACHE_BACKEND_REDIS}' or "
                f"'{CACHE_BACKEND_MEMORY}', got: {self.cache_backend!r}"
            )
        if self.cache_default_ttl <= 0:
            raise ValueError("CACHE_DEFAULT_TTL must be a positive number of seconds")
        if self.response_cache_ttl <= 0:
            raise ValueError("RESPONSE_CACHE_TTL must be a positive number of seconds")
        if self.redis_connect_timeout <= 0 or self.redis_command_timeout <= 0:
            raise ValueError("Redis connect and command timeouts must be positive")
        if self.memory_cache_sweep_threshold < 1:
            raise ValueError("MEMORY_CACHE_SWEEP_THRESHOLD must be at least 1")
        return self

    @property
    def response_cache_skip_fragments(self) -> list[str]:
        """Skip fragments parsed from the comma-separated setting."""
        return [p.strip() for p in self.response_cache_skip_paths.split(",") if p.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
