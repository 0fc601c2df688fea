"""Exceptions for the cache-aside layer.

Store-level failures (StoreUnavailableError, CacheBackendError,
CacheSerializationError, InvalidationError) are raised by backends and
absorbed by CacheService; callers never see them. CacheNotInitializedError
is raised by the FastAPI dependency and mapped to HTTP 503 by the
exception handlers.
"""

from typing import Any


class CacheAsideException(Exception):
    """Base exception for all cache-aside errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. key, pattern, backend).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation for HTTP responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class StoreUnavailableError(CacheAsideException):
    """Backing store connect or command failure (connection refused, timeout)."""

    def __init__(self, backend: str, reason: str) -> None:
        super().__init__(
            f"Cache store '{backend}' unavailable: {reason}",
            "STORE_UNAVAILABLE",
            {"backend": backend, "reason": reason},
        )


class CacheBackendError(CacheAsideException):
    """Backing store rejected a command for a reason other than connectivity."""

    def __init__(self, backend: str, operation: str, reason: str) -> None:
        super().__init__(
            f"Cache store '{backend}' failed on {operation}: {reason}",
            "CACHE_BACKEND_ERROR",
            {"backend": backend, "operation": operation, "reason": reason},
        )


class CacheSerializationError(CacheAsideException):
    """Value could not be encoded to or decoded from the stored format."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            f"Cache value for key {key!r} could not be serialized: {reason}",
            "CACHE_SERIALIZATION_ERROR",
            {"key": key, "reason": reason},
        )


class InvalidationError(CacheAsideException):
    """Pattern-based bulk delete failed; some keys may already be deleted."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(
            f"Cache invalidation failed for pattern {pattern!r}: {reason}",
            "CACHE_INVALIDATION_ERROR",
            {"pattern": pattern, "reason": reason},
        )


class CacheNotInitializedError(CacheAsideException):
    """No CacheService on app.state (lifespan did not run or cache was closed)."""

    def __init__(self) -> None:
        super().__init__(
            "Cache service is not initialized",
            "CACHE_NOT_INITIALIZED",
        )
