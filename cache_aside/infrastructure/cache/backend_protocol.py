"""Backing store protocol (DIP). Implementations: RedisBackend, MemoryBackend.

Backends move opaque strings; JSON encoding lives in CacheService. Primitives
raise StoreUnavailableError on connectivity loss and CacheBackendError on
other store failures; CacheService absorbs both.
"""

from collections.abc import Iterable
from typing import Protocol


class CacheBackend(Protocol):
    """Protocol for key-value backing stores used by CacheService."""

    name: str

    async def open(self) -> None:
        """Acquire the connection (no-op for in-process stores)."""
        ...

    async def close(self) -> None:
        """Release the connection and any held state."""
        ...

    async def raw_get(self, key: str) -> str | None:
        """Return the stored string or None if missing/expired."""
        ...

    async def raw_set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value under key, expiring after ttl_seconds."""
        ...

    async def raw_delete(self, key: str) -> None:
        """Remove key. Absent keys are not an error."""
        ...

    async def raw_keys_matching(self, pattern: str) -> list[str]:
        """Return keys matching pattern (backend-specific matching rules)."""
        ...

    async def raw_delete_many(self, keys: Iterable[str]) -> int:
        """Remove all given keys; return how many existed."""
        ...

    async def raw_clear(self) -> None:
        """Remove every key in the store."""
        ...

    async def raw_count(self) -> int:
        """Return the number of keys currently held (expired entries may count)."""
        ...
