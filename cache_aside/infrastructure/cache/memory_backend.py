"""In-process expiring map used when Redis is not configured or unreachable.

Entries expire lazily: a read past expires_at evicts the entry and reports a
miss. Once the map grows past sweep_threshold, each write also sweeps all
expired entries so abandoned keys do not accumulate.

Pattern matching is approximate: the first "*" of the pattern is removed and
keys are matched by substring. "user:*" behaves like the Redis glob, but
patterns such as "a*b" or "*x*" do not.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from cache_aside.core.constants import CACHE_BACKEND_MEMORY, DEFAULT_SWEEP_THRESHOLD

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Stored value with its absolute expiry (clock seconds)."""

    key: str
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class MemoryBackend:
    """Dict-backed CacheBackend. Never suspends; never raises on missing keys."""

    name = CACHE_BACKEND_MEMORY

    def __init__(
        self,
        sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty map.

        Args:
            sweep_threshold: Map size above which writes sweep expired entries.
            clock: Seconds source; injectable for tests.
        """
        self._entries: dict[str, CacheEntry] = {}
        self._sweep_threshold = sweep_threshold
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    async def open(self) -> None:
        logger.debug("Memory cache ready")

    async def close(self) -> None:
        self._entries.clear()

    async def raw_get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    async def raw_set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            expires_at=self._clock() + ttl_seconds,
        )
        if len(self._entries) > self._sweep_threshold:
            self.sweep_expired()

    async def raw_delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def raw_keys_matching(self, pattern: str) -> list[str]:
        needle = pattern.replace("*", "", 1)
        return [key for key in self._entries if needle in key]

    async def raw_delete_many(self, keys: Iterable[str]) -> int:
        deleted = 0
        for key in keys:
            if self._entries.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def raw_clear(self) -> None:
        self._entries.clear()

    async def raw_count(self) -> int:
        self.sweep_expired()
        return len(self._entries)

    def sweep_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Memory cache swept %s expired entries", len(expired))
        return len(expired)
