"""Cache-aside façade over a CacheBackend.

CacheService is the only cache entry point for request handlers and
background jobs. Values are JSON-encoded here, so every backend stores the
same representation. All operations fail open: store errors become a miss
(get), False (set, delete, invalidate_pattern, clear) or a direct fetch
(get_or_set). The one error that crosses this boundary is the one raised by
the caller's own fetch callable.

When the primary backend reports StoreUnavailableError (at open() or on any
later call while open) the service switches to its fallback backend for the
rest of its lifetime. There is no reconnect loop. A closed service does not
demote; its calls simply fail open.
"""

from __future__ import annotations

import inspect
import json
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import wraps
from types import TracebackType
from typing import Any, TypeVar

from cache_aside.core.constants import DEFAULT_CACHE_TTL
from cache_aside.exceptions import (
    CacheAsideException,
    CacheBackendError,
    CacheSerializationError,
    InvalidationError,
    StoreUnavailableError,
)
from cache_aside.infrastructure.cache.backend_protocol import CacheBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _encode(key: str, value: Any) -> str:
    """JSON-encode value, rejecting values that would not read back equal.

    Tuples, non-str dict keys and NaN encode without error but decode to
    something else, so they are refused like unserializable values.
    """
    try:
        encoded = json.dumps(value)
    except (TypeError, ValueError) as e:
        raise CacheSerializationError(key, str(e)) from e
    if json.loads(encoded) != value:
        raise CacheSerializationError(key, "value changes when read back from JSON")
    return encoded


def _decode(key: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as e:
        raise CacheSerializationError(key, str(e)) from e


@dataclass
class CacheStats:
    """Snapshot returned by CacheService.stats()."""

    backend: str
    degraded: bool
    hits: int
    misses: int
    keys: int | None


class CacheService:
    """Async cache-aside service with TTL support and in-process fallback.

    Construct with a primary backend and, optionally, a fallback backend
    (normally a MemoryBackend). Call open() at startup and close() at
    shutdown, or use ``async with``.

    Keys are used verbatim. Scoping keys by tenant and user is the caller's
    job; see cache_aside.infrastructure.cache.keys.
    """

    def __init__(
        self,
        backend: CacheBackend,
        fallback: CacheBackend | None = None,
        default_ttl: int = DEFAULT_CACHE_TTL,
    ) -> None:
        """Initialize cache service.

        Args:
            backend: Primary backing store.
            fallback: Store used after the primary becomes unavailable; None
                keeps the primary and turns every failed call into a miss.
            default_ttl: TTL in seconds when set()/get_or_set() get none.
        """
        self.backend = backend
        self.default_ttl = default_ttl
        self._fallback = fallback
        self._degraded = False
        self._opened = False
        self._hits = 0
        self._misses = 0

    @property
    def backend_name(self) -> str:
        """Name of the backend currently serving requests."""
        return self.backend.name

    @property
    def is_degraded(self) -> bool:
        """True once the primary store failed and the fallback took over."""
        return self._degraded

    def is_available(self) -> bool:
        """Return True if the service has been opened and not closed."""
        return self._opened

    async def open(self) -> None:
        """Open the primary backend; demote to the fallback if it fails."""
        try:
            await self.backend.open()
        except CacheAsideException as e:
            logger.warning("Cache backend %s failed to open: %s", self.backend.name, e.message)
            await self._demote()
        self._opened = True
        logger.info("Cache service ready (backend: %s)", self.backend.name)

    async def close(self) -> None:
        """Close the active backend. Safe to call more than once."""
        if not self._opened:
            return
        await self.backend.close()
        self._opened = False
        logger.info("Cache service closed")

    async def __aenter__(self) -> CacheService:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _demote(self) -> None:
        """Switch permanently to the fallback backend (no-op without one)."""
        if self._fallback is None or self.backend is self._fallback:
            return
        failed = self.backend
        self.backend = self._fallback
        self._degraded = True
        await self.backend.open()
        await failed.close()
        logger.warning(
            "Cache store %s unavailable; using %s cache for the rest of this process",
            failed.name,
            self.backend.name,
        )

    async def _store_unavailable(
        self, operation: str, target: str, error: StoreUnavailableError
    ) -> None:
        """Log a connectivity failure; demote only while the service is open."""
        logger.warning("Cache %s unavailable for %s: %s", operation, target, error.message)
        if self._opened:
            await self._demote()

    async def get(self, key: str) -> Any | None:
        """Return cached value (JSON-decoded) or None.

        None covers a missing key, an expired entry, an undecodable payload
        and any store failure.

        Args:
            key: Cache key (use cache_aside.infrastructure.cache.keys builders).

        Returns:
            Cached value or None.
        """
        try:
            raw = await self.backend.raw_get(key)
            if raw is None:
                self._misses += 1
                logger.debug("Cache MISS: %s", key)
                return None
            value = _decode(key, raw)
        except StoreUnavailableError as e:
            await self._store_unavailable("get", key, e)
            return None
        except CacheSerializationError as e:
            self._misses += 1
            logger.warning("Cache get discarded undecodable value: %s", e.message)
            return None
        except CacheBackendError:
            logger.exception("Cache get error for key %s", key)
            return None
        self._hits += 1
        logger.debug("Cache HIT: %s", key)
        return value

    async def set(self, key: str, value: Any, ttl: float | None = None) -> bool:
        """Store value with TTL. Returns True on success.

        Fractional TTLs are rounded up to whole seconds (Redis SETEX only
        takes integers), so every backend expires the entry at the same time.

        Args:
            key: Cache key.
            value: Value to cache (JSON-serializable, reads back equal).
            ttl: Time-to-live in seconds; defaults to default_ttl.

        Returns:
            True if stored, False otherwise.
        """
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            logger.warning("Cache set skipped for key %s: non-positive TTL %s", key, ttl)
            return False
        ttl = math.ceil(ttl)
        try:
            await self.backend.raw_set_with_expiry(key, _encode(key, value), ttl)
        except StoreUnavailableError as e:
            await self._store_unavailable("set", key, e)
            return False
        except CacheSerializationError as e:
            logger.warning("Cache set rejected value: %s", e.message)
            return False
        except CacheBackendError:
            logger.exception("Cache set error for key %s", key)
            return False
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
        return True

    async def delete(self, key: str) -> bool:
        """Remove key from cache. Deleting an absent key succeeds.

        Args:
            key: Cache key to delete.

        Returns:
            True if the store accepted the delete, False on store failure.
        """
        try:
            await self.backend.raw_delete(key)
        except StoreUnavailableError as e:
            await self._store_unavailable("delete", key, e)
            return False
        except CacheBackendError:
            logger.exception("Cache delete error for key %s", key)
            return False
        logger.debug("Cache DELETE: %s", key)
        return True

    async def get_or_set(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T] | T],
        ttl: float | None = None,
    ) -> T:
        """Return the cached value for key, or fetch, cache and return it.

        fetch runs only on a miss. Whatever it raises propagates unchanged and
        nothing is cached. A None result is returned but not cached. Caching
        the fetched value is best-effort; a failed set does not change the
        return value.

        There is no single-flight guarantee: concurrent misses on the same key
        each call fetch.

        Args:
            key: Cache key.
            fetch: Zero-argument callable; may return a value or an awaitable.
            ttl: Time-to-live in seconds; defaults to default_ttl.

        Returns:
            Cached or freshly fetched value.
        """
        cached_value = await self.get(key)
        if cached_value is not None:
            return cached_value
        value = fetch()
        if inspect.isawaitable(value):
            value = await value
        if value is not None:
            await self.set(key, value, ttl=ttl)
        return value

    async def _delete_matching(self, pattern: str) -> int:
        try:
            keys = await self.backend.raw_keys_matching(pattern)
            if not keys:
                return 0
            return await self.backend.raw_delete_many(keys)
        except CacheBackendError as e:
            raise InvalidationError(pattern, e.message) from e

    async def invalidate_pattern(self, pattern: str) -> bool:
        """Delete all keys matching pattern. Returns True on success.

        Redis resolves the pattern with SCAN MATCH (glob). The in-process
        backend strips the first "*" and matches by substring; see
        MemoryBackend. A failure part-way may leave some keys deleted.

        Args:
            pattern: Key pattern (e.g. tenant:t-1:*).

        Returns:
            True if matching keys were deleted (or none matched), False otherwise.
        """
        try:
            deleted = await self._delete_matching(pattern)
        except StoreUnavailableError as e:
            await self._store_unavailable("invalidate", pattern, e)
            return False
        except InvalidationError as e:
            logger.error("Cache INVALIDATE error: %s", e.message)
            return False
        if deleted > 0:
            logger.info("Cache INVALIDATE: %s (%s keys)", pattern, deleted)
        return True

    async def clear(self) -> bool:
        """Clear the entire active store and reset hit/miss counters. Use with caution.

        On Redis this is FLUSHDB, so it removes every key in the configured
        database, not only keys written through this service.

        Returns:
            True if cleared, False otherwise.
        """
        try:
            await self.backend.raw_clear()
        except StoreUnavailableError as e:
            await self._store_unavailable("clear", "*", e)
            return False
        except CacheBackendError:
            logger.exception("Cache clear error")
            return False
        self._hits = 0
        self._misses = 0
        logger.warning("Cache CLEARED: all keys deleted (backend: %s)", self.backend.name)
        return True

    async def stats(self) -> CacheStats:
        """Return hit/miss counters and the number of keys in the active store.

        keys is None when the store cannot be asked.
        """
        try:
            keys: int | None = await self.backend.raw_count()
        except StoreUnavailableError as e:
            await self._store_unavailable("stats", "*", e)
            keys = None
        except CacheBackendError:
            logger.exception("Cache stats error")
            keys = None
        return CacheStats(
            backend=self.backend.name,
            degraded=self._degraded,
            hits=self._hits,
            misses=self._misses,
            keys=keys,
        )


def _resolve_cache(
    args: tuple[Any, ...], kwargs: dict[str, Any]
) -> tuple[CacheService | None, tuple[Any, ...], dict[str, Any]]:
    """Resolve CacheService and args/kwargs for the wrapped function.

    Resolution order: keyword "cache", then args[0] if CacheService, then
    args[0].cache. Returned args/kwargs are the ones used for the key.
    """
    if isinstance(kwargs.get("cache"), CacheService):
        cache = kwargs["cache"]
        key_kwargs = {k: v for k, v in kwargs.items() if k != "cache"}
        return cache, args, key_kwargs
    if args:
        first = args[0]
        if isinstance(first, CacheService):
            return first, args[1:], kwargs
        cache_attr = getattr(first, "cache", None)
        if isinstance(cache_attr, CacheService):
            return cache_attr, args[1:], kwargs
    return None, args, kwargs


def cached(
    key_prefix: str,
    ttl: int | None = None,
    key_builder: Callable[..., str] | None = None,
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Any]]]:
    """Decorator that memoizes an async function through CacheService.get_or_set.

    The wrapped function must receive a CacheService in one of these ways:
    - keyword argument "cache" (recommended, e.g. from Depends),
    - first argument is the CacheService instance,
    - or first argument has a .cache attribute that is a CacheService.

    Without a CacheService the function runs uncached.

    Args:
        key_prefix: Prefix for cache key (e.g. 'employee').
        ttl: Time-to-live in seconds; None uses the service default.
        key_builder: Optional callable(*args, **kwargs) -> key; else built
            from key_prefix and the remaining args/kwargs.

    Returns:
        Decorator.
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            cache, key_args, key_kwargs = _resolve_cache(args, kwargs)
            if cache is None:
                return await func(*args, **kwargs)
            if key_builder:
                cache_key = key_builder(*key_args, **key_kwargs)
            else:
                parts = [str(a) for a in key_args]
                parts.extend(f"{k}={v}" for k, v in sorted(key_kwargs.items()))
                cache_key = f"{key_prefix}:{':'.join(parts)}"
            return await cache.get_or_set(cache_key, lambda: func(*args, **kwargs), ttl=ttl)

        return wrapper

    return decorator
