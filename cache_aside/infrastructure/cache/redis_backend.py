"""Redis backing store (redis.asyncio).

Connection and timeout failures surface as StoreUnavailableError so that
CacheService can demote to its in-process fallback; any other Redis error
surfaces as CacheBackendError. Pattern lookups use SCAN (non-blocking) and
bulk deletes use pipelined UNLINK.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import redis.asyncio as redis

from cache_aside.core.constants import CACHE_BACKEND_REDIS, INVALIDATION_CHUNK_SIZE
from cache_aside.exceptions import CacheBackendError, StoreUnavailableError

logger = logging.getLogger(__name__)


class RedisBackend:
    """CacheBackend on a single process-wide Redis connection pool."""

    name = CACHE_BACKEND_REDIS

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: str | None = None,
        connect_timeout: float = 5.0,
        command_timeout: float = 3.0,
        redis_client: redis.Redis | None = None,
    ) -> None:
        """Initialize backend; no connection is made until open().

        Args:
            host: Redis host.
            port: Redis port.
            db: Redis database index.
            password: Optional Redis password.
            connect_timeout: Seconds allowed to establish a connection.
            command_timeout: Seconds allowed per command round-trip.
            redis_client: Optional pre-built client for testing or DI.
        """
        self.host = host
        self.port = port
        self.db = db
        self._password = password
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.redis = redis_client

    async def open(self) -> None:
        """Create the client (if not injected) and PING it.

        Raises:
            StoreUnavailableError: Redis unreachable or timed out.
            CacheBackendError: Redis refused the PING (e.g. auth failure).
        """
        if self.redis is None:
            self.redis = redis.Redis(
                host=self.host,
                port=self.port,
                db=self.db,
                password=self._password,
                decode_responses=True,
                socket_connect_timeout=self.connect_timeout,
                socket_timeout=self.command_timeout,
                socket_keepalive=True,
            )
        try:
            await self.redis.ping()
        except (redis.ConnectionError, redis.TimeoutError) as e:
            raise StoreUnavailableError(self.name, str(e)) from e
        except redis.RedisError as e:
            raise CacheBackendError(self.name, "ping", str(e)) from e
        logger.info("Redis cache connected: %s:%s/%s", self.host, self.port, self.db)

    async def close(self) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.aclose()
        except redis.RedisError:
            logger.warning("Error while closing Redis connection", exc_info=True)
        self.redis = None
        logger.info("Redis cache disconnected")

    def _client(self, operation: str) -> redis.Redis:
        if self.redis is None:
            raise StoreUnavailableError(self.name, f"{operation} called before open()")
        return self.redis

    def _translate(self, operation: str, error: redis.RedisError) -> Exception:
        if isinstance(error, (redis.ConnectionError, redis.TimeoutError)):
            return StoreUnavailableError(self.name, str(error))
        return CacheBackendError(self.name, operation, str(error))

    async def raw_get(self, key: str) -> str | None:
        client = self._client("get")
        try:
            return await client.get(key)
        except redis.RedisError as e:
            raise self._translate("get", e) from e

    async def raw_set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        client = self._client("setex")
        try:
            await client.setex(key, ttl_seconds, value)
        except redis.RedisError as e:
            raise self._translate("setex", e) from e

    async def raw_delete(self, key: str) -> None:
        client = self._client("delete")
        try:
            await client.delete(key)
        except redis.RedisError as e:
            raise self._translate("delete", e) from e

    async def raw_keys_matching(self, pattern: str) -> list[str]:
        client = self._client("scan")
        try:
            return [key async for key in client.scan_iter(match=pattern)]
        except redis.RedisError as e:
            raise self._translate("scan", e) from e

    async def raw_delete_many(self, keys: Iterable[str]) -> int:
        """UNLINK keys in chunks of INVALIDATION_CHUNK_SIZE, one pipeline per chunk."""
        client = self._client("unlink")
        keys = list(keys)
        deleted = 0
        try:
            for start in range(0, len(keys), INVALIDATION_CHUNK_SIZE):
                chunk = keys[start : start + INVALIDATION_CHUNK_SIZE]
                async with client.pipeline(transaction=False) as pipe:
                    pipe.unlink(*chunk)
                    results = await pipe.execute()
                deleted += sum(int(r or 0) for r in results)
        except redis.RedisError as e:
            raise self._translate("unlink", e) from e
        return deleted

    async def raw_clear(self) -> None:
        client = self._client("flushdb")
        try:
            await client.flushdb()
        except redis.RedisError as e:
            raise self._translate("flushdb", e) from e

    async def raw_count(self) -> int:
        client = self._client("dbsize")
        try:
            return int(await client.dbsize())
        except redis.RedisError as e:
            raise self._translate("dbsize", e) from e
