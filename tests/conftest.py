"""Pytest configuration and fixtures for cache-aside.

HTTP tests build the app with cache_aside.main.create_app on the in-process
backend and run its lifespan so app.state.cache is set. Store failures are
simulated with the backends below. All imports use cache_aside.*.
"""

from collections.abc import Iterable

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from cache_aside.core.config import get_settings
from cache_aside.exceptions import CacheBackendError, StoreUnavailableError
from cache_aside.infrastructure.cache import CacheService, MemoryBackend
from cache_aside.main import create_app


class FakeClock:
    """Manually advanced clock for MemoryBackend expiry tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class UnavailableBackend:
    """Backend whose every call fails as if Redis were unreachable."""

    name = "redis"

    def __init__(self, fail_on_open: bool = False) -> None:
        self.fail_on_open = fail_on_open
        self.closed = False

    async def open(self) -> None:
        if self.fail_on_open:
            raise StoreUnavailableError(self.name, "Connection refused")

    async def close(self) -> None:
        self.closed = True

    async def raw_get(self, key: str) -> str | None:
        raise StoreUnavailableError(self.name, "Connection refused")

    async def raw_set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        raise StoreUnavailableError(self.name, "Connection refused")

    async def raw_delete(self, key: str) -> None:
        raise StoreUnavailableError(self.name, "Connection refused")

    async def raw_keys_matching(self, pattern: str) -> list[str]:
        raise StoreUnavailableError(self.name, "Connection refused")

    async def raw_delete_many(self, keys: Iterable[str]) -> int:
        raise StoreUnavailableError(self.name, "Connection refused")

    async def raw_clear(self) -> None:
        raise StoreUnavailableError(self.name, "Connection refused")

    async def raw_count(self) -> int:
        raise StoreUnavailableError(self.name, "Connection refused")


class RejectingBackend(UnavailableBackend):
    """Backend that is reachable but rejects every command (e.g. OOM, READONLY)."""

    async def raw_get(self, key: str) -> str | None:
        raise CacheBackendError(self.name, "get", "OOM command not allowed")

    async def raw_set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        raise CacheBackendError(self.name, "setex", "OOM command not allowed")

    async def raw_delete(self, key: str) -> None:
        raise CacheBackendError(self.name, "delete", "OOM command not allowed")

    async def raw_keys_matching(self, pattern: str) -> list[str]:
        return ["user:1", "user:2"]

    async def raw_delete_many(self, keys: Iterable[str]) -> int:
        raise CacheBackendError(self.name, "unlink", "READONLY You can't write against a read only replica")

    async def raw_clear(self) -> None:
        raise CacheBackendError(self.name, "flushdb", "READONLY You can't write against a read only replica")

    async def raw_count(self) -> int:
        raise CacheBackendError(self.name, "dbsize", "LOADING Redis is loading the dataset in memory")


@pytest.fixture(autouse=True)
def memory_backend_env(monkeypatch: pytest.MonkeyPatch):
    """Run every test on the in-process backend unless a test overrides it."""
    monkeypatch.setenv("CACHE_BACKEND", "memory")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def response_cache_on(monkeypatch: pytest.MonkeyPatch) -> None:
    """Install ResponseCacheMiddleware in apps built by create_app (off by default)."""
    monkeypatch.setenv("RESPONSE_CACHE_ENABLED", "true")
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def unavailable_backend() -> type[UnavailableBackend]:
    """Factory for backends that fail like an unreachable Redis."""
    return UnavailableBackend


@pytest.fixture
def rejecting_backend() -> type[RejectingBackend]:
    """Factory for backends that are reachable but reject commands."""
    return RejectingBackend


@pytest.fixture
async def cache() -> CacheService:
    """Opened CacheService on a fresh MemoryBackend (real monotonic clock)."""
    service = CacheService(MemoryBackend())
    await service.open()
    yield service
    await service.close()


@pytest.fixture
def app() -> FastAPI:
    """Fresh app per test; routes and middleware may be added before the first request."""
    return create_app()


@pytest.fixture
async def client(app: FastAPI) -> AsyncClient:
    """Async HTTP client against the app (ASGI), with the lifespan running."""
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
