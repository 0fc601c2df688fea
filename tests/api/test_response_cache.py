"""ResponseCacheMiddleware: GET JSON responses are replayed from cache per user."""

from typing import Callable

import pytest
from fastapi import Depends, FastAPI, Header, HTTPException
from httpx import ASGITransport, AsyncClient

from cache_aside.infrastructure.cache import CacheService, response_pattern
from cache_aside.main import create_app
from cache_aside.middleware import ResponseCacheMiddleware


def UserFromHeaderMiddleware(app: Callable) -> Callable:
    """Test stand-in for auth: copies X-User-ID into request state."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] == "http":
            for k, v in scope.get("headers", []):
                if k == b"x-user-id":
                    scope.setdefault("state", {})["user_id"] = v.decode()
        await app(scope, receive, send)

    return asgi_app


@pytest.fixture
def calls() -> dict[str, int]:
    return {"employees": 0, "missing": 0, "empty": 0, "me": 0, "payslips": 0, "payroll": 0}


async def current_user(authorization: str = Header(...)) -> str:
    """Test stand-in for token auth resolved in a route dependency."""
    return authorization.removeprefix("Bearer ")


@pytest.fixture
def app(response_cache_on, calls: dict[str, int]) -> FastAPI:
    """App with a few HR-style routes that count how often they actually run."""
    app = create_app()
    app.add_middleware(UserFromHeaderMiddleware)

    @app.get("/api/v1/employees")
    async def list_employees(page: int = 1) -> list[dict]:
        calls["employees"] += 1
        return [{"id": page, "name": "Ann"}]

    @app.post("/api/v1/employees")
    async def create_employee() -> dict:
        return {"id": 2}

    @app.get("/api/v1/missing")
    async def missing() -> dict:
        calls["missing"] += 1
        raise HTTPException(status_code=404, detail="Employee not found")

    @app.get("/api/v1/empty")
    async def empty() -> list:
        calls["empty"] += 1
        return []

    @app.get("/api/v1/me")
    async def me() -> dict:
        calls["me"] += 1
        return {"id": "u1"}

    @app.get("/api/v1/payslips")
    async def payslips(user: str = "u1") -> dict:
        calls["payslips"] += 1
        return {"user": user, "net": 1000}

    @app.get("/api/v1/payroll")
    async def payroll(user: str = Depends(current_user)) -> dict:
        calls["payroll"] += 1
        return {"user": user, "net": 1000}

    return app


async def test_second_get_served_from_cache(client: AsyncClient, calls) -> None:
    first = await client.get("/api/v1/employees")
    second = await client.get("/api/v1/employees")
    assert first.status_code == second.status_code == 200
    assert first.headers["x-cache"] == "MISS"
    assert second.headers["x-cache"] == "HIT"
    assert second.json() == first.json() == [{"id": 1, "name": "Ann"}]
    assert calls["employees"] == 1


async def test_query_string_is_part_of_key(client: AsyncClient, calls) -> None:
    await client.get("/api/v1/employees?page=1")
    response = await client.get("/api/v1/employees?page=2")
    assert response.headers["x-cache"] == "MISS"
    assert response.json() == [{"id": 2, "name": "Ann"}]
    assert calls["employees"] == 2


async def test_responses_are_scoped_per_user(client: AsyncClient, calls) -> None:
    await client.get("/api/v1/payslips", headers={"X-User-ID": "u1"})
    other = await client.get("/api/v1/payslips", headers={"X-User-ID": "u2"})
    again = await client.get("/api/v1/payslips", headers={"X-User-ID": "u1"})
    assert other.headers["x-cache"] == "MISS"
    assert again.headers["x-cache"] == "HIT"
    assert calls["payslips"] == 2


async def test_post_is_not_cached(client: AsyncClient) -> None:
    response = await client.post("/api/v1/employees")
    assert response.status_code == 200
    assert "x-cache" not in response.headers


async def test_user_specific_paths_are_skipped(client: AsyncClient, calls) -> None:
    await client.get("/api/v1/me")
    response = await client.get("/api/v1/me")
    assert "x-cache" not in response.headers
    assert calls["me"] == 2


async def test_error_responses_are_not_cached(client: AsyncClient, calls) -> None:
    first = await client.get("/api/v1/missing")
    second = await client.get("/api/v1/missing")
    assert first.status_code == second.status_code == 404
    assert second.headers["x-cache"] == "MISS"
    assert calls["missing"] == 2


async def test_empty_body_is_not_cached(client: AsyncClient, calls) -> None:
    await client.get("/api/v1/empty")
    await client.get("/api/v1/empty")
    assert calls["empty"] == 2


async def test_invalidation_forces_refetch(client: AsyncClient, app: FastAPI, calls) -> None:
    await client.get("/api/v1/employees")
    cache: CacheService = app.state.cache
    assert await cache.invalidate_pattern(response_pattern("/api/v1/employees")) is True
    response = await client.get("/api/v1/employees")
    assert response.headers["x-cache"] == "MISS"
    assert calls["employees"] == 2


async def test_broken_cache_does_not_change_response(
    client: AsyncClient, app: FastAPI, calls, unavailable_backend
) -> None:
    broken = CacheService(unavailable_backend())
    await broken.open()
    app.state.cache = broken
    first = await client.get("/api/v1/employees")
    second = await client.get("/api/v1/employees")
    assert first.status_code == second.status_code == 200
    assert second.json() == [{"id": 1, "name": "Ann"}]
    assert calls["employees"] == 2


async def test_user_from_dependency_is_never_shared(client: AsyncClient, calls) -> None:
    alice = await client.get("/api/v1/payroll", headers={"Authorization": "Bearer alice"})
    bob = await client.get("/api/v1/payroll", headers={"Authorization": "Bearer bob"})
    assert alice.json() == {"user": "alice", "net": 1000}
    assert bob.json() == {"user": "bob", "net": 1000}
    assert "x-cache" not in bob.headers
    assert calls["payroll"] == 2


async def test_cookie_without_known_user_is_not_cached(client: AsyncClient, calls) -> None:
    await client.get("/api/v1/payslips", headers={"Cookie": "session=abc"})
    response = await client.get("/api/v1/payslips", headers={"Cookie": "session=abc"})
    assert "x-cache" not in response.headers
    assert calls["payslips"] == 2


async def test_credentials_with_known_user_are_cached(client: AsyncClient, calls) -> None:
    headers = {"Authorization": "Bearer alice", "X-User-ID": "alice"}
    await client.get("/api/v1/payslips", headers=headers)
    response = await client.get("/api/v1/payslips", headers=headers)
    assert response.headers["x-cache"] == "HIT"
    assert calls["payslips"] == 1


def _failing_key(scope: dict) -> str:
    return scope["state"]["tenant_id"]


def _no_key(scope: dict) -> None:
    return None


@pytest.mark.parametrize("key_builder", [_failing_key, _no_key])
async def test_key_builder_failure_or_none_passes_through(cache: CacheService, key_builder) -> None:
    app = FastAPI()
    app.state.cache = cache
    app.add_middleware(ResponseCacheMiddleware, key_builder=key_builder)
    runs = 0

    @app.get("/api/v1/departments")
    async def departments() -> list[dict]:
        nonlocal runs
        runs += 1
        return [{"id": 1}]

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        first = await ac.get("/api/v1/departments")
        second = await ac.get("/api/v1/departments")
    assert first.status_code == second.status_code == 200
    assert second.json() == [{"id": 1}]
    assert "x-cache" not in second.headers
    assert runs == 2
