"""Response cache middleware.

Caches successful JSON responses to GET requests in app.state.cache and
replays them on later identical requests by the same user. Keys come from
cache_aside.infrastructure.cache.keys.response_key unless a key_builder is
given. Paths containing a skip fragment (user-specific endpoints such as
/profile or /me) are never cached. With the default key, a request that
carries credentials (Authorization or Cookie) but no scope["state"]["user_id"]
is passed through uncached: its user is only known to route dependencies,
which run after the key is built. A cache failure never changes the
response, only its latency.
Uses raw ASGI (no BaseHTTPMiddleware) for production-safe streaming and background tasks.
"""

import json
import logging
from collections.abc import Iterable
from typing import Callable

from fastapi.responses import JSONResponse

from cache_aside.core.constants import DEFAULT_CACHE_TTL
from cache_aside.infrastructure.cache.keys import response_key

logger = logging.getLogger(__name__)

CACHE_STATUS_HEADER = "X-Cache"
CREDENTIAL_HEADERS = (b"authorization", b"cookie")


def _get_cache(scope: dict):
    """Return CacheService from app.state, or None when the lifespan did not set one."""
    app = scope.get("app")
    state = getattr(app, "state", None)
    return getattr(state, "cache", None)


def _default_key(scope: dict) -> str | None:
    """Build the per-user response key; None when the user cannot be told apart."""
    user_id = scope.get("state", {}).get("user_id")
    if user_id is None and _has_credentials(scope):
        return None
    path = scope.get("path", "")
    query = scope.get("query_string", b"").decode("latin-1")
    if query:
        path = f"{path}?{query}"
    return response_key("GET", path, str(user_id) if user_id is not None else None)


def _has_credentials(scope: dict) -> bool:
    return any(k.lower() in CREDENTIAL_HEADERS for k, _ in scope.get("headers", []))


def _is_json(headers: Iterable[tuple[bytes, bytes]]) -> bool:
    for k, v in headers:
        if k.lower() == b"content-type":
            return v.split(b";")[0].strip().lower() == b"application/json"
    return False


def ResponseCacheMiddleware(
    app: Callable,
    ttl: int = DEFAULT_CACHE_TTL,
    skip_path_fragments: Iterable[str] = ("/profile", "/me"),
    key_builder: Callable[[dict], str | None] | None = None,
) -> Callable:
    """Serve GET JSON responses from cache; store 200 JSON responses on miss. Raw ASGI.

    key_builder(scope) may return None to leave a request uncached. An error
    raised by it is logged and the request passes through.
    """
    skip = tuple(skip_path_fragments)

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http" or scope.get("method") != "GET":
            await app(scope, receive, send)
            return
        path = scope.get("path", "")
        cache = _get_cache(scope)
        if cache is None or any(fragment in path for fragment in skip):
            await app(scope, receive, send)
            return
        try:
            cache_key = key_builder(scope) if key_builder else _default_key(scope)
        except Exception:
            logger.exception("Response cache key failed for %s; serving uncached", path)
            await app(scope, receive, send)
            return
        if cache_key is None:
            await app(scope, receive, send)
            return

        cached_body = await cache.get(cache_key)
        if cached_body is not None:
            logger.debug("Response cache HIT: %s", cache_key)
            response = JSONResponse(cached_body, headers={CACHE_STATUS_HEADER: "HIT"})
            await response(scope, receive, send)
            return

        status = 0
        cacheable = False
        chunks: list[bytes] = []

        async def send_wrapper(message: dict) -> None:
            nonlocal status, cacheable
            if message["type"] == "http.response.start":
                status = message["status"]
                headers = list(message.get("headers", []))
                cacheable = status == 200 and _is_json(headers)
                headers.append((CACHE_STATUS_HEADER.lower().encode(), b"MISS"))
                message["headers"] = headers
            elif message["type"] == "http.response.body" and cacheable:
                chunks.append(message.get("body", b""))
            await send(message)

        await app(scope, receive, send_wrapper)

        if not cacheable:
            return
        try:
            data = json.loads(b"".join(chunks))
        except ValueError:
            logger.warning("Response cache skipped for %s: body is not valid JSON", cache_key)
            return
        if data:
            await cache.set(cache_key, data, ttl=ttl)

    return asgi_app
