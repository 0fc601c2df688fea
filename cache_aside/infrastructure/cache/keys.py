"""Cache key builders. Single place for key format (DRY).

The cache does not scope keys itself; keys built here embed the tenant and
user so entries of one tenant can never be served to another. Key
components (tenant_id, user_id, etc.) must not contain CACHE_KEY_SEP to
avoid ambiguous or colliding keys.
"""

from cache_aside.core.constants import (
    ANONYMOUS_USER,
    CACHE_KEY_SEP,
    CACHE_PREFIX_RESPONSE,
    CACHE_PREFIX_TENANT,
    CACHE_PREFIX_USER,
)


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is empty or contains the cache key separator.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value is empty or contains CACHE_KEY_SEP.
    """
    if not value:
        raise ValueError(f"Cache key component {name!r} must not be empty")
    if CACHE_KEY_SEP in value:
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
        )


def _validate_key_components(components: list[tuple[str, str]]) -> None:
    """Validate multiple key components; raise on first invalid one."""
    for value, name in components:
        _validate_key_component(value, name)


def _join(*parts: str) -> str:
    return CACHE_KEY_SEP.join(parts)


def tenant_key(tenant_id: str, *parts: str) -> str:
    """Cache key scoped to a tenant, e.g. tenant:t-1:employees:active."""
    _validate_key_component(tenant_id, "tenant_id")
    _validate_key_components([(p, "part") for p in parts])
    return _join(CACHE_PREFIX_TENANT, tenant_id, *parts)


def user_key(tenant_id: str, user_id: str, *parts: str) -> str:
    """Cache key scoped to a user within a tenant."""
    _validate_key_components([(tenant_id, "tenant_id"), (user_id, "user_id")])
    _validate_key_components([(p, "part") for p in parts])
    return _join(CACHE_PREFIX_USER, tenant_id, user_id, *parts)


def tenant_pattern(tenant_id: str) -> str:
    """Invalidation pattern for every tenant_key of a tenant."""
    _validate_key_component(tenant_id, "tenant_id")
    return _join(CACHE_PREFIX_TENANT, tenant_id, "*")


def response_key(method: str, path_with_query: str, user_id: str | None = None) -> str:
    """Cache key for an HTTP response: cache:<METHOD>:<path?query>:<user|anonymous>.

    The path is not validated (it may legitimately contain the separator);
    the user segment is.
    """
    user = user_id or ANONYMOUS_USER
    _validate_key_component(user, "user_id")
    return _join(CACHE_PREFIX_RESPONSE, method.upper(), path_with_query, user)


def response_pattern(path_prefix: str) -> str:
    """Invalidation pattern for cached GET responses under path_prefix (all users)."""
    return f"{_join(CACHE_PREFIX_RESPONSE, 'GET', path_prefix)}*"
