"""Redis-compatible backend implementation."""

from __future__ import annotations

import re
from inspect import isawaitable
from typing import Any, override


try:
    import redis.asyncio as redis_async
    from redis import exceptions as redis_exceptions
except ImportError:  # pragma: no cover - exercised when dependency is absent
    redis_async = None
    redis_exceptions = None

from sms_store.errors import StorageUnavailable

from .protocol import Backend


_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")

if redis_exceptions is not None:
    _UNAVAILABLE_ERRORS: tuple[type[BaseException], ...] = (
        redis_exceptions.ConnectionError,
        redis_exceptions.TimeoutError,
        OSError,
    )
else:  # pragma: no cover - exercised when dependency is absent
    _UNAVAILABLE_ERRORS = (OSError,)


def _normalize_string(value: str | bytes | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode()
    return value


def _escape_glob(prefix: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", prefix)


class RedisBackend(Backend):
    """Redis-compatible async backend using ``redis.asyncio`` client APIs."""

    def __init__(self, url: str = "redis://localhost:6379/0", *, client: Any | None = None) -> None:
        """Create a backend from URL or an injected async client.

        Parameters
        ----------
        url
            Redis connection URL used when ``client`` is not provided.
        client
            Optional injected client with ``get/set/delete/scan_iter/aclose`` API.
        """
        super().__init__()
        self._url = url
        if client is not None:
            self._client = client
            return

        if redis_async is None:
            msg = "redis dependency is required for RedisBackend; install with `pip install redis`"
            raise StorageUnavailable(msg)

        self._client = redis_async.from_url(url, decode_responses=True)

    def _unavailable(self, error: BaseException) -> StorageUnavailable:
        return StorageUnavailable(f"redis at {self._url} is unavailable: {error}")

    @override
    async def get(self, key: str) -> str | None:
        """Return raw value for key, or None when key does not exist."""
        try:
            value = await self._client.get(key)
        except _UNAVAILABLE_ERRORS as error:
            raise self._unavailable(error) from error
        return _normalize_string(value)

    @override
    async def set(self, key: str, value: str) -> None:
        """Store raw value for key."""
        try:
            await self._client.set(key, value)
        except _UNAVAILABLE_ERRORS as error:
            raise self._unavailable(error) from error

    @override
    async def delete(self, key: str) -> None:
        """Delete key if present."""
        try:
            await self._client.delete(key)
        except _UNAVAILABLE_ERRORS as error:
            raise self._unavailable(error) from error

    @override
    async def list_keys(self, prefix: str) -> list[str]:
        """List all keys beginning with prefix in sorted order."""
        keys: list[str] = []
        try:
            async for key in self._client.scan_iter(match=f"{_escape_glob(prefix)}*"):
                normalized = _normalize_string(key)
                if normalized is not None:
                    keys.append(normalized)
        except _UNAVAILABLE_ERRORS as error:
            raise self._unavailable(error) from error
        return sorted(keys)

    @override
    async def close(self) -> None:
        """Release backend resources."""
        close_method = getattr(self._client, "aclose", None)
        if close_method is None:
            close_method = getattr(self._client, "close", None)
        if close_method is None:
            return

        maybe_awaitable = close_method()
        if isawaitable(maybe_awaitable):
            await maybe_awaitable
