"""NATS JetStream KV backend implementation."""

from __future__ import annotations

import asyncio
import re
from typing import Any, override


try:
    import nats as nats_module
except ImportError:  # pragma: no cover - exercised when dependency is absent
    nats_module = None

from sms_store.errors import StorageUnavailable

from .protocol import Backend


_NOT_FOUND_ERROR_NAMES = {"BucketNotFoundError", "KeyNotFoundError", "KeyDeletedError", "NoKeysError"}
_UNAVAILABLE_ERROR_NAMES = {
    "ConnectionClosedError",
    "NoRespondersError",
    "NoServersError",
    "ServiceUnavailableError",
    "TimeoutError",
}
# Store key segments between ':' become dot-separated subject tokens. Inside a
# token anything outside this alphabet is written as =XX per utf-8 byte, and an
# empty segment is the lone token "=".
_SAFE_KEY_CHARS = re.compile(r"[-/_A-Za-z0-9]")
_EMPTY_TOKEN = "="
_ESCAPED_BYTES = re.compile(r"(?:=[0-9A-F]{2})+")


def _error_names(error: Exception) -> set[str]:
    return {cls.__name__ for cls in type(error).__mro__}


def _is_not_found_error(error: Exception) -> bool:
    return bool(_error_names(error) & _NOT_FOUND_ERROR_NAMES)


def _is_unavailable_error(error: Exception) -> bool:
    return isinstance(error, OSError) or bool(_error_names(error) & _UNAVAILABLE_ERROR_NAMES)


def _encode_segment(segment: str) -> str:
    if not segment:
        return _EMPTY_TOKEN
    parts: list[str] = []
    for char in segment:
        if _SAFE_KEY_CHARS.fullmatch(char):
            parts.append(char)
        else:
            parts.extend(f"={byte:02X}" for byte in char.encode())
    return "".join(parts)


def _decode_token(token: str) -> str:
    if token == _EMPTY_TOKEN:
        return ""
    return _ESCAPED_BYTES.sub(lambda match: bytes.fromhex(match.group().replace("=", "")).decode(), token)


def encode_key(key: str) -> str:
    """Encode an arbitrary store key into the JetStream KV key alphabet.

    ``student:17-abc`` becomes ``student.17-abc`` so that collection prefixes
    can be filtered by the server with subject wildcards.
    """
    return ".".join(_encode_segment(segment) for segment in key.split(":"))


def decode_key(encoded: str) -> str:
    """Reverse :func:`encode_key`."""
    return ":".join(_decode_token(token) for token in encoded.split("."))


def prefix_filter(prefix: str) -> str | None:
    """Return the KV key filter covering every key under prefix, if one exists.

    Only the complete ``:``-terminated segments of prefix can be matched by
    subject wildcards; the caller still checks the trailing partial segment.
    """
    segments = prefix.split(":")[:-1]
    if not segments:
        return None
    return ".".join(_encode_segment(segment) for segment in segments) + ".>"


class NatsBackend(Backend):
    """NATS JetStream KV backend.

    The backend uses an existing KV bucket by default.
    Set ``create_bucket=True`` to allow creating it when missing.
    """

    def __init__(
        self,
        url: str = "nats://nats:4222",
        bucket: str = "sms_store",
        *,
        client: Any | None = None,
        create_bucket: bool = False,
    ) -> None:
        """Create a backend using a NATS URL or injected client.

        Parameters
        ----------
        url
            NATS server URL used when ``client`` is not provided.
        bucket
            JetStream KV bucket name.
        client
            Optional injected connected NATS client with ``jetstream`` API.
        create_bucket
            When True, creates bucket if missing. Defaults to False.
        """
        super().__init__()
        self._url = url
        self._bucket_name = bucket
        self._client = client
        self._create_bucket = create_bucket
        self._kv: Any | None = None
        self._init_lock = asyncio.Lock()

    def _unavailable(self, error: Exception) -> StorageUnavailable:
        return StorageUnavailable(f"nats at {self._url} is unavailable: {error!r}")

    async def _ensure_kv(self) -> Any:
        if self._kv is not None:
            return self._kv

        async with self._init_lock:
            if self._kv is None:
                self._kv = await self._open_bucket()
        return self._kv

    async def _open_bucket(self) -> Any:
        if self._client is None:
            if nats_module is None:
                msg = "nats-py dependency is required for NatsBackend; install with `pip install nats-py`"
                raise StorageUnavailable(msg)
            try:
                self._client = await nats_module.connect(servers=[self._url])
            except Exception as error:
                if _is_unavailable_error(error):
                    raise self._unavailable(error) from error
                raise

        jetstream = self._client.jetstream()

        try:
            return await jetstream.key_value(self._bucket_name)
        except Exception as error:
            if _is_not_found_error(error) and self._create_bucket:
                return await jetstream.create_key_value(bucket=self._bucket_name)
            msg = (
                f"jetstream KV bucket '{self._bucket_name}' is not available; "
                "create it first or initialize with create_bucket=True"
            )
            raise StorageUnavailable(msg) from error

    @override
    async def get(self, key: str) -> str | None:
        """Return raw value for key, or None when key does not exist."""
        kv = await self._ensure_kv()
        try:
            entry = await kv.get(encode_key(key))
        except Exception as error:
            if _is_not_found_error(error):
                return None
            if _is_unavailable_error(error):
                raise self._unavailable(error) from error
            raise

        value = entry.value
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode()
        return value

    @override
    async def set(self, key: str, value: str) -> None:
        """Store raw value for key."""
        kv = await self._ensure_kv()
        try:
            await kv.put(encode_key(key), value.encode())
        except Exception as error:
            if _is_unavailable_error(error):
                raise self._unavailable(error) from error
            raise

    @override
    async def delete(self, key: str) -> None:
        """Delete key if present."""
        kv = await self._ensure_kv()
        try:
            await kv.delete(encode_key(key))
        except Exception as error:
            if _is_not_found_error(error):
                return
            if _is_unavailable_error(error):
                raise self._unavailable(error) from error
            raise

    @override
    async def list_keys(self, prefix: str) -> list[str]:
        """List all keys beginning with prefix in sorted order."""
        kv = await self._ensure_kv()
        key_filter = prefix_filter(prefix)
        try:
            keys = await kv.keys(filters=[key_filter]) if key_filter else await kv.keys()
        except Exception as error:
            if _is_not_found_error(error):
                return []
            if _is_unavailable_error(error):
                raise self._unavailable(error) from error
            raise

        if not keys:
            return []
        decoded = (decode_key(key) for key in keys)
        return sorted(key for key in decoded if key.startswith(prefix))

    @override
    async def close(self) -> None:
        """Close NATS client resources."""
        if self._client is None:
            return
        await self._client.close()
