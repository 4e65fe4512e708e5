import pytest
from redis import exceptions as redis_exceptions

from sms_store.backends.redis import RedisBackend
from sms_store.errors import StorageUnavailable


class _FakeRedisClient:
    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.closed = False
        self.patterns: list[str] = []

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str) -> None:
        self.store[key] = value

    async def delete(self, key: str) -> None:
        self.store.pop(key, None)

    async def scan_iter(self, match: str):
        self.patterns.append(match)
        prefix = match.removesuffix("*").replace("\\", "")
        for key in sorted(self.store.keys()):
            if key.startswith(prefix):
                yield key

    async def aclose(self) -> None:
        self.closed = True


class _FakeBytesRedisClient(_FakeRedisClient):
    async def get(self, key: str) -> bytes | None:
        value = self.store.get(key)
        return value.encode() if value is not None else None

    async def scan_iter(self, match: str):
        prefix = match.removesuffix("*")
        for key in sorted(self.store.keys()):
            if key.startswith(prefix):
                yield key.encode()


class _FakeCloseOnlyClient:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class _FakeDownRedisClient:
    async def get(self, key: str) -> str | None:
        raise redis_exceptions.ConnectionError("Connection refused")

    async def set(self, key: str, value: str) -> None:
        raise redis_exceptions.TimeoutError("Timeout writing to socket")

    async def delete(self, key: str) -> None:
        raise ConnectionRefusedError

    async def scan_iter(self, match: str):
        raise redis_exceptions.ConnectionError("Connection refused")
        yield match


@pytest.mark.asyncio
async def test_redis_backend_get_set_delete_roundtrip() -> None:
    client = _FakeRedisClient()
    backend = RedisBackend(client=client)

    await backend.set("student:1", '{"name": "Asha"}')
    assert await backend.get("student:1") == '{"name": "Asha"}'

    await backend.delete("student:1")
    assert await backend.get("student:1") is None


@pytest.mark.asyncio
async def test_redis_backend_list_keys_filters_and_sorts() -> None:
    client = _FakeRedisClient()
    backend = RedisBackend(client=client)

    await backend.set("subject:z", "1")
    await backend.set("subject:a", "2")
    await backend.set("student:x", "3")

    assert await backend.list_keys("subject:") == ["subject:a", "subject:z"]


@pytest.mark.asyncio
async def test_redis_backend_escapes_glob_characters_in_prefix() -> None:
    client = _FakeRedisClient()
    backend = RedisBackend(client=client)

    _ = await backend.list_keys("a*b?[c]:")
    assert client.patterns == ["a\\*b\\?\\[c\\]:*"]


@pytest.mark.asyncio
async def test_redis_backend_normalizes_bytes_from_client() -> None:
    client = _FakeBytesRedisClient()
    backend = RedisBackend(client=client)

    await backend.set("subject:key", "value")
    assert await backend.get("subject:key") == "value"
    assert await backend.list_keys("subject:") == ["subject:key"]


@pytest.mark.asyncio
async def test_redis_backend_translates_connection_errors() -> None:
    backend = RedisBackend(url="redis://down:6379/0", client=_FakeDownRedisClient())

    with pytest.raises(StorageUnavailable, match="redis at redis://down:6379/0 is unavailable"):
        _ = await backend.get("k")
    with pytest.raises(StorageUnavailable):
        await backend.set("k", "v")
    with pytest.raises(StorageUnavailable):
        await backend.delete("k")
    with pytest.raises(StorageUnavailable):
        _ = await backend.list_keys("")


@pytest.mark.asyncio
async def test_redis_backend_close_prefers_aclose() -> None:
    client = _FakeRedisClient()
    backend = RedisBackend(client=client)

    await backend.close()
    assert client.closed is True


@pytest.mark.asyncio
async def test_redis_backend_close_falls_back_to_close() -> None:
    client = _FakeCloseOnlyClient()
    backend = RedisBackend(client=client)

    await backend.close()
    assert client.closed is True
