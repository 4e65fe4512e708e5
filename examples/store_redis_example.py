"""Minimal example for KeyValueStore using a Redis-compatible backend."""

import asyncio

from sms_store.backends.redis import RedisBackend
from sms_store.entities import students
from sms_store.errors import StorageUnavailable
from sms_store.store import KeyValueStore


async def main() -> None:
    """Create, update and list a student against Redis/Dragonfly."""
    async with KeyValueStore(RedisBackend(url="redis://redis:6379/0")) as store:
        collection = students(store)
        try:
            created = await collection.create({"name": "Asha Rao", "semester": 5})
            _ = await collection.update(created["id"], {"semester": 6})
            print("students:", await collection.list_all())
            await collection.delete(created["id"])
        except StorageUnavailable as error:
            print("redis is not reachable:", error)


if __name__ == "__main__":
    asyncio.run(main())
