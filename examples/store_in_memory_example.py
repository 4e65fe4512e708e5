"""Minimal example for KeyValueStore using the in-memory backend."""

import asyncio

from sms_store.backends.in_memory import InMemoryAsyncBackend
from sms_store.store import ImportEntry, KeyValueStore


async def main() -> None:
    """Run a set/scan/import/clear flow on the in-memory backend."""
    async with KeyValueStore(InMemoryAsyncBackend()) as store:
        await store.set("subject:1", {"name": "OOP", "code": "CS301", "credits": 4, "semester": 3})
        print("subjects:", await store.get_by_prefix("subject:"))

        result = await store.import_bulk(
            [ImportEntry(document={"name": "A"}), ImportEntry(document={"name": "B"})],
            prefix="subject:",
        )
        print("imported keys:", result.succeeded)

        print("cleared:", await store.clear(["subject:"]))
        print("after clear:", await store.get_by_prefix("subject:"))


if __name__ == "__main__":
    asyncio.run(main())
