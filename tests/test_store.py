import asyncio
import itertools
from typing import override

import pytest
from hypothesis import given
from hypothesis import strategies as st

from sms_store.backends.in_memory import InMemoryAsyncBackend
from sms_store.errors import BulkOperationError, StorageUnavailable
from sms_store.store import BulkResult, ImportEntry, KeyValueStore


_KEYS = st.text(min_size=1, max_size=20)
_JSON_SCALARS = st.none() | st.booleans() | st.integers(min_value=-10_000, max_value=10_000) | st.text(max_size=30)
_JSON_VALUES = st.recursive(
    _JSON_SCALARS,
    lambda children: st.lists(children, max_size=4) | st.dictionaries(st.text(max_size=12), children, max_size=4),
    max_leaves=15,
)


class _FailingKeysBackend(InMemoryAsyncBackend):
    """In-memory backend whose medium is unreachable for a fixed set of keys."""

    def __init__(self, failing: set[str]) -> None:
        super().__init__()
        self.failing = failing

    @override
    async def set(self, key: str, value: str) -> None:
        if key in self.failing:
            msg = f"write to {key} timed out"
            raise StorageUnavailable(msg)
        await super().set(key, value)

    @override
    async def delete(self, key: str) -> None:
        if key in self.failing:
            msg = f"delete of {key} timed out"
            raise StorageUnavailable(msg)
        await super().delete(key)


@pytest.fixture
def store() -> KeyValueStore:
    return KeyValueStore(InMemoryAsyncBackend())


@pytest.mark.asyncio
async def test_get_after_set_returns_value(store: KeyValueStore) -> None:
    document = {"name": "OOP", "code": "CS301", "credits": 4, "semester": 3}
    await store.set("subject:1", document)
    assert await store.get("subject:1") == document


@pytest.mark.asyncio
async def test_get_missing_key_returns_none(store: KeyValueStore) -> None:
    assert await store.get("student:missing") is None


@pytest.mark.asyncio
async def test_set_replaces_and_is_idempotent(store: KeyValueStore) -> None:
    await store.set("k", {"v": 1})
    await store.set("k", {"v": 2})
    await store.set("k", {"v": 2})

    assert await store.get("k") == {"v": 2}
    assert await store.get_by_prefix("") == [{"v": 2}]


@pytest.mark.asyncio
async def test_delete_then_delete_again_is_noop(store: KeyValueStore) -> None:
    await store.set("student:1", {"name": "Asha"})
    await store.delete("student:1")
    assert await store.get("student:1") is None

    await store.delete("student:1")
    assert await store.get("student:1") is None


@pytest.mark.asyncio
async def test_subject_lifecycle_scenario(store: KeyValueStore) -> None:
    await store.set("subject:1", {"name": "OOP", "code": "CS301", "credits": 4, "semester": 3})
    assert await store.get_by_prefix("subject:") == [{"name": "OOP", "code": "CS301", "credits": 4, "semester": 3}]

    await store.delete("subject:1")
    assert await store.get_by_prefix("subject:") == []


@pytest.mark.asyncio
async def test_get_by_prefix_is_ordered_by_key_and_stable(store: KeyValueStore) -> None:
    await store.set("subject:b", {"n": "b"})
    await store.set("subject:a", {"n": "a"})
    await store.set("subject:c", {"n": "c"})
    await store.set("student:a", {"n": "student"})

    first = await store.get_by_prefix("subject:")
    assert first == [{"n": "a"}, {"n": "b"}, {"n": "c"}]
    assert await store.get_by_prefix("subject:") == first
    assert await store.items_by_prefix("student:") == [("student:a", {"n": "student"})]


@pytest.mark.asyncio
async def test_get_by_prefix_with_no_matches_is_empty_not_an_error(store: KeyValueStore) -> None:
    assert await store.get_by_prefix("nothing:") == []


@pytest.mark.asyncio
async def test_storage_unavailable_propagates_from_reads() -> None:
    backend = InMemoryAsyncBackend(available=False)
    store = KeyValueStore(backend)

    with pytest.raises(StorageUnavailable):
        _ = await store.get("student:1")
    with pytest.raises(StorageUnavailable):
        _ = await store.get_by_prefix("student:")
    with pytest.raises(StorageUnavailable):
        _ = await store.export_all(["student:"])


@pytest.mark.asyncio
async def test_mdel_removes_every_listed_key(store: KeyValueStore) -> None:
    for key in ("student:1", "student:2", "student:3"):
        await store.set(key, {"id": key})

    result = await store.mdel(["student:1", "student:3", "student:1", "student:missing"])

    assert result.ok
    assert result.succeeded == ["student:1", "student:3", "student:missing"]
    assert await store.get_by_prefix("student:") == [{"id": "student:2"}]


@pytest.mark.asyncio
async def test_mdel_reports_which_deletions_failed() -> None:
    backend = _FailingKeysBackend(failing=set())
    store = KeyValueStore(backend)
    for key in ("student:1", "student:2", "student:3"):
        await store.set(key, {})
    backend.failing.add("student:2")

    result = await store.mdel(["student:1", "student:2", "student:3"])

    assert not result.ok
    assert result.succeeded == ["student:1", "student:3"]
    assert list(result.failed) == ["student:2"]
    assert "timed out" in result.failed["student:2"]
    assert await store.get("student:2") == {}


@pytest.mark.asyncio
async def test_import_bulk_generates_distinct_keys_under_prefix(store: KeyValueStore) -> None:
    before = len(await store.get_by_prefix("subject:"))

    result = await store.import_bulk(
        [ImportEntry(document={"name": "A"}), ImportEntry(document={"name": "B"})],
        prefix="subject:",
    )

    assert result.ok
    assert len(result.succeeded) == 2
    assert len(set(result.succeeded)) == 2
    assert all(key.startswith("subject:") for key in result.succeeded)
    assert len(await store.get_by_prefix("subject:")) == before + 2
    assert [await store.get(key) for key in result.succeeded] == [{"name": "A"}, {"name": "B"}]


@pytest.mark.asyncio
async def test_import_bulk_keeps_explicit_keys_and_applies_in_order(store: KeyValueStore) -> None:
    result = await store.import_bulk(
        [
            ImportEntry(document={"v": 1}, key="x"),
            ImportEntry(document={"v": 2}, key="x"),
            ImportEntry(document={"v": 3}, key="y"),
        ],
        prefix="subject:",
    )

    assert result.succeeded == ["subject:x", "subject:x", "subject:y"]
    assert await store.get("subject:x") == {"v": 2}


@pytest.mark.asyncio
async def test_import_bulk_uses_injected_key_factory() -> None:
    counter = itertools.count(1)
    store = KeyValueStore(InMemoryAsyncBackend(), key_factory=lambda: f"k{next(counter)}")

    result = await store.import_bulk([ImportEntry(document=1), ImportEntry(document=2)], prefix="n:")
    assert result.succeeded == ["n:k1", "n:k2"]


@pytest.mark.asyncio
async def test_import_bulk_reports_failed_entries_and_continues() -> None:
    store = KeyValueStore(_FailingKeysBackend(failing={"subject:bad"}))

    result = await store.import_bulk(
        [
            ImportEntry(document={"n": 1}, key="ok1"),
            ImportEntry(document={"n": 2}, key="bad"),
            ImportEntry(document={1, 2}, key="unencodable"),
            ImportEntry(document={"n": 3}, key="ok2"),
        ],
        prefix="subject:",
    )

    assert result.succeeded == ["subject:ok1", "subject:ok2"]
    assert set(result.failed) == {"subject:bad", "subject:unencodable"}
    assert result.attempted == 4
    with pytest.raises(BulkOperationError, match="2 of 4 entries failed"):
        result.raise_for_failures()


@pytest.mark.asyncio
async def test_export_all_groups_documents_by_prefix(store: KeyValueStore) -> None:
    await store.set("student:1", {"name": "Asha"})
    await store.set("subject:1", {"name": "OOP"})

    exported = await store.export_all(["student:", "subject:", "student:"])

    assert exported == {"student:": [{"name": "Asha"}], "subject:": [{"name": "OOP"}]}


@pytest.mark.asyncio
async def test_clear_removes_only_requested_prefixes(store: KeyValueStore) -> None:
    await store.set("student:1", {"n": 1})
    await store.set("student:2", {"n": 2})
    await store.set("subject:1", {"n": 3})

    assert await store.clear(["student:"]) == 2
    assert await store.get_by_prefix("student:") == []
    assert await store.get_by_prefix("subject:") == [{"n": 3}]


@pytest.mark.asyncio
async def test_clear_counts_overlapping_prefixes_once(store: KeyValueStore) -> None:
    await store.set("student:1", {"n": 1})
    await store.set("subject:1", {"n": 2})

    assert await store.clear(["student:", "s"]) == 2
    assert await store.get_by_prefix("") == []


@pytest.mark.asyncio
async def test_clear_raises_with_result_when_a_deletion_fails() -> None:
    backend = _FailingKeysBackend(failing=set())
    store = KeyValueStore(backend)
    await store.set("student:1", {"n": 1})
    await store.set("student:2", {"n": 2})
    backend.failing.add("student:2")

    with pytest.raises(BulkOperationError) as excinfo:
        _ = await store.clear(["student:"])

    assert excinfo.value.result.succeeded == ["student:1"]
    assert list(excinfo.value.result.failed) == ["student:2"]


@pytest.mark.asyncio
async def test_concurrent_writers_to_one_key_leave_one_of_the_written_values(store: KeyValueStore) -> None:
    await asyncio.gather(*(store.set("student:1", {"writer": i}) for i in range(20)))

    final = await store.get("student:1")
    assert final is not None
    assert final["writer"] in range(20)
    assert len(await store.get_by_prefix("student:")) == 1


@pytest.mark.asyncio
async def test_store_context_manager_closes_backend() -> None:
    closed: list[bool] = []

    class _ClosingBackend(InMemoryAsyncBackend):
        @override
        async def close(self) -> None:
            closed.append(True)

    async with KeyValueStore(_ClosingBackend()) as store:
        await store.set("k", 1)

    assert closed == [True]


def test_bulk_result_merge_keeps_order() -> None:
    merged = BulkResult(succeeded=["a"], failed={"b": "x"}).merge(BulkResult(succeeded=["c"]))
    assert merged.succeeded == ["a", "c"]
    assert merged.failed == {"b": "x"}
    assert merged.attempted == 3
    assert not merged.ok


@given(key=_KEYS, value=_JSON_VALUES)
def test_roundtrip_property(key: str, value: object) -> None:
    async def scenario() -> None:
        store = KeyValueStore(InMemoryAsyncBackend())
        await store.set(key, value)
        assert await store.get(key) == value
        await store.delete(key)
        assert await store.get(key) is None

    asyncio.run(scenario())


@given(
    keys=st.lists(st.text(alphabet="ab:", min_size=1, max_size=6), unique=True, max_size=15),
    prefix=st.text(alphabet="ab:", max_size=3),
)
def test_get_by_prefix_matches_exactly_the_live_keys_property(keys: list[str], prefix: str) -> None:
    async def scenario() -> None:
        store = KeyValueStore(InMemoryAsyncBackend())
        for key in keys:
            await store.set(key, key)
        removed = keys[::3]
        _ = await store.mdel(removed)

        live = [key for key in keys if key not in removed]
        assert await store.get_by_prefix(prefix) == sorted(key for key in live if key.startswith(prefix))

    asyncio.run(scenario())
