"""Entity collections (``student:``, ``subject:``) over a KeyValueStore."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sms_store.errors import NotFound
from sms_store.key_mapping import KeyMapper, generate_key
from sms_store.store import BulkResult, ImportEntry


if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sms_store.store import KeyValueStore


STUDENTS = "student"
SUBJECTS = "subject"


def utc_timestamp() -> str:
    """Return the current time as ISO-8601 UTC with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EntityCollection:
    """CRUD over the documents stored under one ``<entry_point>:`` prefix.

    Every document carries its own ``id`` and ``createdAt``; collections created
    with ``track_updates=True`` also maintain ``updatedAt``. Updates are a
    shallow merge of the sent fields onto the stored document followed by a full
    replace, so two concurrent updates of one entity are last-write-wins.
    """

    def __init__(
        self,
        store: KeyValueStore,
        entry_point: str,
        *,
        label: str | None = None,
        track_updates: bool = False,
    ) -> None:
        super().__init__()
        self._store = store
        self._mapper = KeyMapper(entry_point=entry_point)
        self.label = label or entry_point.capitalize()
        self.track_updates = track_updates

    @property
    def prefix(self) -> str:
        return self._mapper.prefix

    def key(self, entity_id: str) -> str:
        try:
            return self._mapper.full_key(entity_id)
        except ValueError as error:
            # Ids containing the separator can never have been stored.
            raise NotFound(f"{self.prefix}{entity_id}", self.label) from error

    async def list_all(self) -> list[Any]:
        return await self._store.get_by_prefix(self.prefix)

    async def get(self, entity_id: str) -> dict[str, Any]:
        document = await self._store.get(self.key(entity_id))
        if document is None:
            raise NotFound(self.key(entity_id), self.label)
        return document

    async def create(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        entity_id = generate_key()
        now = utc_timestamp()
        document = {"id": entity_id, **fields, "createdAt": now}
        if self.track_updates:
            document["updatedAt"] = now
        await self._store.set(self.key(entity_id), document)
        return document

    async def update(self, entity_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        existing = await self.get(entity_id)
        document = {**existing, **fields, "id": entity_id}
        if self.track_updates:
            document["updatedAt"] = utc_timestamp()
        await self._store.set(self.key(entity_id), document)
        return document

    async def delete(self, entity_id: str) -> None:
        await self._store.delete(self.key(entity_id))

    async def import_documents(self, documents: Iterable[Mapping[str, Any]]) -> BulkResult:
        """Write documents as-is, keeping their ``id`` or assigning a new one."""
        rejected = BulkResult()
        entries: list[ImportEntry] = []
        for document in documents:
            entity_id = document.get("id") or generate_key()
            try:
                _ = self._mapper.full_key(entity_id)
            except ValueError as error:
                rejected.failed[f"{self.prefix}{entity_id}"] = str(error)
                continue
            entries.append(ImportEntry(document={**document, "id": entity_id}, key=entity_id))
        return rejected.merge(await self._store.import_bulk(entries, prefix=self.prefix))


def students(store: KeyValueStore) -> EntityCollection:
    return EntityCollection(store, STUDENTS, label="Student", track_updates=True)


def subjects(store: KeyValueStore) -> EntityCollection:
    return EntityCollection(store, SUBJECTS, label="Subject")
