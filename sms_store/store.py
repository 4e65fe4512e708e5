"""Prefix-indexed JSON document store over an async raw-text backend."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

from sms_store.errors import BulkOperationError, StoreError
from sms_store.key_mapping import generate_key


if TYPE_CHECKING:
    from types import TracebackType

    from sms_store.backends import Backend


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportEntry:
    """One row of a bulk import; ``key`` is generated when omitted."""

    document: Any
    key: str | None = None


@dataclass
class BulkResult:
    """Per-entry outcome of a bulk write or delete.

    ``succeeded`` keeps request order. ``failed`` maps each failed key to the
    error text.
    """

    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed

    def merge(self, other: BulkResult) -> BulkResult:
        return BulkResult(
            succeeded=[*self.succeeded, *other.succeeded],
            failed={**self.failed, **other.failed},
        )

    def raise_for_failures(self) -> None:
        """Raise :class:`BulkOperationError` when any entry failed."""
        if not self.ok:
            raise BulkOperationError(self)


class KeyValueStore:
    """Ordered mapping from string keys to JSON documents.

    Writes are last-write-wins per key; the store never retries and never
    detects lost updates between concurrent writers of the same key.
    Bulk operations (``mdel``, ``import_bulk``) are best-effort: every entry is
    attempted and the returned :class:`BulkResult` says which ones failed.
    """

    def __init__(
        self,
        backend: Backend,
        *,
        json_encoder: Callable[[Any], str] = json.dumps,
        json_decoder: Callable[[str], Any] = json.loads,
        key_factory: Callable[[], str] = generate_key,
    ) -> None:
        super().__init__()
        self._backend = backend
        self._json_encoder = json_encoder
        self._json_decoder = json_decoder
        self._key_factory = key_factory

    @property
    def backend(self) -> Backend:
        return self._backend

    async def get(self, key: str) -> Any | None:
        """Return the document stored at key, or None when key does not exist."""
        raw_value = await self._backend.get(key)
        if raw_value is None:
            return None
        return self._json_decoder(raw_value)

    async def set(self, key: str, value: Any) -> None:
        """Insert or replace the document stored at key."""
        await self._backend.set(key, self._json_encoder(value))

    async def delete(self, key: str) -> None:
        """Delete key; deleting an absent key is a no-op."""
        await self._backend.delete(key)

    async def mdel(self, keys: Iterable[str]) -> BulkResult:
        """Delete every listed key, reporting which deletions failed."""
        result = BulkResult()
        for key in dict.fromkeys(keys):
            try:
                await self._backend.delete(key)
            except StoreError as error:
                logger.warning("delete of %s failed: %s", key, error)
                result.failed[key] = str(error)
            else:
                result.succeeded.append(key)
        return result

    async def items_by_prefix(self, prefix: str) -> list[tuple[str, Any]]:
        """Return ``(key, document)`` pairs under prefix in ascending key order."""
        keys = await self._backend.list_keys(prefix)
        raw_values = await self._backend.get_many(keys) if keys else []
        # Keys deleted between listing and reading are skipped.
        return [
            (key, self._json_decoder(raw_value))
            for key, raw_value in zip(keys, raw_values, strict=True)
            if raw_value is not None
        ]

    async def get_by_prefix(self, prefix: str) -> list[Any]:
        """Return every document whose key starts with prefix, ordered by key."""
        return [document for _key, document in await self.items_by_prefix(prefix)]

    async def import_bulk(self, entries: Iterable[ImportEntry], prefix: str = "") -> BulkResult:
        """Write entries in order under prefix, generating keys where missing."""
        result = BulkResult()
        for entry in entries:
            key = prefix + (entry.key if entry.key else self._key_factory())
            try:
                await self.set(key, entry.document)
            except (StoreError, TypeError, ValueError) as error:
                logger.warning("import of %s failed: %s", key, error)
                result.failed[key] = str(error)
            else:
                result.succeeded.append(key)
        logger.info(
            "imported %d of %d entries under %r",
            len(result.succeeded),
            result.attempted,
            prefix,
        )
        return result

    async def export_all(self, prefixes: Iterable[str]) -> dict[str, list[Any]]:
        """Return the documents under each prefix, keyed by prefix."""
        return {prefix: await self.get_by_prefix(prefix) for prefix in dict.fromkeys(prefixes)}

    async def clear(self, prefixes: Iterable[str]) -> int:
        """Delete every entry under the given prefixes and return how many were removed.

        Raises
        ------
        BulkOperationError
            When any deletion failed; the error carries the full result.
        """
        keys: list[str] = []
        for prefix in dict.fromkeys(prefixes):
            keys.extend(await self._backend.list_keys(prefix))
        result = await self.mdel(keys)
        logger.info("cleared %d entries", len(result.succeeded))
        result.raise_for_failures()
        return len(result.succeeded)

    async def close(self) -> None:
        """Close the underlying backend."""
        await self._backend.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.close()
