"""Exception taxonomy for store and API errors."""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from sms_store.store import BulkResult


class StoreError(Exception):
    """Base class for every error raised by sms-store."""


class StorageUnavailable(StoreError):
    """The backing medium cannot be reached or is not usable."""


class NotFound(StoreError):
    """A point read or update targeted a key that does not exist."""

    def __init__(self, key: str, label: str = "Entry") -> None:
        self.key = key
        self.label = label
        super().__init__(f"{label} not found")


class BulkOperationError(StoreError):
    """A bulk operation finished with one or more failed entries."""

    def __init__(self, result: BulkResult) -> None:
        self.result = result
        failed = ", ".join(sorted(result.failed))
        super().__init__(
            f"{len(result.failed)} of {result.attempted} entries failed: {failed}"
        )
