"""Backend interface definitions."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Sequence


class Backend(ABC):
    """Async raw-text key-value backend interface.

    Implementations raise :class:`~sms_store.errors.StorageUnavailable` when the
    backing medium cannot be reached, never an empty result in its place.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return raw value for key, or None when key does not exist."""

    async def get_many(self, keys: Sequence[str]) -> list[str | None]:
        """Return raw values for keys in the same order, None for missing keys."""
        return list(await asyncio.gather(*(self.get(key) for key in keys)))

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store raw value for key, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete key if present."""

    @abstractmethod
    async def list_keys(self, prefix: str) -> list[str]:
        """List all keys beginning with prefix in ascending order."""

    @abstractmethod
    async def close(self) -> None:
        """Close any backend resources."""
