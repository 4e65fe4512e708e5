"""In-memory backend implementation."""

from __future__ import annotations

import asyncio
from bisect import bisect_left, insort
from dataclasses import dataclass
from typing import override

from sms_store.errors import StorageUnavailable

from .protocol import Backend


@dataclass
class _Entry:
    value: str
    version: int


class InMemoryAsyncBackend(Backend):
    """In-memory backend for local development and tests.

    Keys are kept in a sorted list next to the value dict, so prefix scans are a
    ``bisect`` range lookup instead of a full scan.
    """

    def __init__(self, *, available: bool = True) -> None:
        super().__init__()
        self._store: dict[str, _Entry] = {}
        self._sorted_keys: list[str] = []
        self._lock = asyncio.Lock()
        self._available = available

    def set_available(self, available: bool) -> None:
        """Simulate the medium going away (or coming back)."""
        self._available = available

    def _check_available(self) -> None:
        if not self._available:
            msg = "in-memory backend is marked unavailable"
            raise StorageUnavailable(msg)

    def version(self, key: str) -> int | None:
        """Return the write counter for key, or None when key does not exist."""
        entry = self._store.get(key)
        return None if entry is None else entry.version

    @override
    async def get(self, key: str) -> str | None:
        """Return raw value for key, or None when key does not exist."""
        async with self._lock:
            self._check_available()
            entry = self._store.get(key)
            return None if entry is None else entry.value

    @override
    async def set(self, key: str, value: str) -> None:
        """Store raw value for key and bump its version."""
        async with self._lock:
            self._check_available()
            entry = self._store.get(key)
            if entry is None:
                self._store[key] = _Entry(value=value, version=1)
                insort(self._sorted_keys, key)
                return
            entry.value = value
            entry.version += 1

    @override
    async def delete(self, key: str) -> None:
        """Delete key if present."""
        async with self._lock:
            self._check_available()
            if self._store.pop(key, None) is None:
                return
            index = bisect_left(self._sorted_keys, key)
            del self._sorted_keys[index]

    @override
    async def list_keys(self, prefix: str) -> list[str]:
        """List all keys beginning with prefix in sorted order."""
        async with self._lock:
            self._check_available()
            start = bisect_left(self._sorted_keys, prefix)
            matching: list[str] = []
            for key in self._sorted_keys[start:]:
                if not key.startswith(prefix):
                    break
                matching.append(key)
            return matching

    @override
    async def close(self) -> None:
        """Release backend resources."""
        return
