"""sms-store - prefix-indexed JSON document store behind a student management REST API"""

from ._version import version as __version__
from .backends import Backend, InMemoryAsyncBackend, create_backend
from .entities import EntityCollection
from .errors import BulkOperationError, NotFound, StorageUnavailable, StoreError
from .key_mapping import KeyMapper, generate_key
from .store import BulkResult, ImportEntry, KeyValueStore


__all__ = [
    "Backend",
    "BulkOperationError",
    "BulkResult",
    "EntityCollection",
    "ImportEntry",
    "InMemoryAsyncBackend",
    "KeyMapper",
    "KeyValueStore",
    "NotFound",
    "StorageUnavailable",
    "StoreError",
    "__version__",
    "create_backend",
    "generate_key",
]
