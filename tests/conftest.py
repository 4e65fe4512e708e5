from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from fastapi.testclient import TestClient

from sms_store.api import create_app
from sms_store.backends.in_memory import InMemoryAsyncBackend
from sms_store.settings import get_settings
from sms_store.store import KeyValueStore


if TYPE_CHECKING:
    from sms_store.settings import Settings


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop any SMS_STORE_* variables inherited from the developer's shell."""
    for name in list(os.environ):
        if name.startswith("SMS_STORE_"):
            monkeypatch.delenv(name)


@pytest.fixture
def settings(clean_env: None) -> Settings:
    return get_settings(env_file=None)


@pytest.fixture
def backend() -> InMemoryAsyncBackend:
    return InMemoryAsyncBackend()


@pytest.fixture
def kv_store(backend: InMemoryAsyncBackend) -> KeyValueStore:
    return KeyValueStore(backend)


@pytest.fixture
def client(kv_store: KeyValueStore, settings: Settings) -> TestClient:
    return TestClient(create_app(kv_store, settings=settings))
