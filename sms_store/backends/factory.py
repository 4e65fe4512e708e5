"""Build a backend from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .in_memory import InMemoryAsyncBackend
from .nats import NatsBackend
from .postgres import PostgresBackend
from .redis import RedisBackend


if TYPE_CHECKING:
    from sms_store.settings import Settings

    from .protocol import Backend


def create_backend(settings: Settings) -> Backend:
    """Return the backend selected by ``settings.backend``."""
    if settings.backend == "memory":
        return InMemoryAsyncBackend()
    if settings.backend == "redis":
        return RedisBackend(url=settings.redis_url)
    if settings.backend == "postgres":
        return PostgresBackend(
            dsn=settings.postgres_dsn,
            table=settings.postgres_table,
            create_table=settings.create_missing,
        )
    if settings.backend == "nats":
        return NatsBackend(
            url=settings.nats_url,
            bucket=settings.nats_bucket,
            create_bucket=settings.create_missing,
        )
    msg = f"unknown backend: {settings.backend}"
    raise ValueError(msg)
