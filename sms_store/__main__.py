"""Interface for ``python -m sms_store``."""

from __future__ import annotations

import asyncio
import json
import sys
from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from ._version import version
from .backends import create_backend
from .entities import students, subjects
from .errors import StoreError
from .logging_config import configure_logging
from .models import ImportPayload
from .seed import seed_subjects
from .settings import get_settings
from .store import KeyValueStore


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from .settings import Settings


__all__ = ["main"]


def _build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="sms_store")
    _ = parser.add_argument("-v", "--version", action="version", version=version)
    commands = parser.add_subparsers(dest="command")

    serve = commands.add_parser("serve", help="run the REST API")
    _ = serve.add_argument("--host", default=None)
    _ = serve.add_argument("--port", type=int, default=None)

    export = commands.add_parser("export", help="write students and subjects as JSON")
    _ = export.add_argument("-o", "--output", type=Path, default=None)

    import_ = commands.add_parser("import", help="load students and subjects from a JSON export")
    _ = import_.add_argument("path", type=Path)

    _ = commands.add_parser("clear", help="delete every student and subject")
    _ = commands.add_parser("seed", help="create the default subjects")
    return parser


async def _with_store(settings: Settings, action: Callable[[KeyValueStore], Awaitable[Any]]) -> Any:
    async with KeyValueStore(create_backend(settings)) as store:
        return await action(store)


async def _export(store: KeyValueStore) -> dict[str, Any]:
    exported = await store.export_all([students(store).prefix, subjects(store).prefix])
    return {"students": exported[students(store).prefix], "subjects": exported[subjects(store).prefix]}


def _run_import(path: Path) -> Callable[[KeyValueStore], Awaitable[str]]:
    raw = json.loads(path.read_text())
    # Accept both a bare payload and the API's {"success": ..., "data": {...}} envelope.
    payload = ImportPayload.model_validate(raw.get("data", raw) if isinstance(raw, dict) else raw)

    async def action(store: KeyValueStore) -> str:
        student_result = await students(store).import_documents(s.to_document() for s in payload.students)
        subject_result = await subjects(store).import_documents(s.to_document() for s in payload.subjects)
        student_result.merge(subject_result).raise_for_failures()
        return f"Imported {len(payload.students)} students and {len(payload.subjects)} subjects"

    return action


async def _clear(store: KeyValueStore) -> str:
    cleared_students = await store.clear([students(store).prefix])
    cleared_subjects = await store.clear([subjects(store).prefix])
    return f"Cleared {cleared_students} students and {cleared_subjects} subjects"


async def _seed(store: KeyValueStore) -> str:
    created = await seed_subjects(subjects(store))
    return f"Seeded {len(created)} subjects"


def _serve(args: Namespace, settings: Settings) -> None:
    import uvicorn

    from .api import create_app

    uvicorn.run(
        create_app(settings=settings),
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )


def main(args: Sequence[str] | None = None) -> int:
    """Argument parser for the CLI."""
    parser = _build_parser()
    parsed = parser.parse_args(args)
    settings = get_settings()
    logger = configure_logging(settings.log_level)

    if parsed.command is None:
        parser.print_help()
        return 0
    if parsed.command == "serve":
        _serve(parsed, settings)
        return 0

    try:
        if parsed.command == "export":
            exported = asyncio.run(_with_store(settings, _export))
            text = json.dumps(exported, indent=2)
            if parsed.output is None:
                print(text)
            else:
                _ = parsed.output.write_text(text + "\n")
            return 0
        if parsed.command == "import":
            message = asyncio.run(_with_store(settings, _run_import(parsed.path)))
        elif parsed.command == "clear":
            message = asyncio.run(_with_store(settings, _clear))
        else:
            message = asyncio.run(_with_store(settings, _seed))
    except (StoreError, OSError, json.JSONDecodeError, ValidationError) as error:
        logger.error("%s failed: %s", parsed.command, error)
        return 1

    print(message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
