"""REST API over the student and subject collections."""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sms_store._version import version
from sms_store.backends import create_backend
from sms_store.entities import STUDENTS, SUBJECTS, students, subjects
from sms_store.errors import BulkOperationError, NotFound, StorageUnavailable
from sms_store.models import (
    ImportPayload,
    StudentCreate,
    StudentUpdate,
    SubjectCreate,
    SubjectUpdate,
)
from sms_store.seed import seed_subjects
from sms_store.settings import get_settings
from sms_store.store import KeyValueStore


if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sms_store.settings import Settings


logger = logging.getLogger(__name__)

STUDENT_PREFIX = f"{STUDENTS}:"
SUBJECT_PREFIX = f"{SUBJECTS}:"


def envelope(
    success: bool,
    *,
    data: Any = None,
    error: str | None = None,
    message: str | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": success}
    if data is not None:
        body["data"] = data
    if error is not None:
        body["error"] = error
    if message is not None:
        body["message"] = message
    return body


def get_store(request: Request) -> KeyValueStore:
    return request.app.state.store


StoreDep = Annotated[KeyValueStore, Depends(get_store)]

router = APIRouter()


# ==================== STUDENTS ====================


@router.get("/students")
async def list_students(store: StoreDep) -> dict[str, Any]:
    return envelope(True, data=await students(store).list_all())


@router.get("/students/{student_id}")
async def get_student(student_id: str, store: StoreDep) -> dict[str, Any]:
    return envelope(True, data=await students(store).get(student_id))


@router.post("/students")
async def create_student(payload: StudentCreate, store: StoreDep) -> dict[str, Any]:
    student = await students(store).create(payload.to_document())
    logger.info("created student %s", student["id"])
    return envelope(True, data=student)


@router.put("/students/{student_id}")
async def update_student(student_id: str, payload: StudentUpdate, store: StoreDep) -> dict[str, Any]:
    student = await students(store).update(student_id, payload.to_document(partial=True))
    return envelope(True, data=student)


@router.delete("/students/{student_id}")
async def delete_student(student_id: str, store: StoreDep) -> dict[str, Any]:
    await students(store).delete(student_id)
    return envelope(True, message="Student deleted successfully")


# ==================== SUBJECTS ====================


@router.get("/subjects")
async def list_subjects(store: StoreDep) -> dict[str, Any]:
    return envelope(True, data=await subjects(store).list_all())


@router.get("/subjects/{subject_id}")
async def get_subject(subject_id: str, store: StoreDep) -> dict[str, Any]:
    return envelope(True, data=await subjects(store).get(subject_id))


@router.post("/subjects")
async def create_subject(payload: SubjectCreate, store: StoreDep) -> dict[str, Any]:
    subject = await subjects(store).create(payload.to_document())
    logger.info("created subject %s", subject["id"])
    return envelope(True, data=subject)


@router.put("/subjects/{subject_id}")
async def update_subject(subject_id: str, payload: SubjectUpdate, store: StoreDep) -> dict[str, Any]:
    subject = await subjects(store).update(subject_id, payload.to_document(partial=True))
    return envelope(True, data=subject)


@router.delete("/subjects/{subject_id}")
async def delete_subject(subject_id: str, store: StoreDep) -> dict[str, Any]:
    await subjects(store).delete(subject_id)
    return envelope(True, message="Subject deleted successfully")


# ==================== BULK OPERATIONS ====================


@router.post("/import", response_model=None)
async def import_data(payload: ImportPayload, store: StoreDep) -> dict[str, Any] | JSONResponse:
    student_result = await students(store).import_documents(s.to_document() for s in payload.students)
    subject_result = await subjects(store).import_documents(s.to_document() for s in payload.subjects)

    data: dict[str, Any] = {
        "imported": {
            "students": len(student_result.succeeded),
            "subjects": len(subject_result.succeeded),
        },
    }
    failed = {**student_result.failed, **subject_result.failed}
    if failed:
        data["failed"] = failed
        attempted = student_result.attempted + subject_result.attempted
        logger.error("import finished with %d of %d failed entries", len(failed), attempted)
        return JSONResponse(
            status_code=500,
            content=envelope(False, data=data, error=f"{len(failed)} of {attempted} entries failed to import"),
        )

    return envelope(
        True,
        data=data,
        message=f"Imported {len(payload.students)} students and {len(payload.subjects)} subjects",
    )


@router.get("/export")
async def export_data(store: StoreDep) -> dict[str, Any]:
    exported = await store.export_all([STUDENT_PREFIX, SUBJECT_PREFIX])
    return envelope(True, data={"students": exported[STUDENT_PREFIX], "subjects": exported[SUBJECT_PREFIX]})


@router.delete("/clear-all")
async def clear_all(store: StoreDep) -> dict[str, Any]:
    cleared_students = await store.clear([STUDENT_PREFIX])
    cleared_subjects = await store.clear([SUBJECT_PREFIX])
    return envelope(True, message=f"Cleared {cleared_students} students and {cleared_subjects} subjects")


# ==================== SEED DATA ====================


@router.post("/seed")
async def seed(store: StoreDep) -> dict[str, Any]:
    created = await seed_subjects(subjects(store))
    return envelope(True, data=created, message="Default subjects seeded successfully")


@router.get("/health")
async def health() -> dict[str, Any]:
    return {"status": "healthy", "version": version}


# ==================== ERROR HANDLERS ====================


async def _not_found_handler(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content=envelope(False, error=str(exc)))


async def _storage_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("storage unavailable during %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content=envelope(False, error=str(exc)))


async def _bulk_error_handler(request: Request, exc: BulkOperationError) -> JSONResponse:
    logger.error("bulk operation failed during %s %s: %s", request.method, request.url.path, exc)
    data = {"succeeded": len(exc.result.succeeded), "failed": exc.result.failed}
    return JSONResponse(status_code=500, content=envelope(False, data=data, error=str(exc)))


async def _validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=422, content=envelope(False, data=errors, error="Invalid request body"))


async def _unexpected_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error during %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=envelope(False, error=str(exc)))


def create_app(store: KeyValueStore | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the application.

    When ``store`` is given the caller owns its lifecycle; otherwise a store is
    built from ``settings`` on startup and closed on shutdown.
    """
    settings = settings or get_settings()

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if store is not None:
            yield
            return
        owned = KeyValueStore(create_backend(settings))
        app.state.store = owned
        logger.info("using %s backend", settings.backend)
        try:
            yield
        finally:
            await owned.close()

    app = FastAPI(title="sms-store", version=version, lifespan=lifespan)
    if store is not None:
        app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(NotFound, _not_found_handler)
    app.add_exception_handler(StorageUnavailable, _storage_unavailable_handler)
    app.add_exception_handler(BulkOperationError, _bulk_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unexpected_handler)

    app.include_router(router)
    return app
