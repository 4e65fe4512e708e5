"""Default subject rows written by ``POST /seed``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from sms_store.entities import EntityCollection


DEFAULT_SUBJECTS: tuple[dict[str, Any], ...] = (
    {"name": "Object Oriented Programming", "code": "CS301", "credits": 4, "semester": 3},
    {"name": "Data Structures & Algorithms", "code": "CS302", "credits": 4, "semester": 3},
    {"name": "Operating Systems", "code": "CS303", "credits": 4, "semester": 3},
    {"name": "Computer Networks", "code": "CS304", "credits": 3, "semester": 3},
    {"name": "Database Management Systems", "code": "CS305", "credits": 4, "semester": 4},
    {"name": "Software Engineering", "code": "CS306", "credits": 3, "semester": 4},
    {"name": "Web Technologies", "code": "CS307", "credits": 3, "semester": 4},
    {"name": "Computer Architecture", "code": "CS308", "credits": 3, "semester": 4},
)


async def seed_subjects(subjects: EntityCollection) -> list[dict[str, Any]]:
    """Create one subject per default row, each with a fresh id."""
    return [await subjects.create(row) for row in DEFAULT_SUBJECTS]
