"""Request and document schemas validated at the API boundary."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


Semester = Annotated[int, Field(ge=1, le=12)]
Marks = Annotated[int | float, Field(ge=0, le=100)]
Credits = Annotated[int | float, Field(ge=0)]


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self, *, partial: bool = False) -> dict[str, Any]:
        """Dump with wire (camelCase) names; ``partial`` keeps only fields the caller sent."""
        if partial:
            return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StudentSubject(_Document):
    subject_id: str = Field(min_length=1)
    marks: Marks
    grade: str | None = None


class StudentCreate(_Document):
    name: str = Field(min_length=1)
    email: str
    roll_number: str = Field(min_length=1)
    department: str
    semester: Semester
    year: int = Field(ge=1)
    phone_number: str | None = None
    date_of_birth: str | None = None
    address: str | None = None
    guardian_name: str | None = None
    guardian_phone: str | None = None
    subjects: list[StudentSubject] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if "@" not in value:
            msg = "email must contain '@'"
            raise ValueError(msg)
        return value


class StudentUpdate(_Document):
    name: str | None = Field(default=None, min_length=1)
    email: str | None = None
    roll_number: str | None = Field(default=None, min_length=1)
    department: str | None = None
    semester: Semester | None = None
    year: int | None = Field(default=None, ge=1)
    phone_number: str | None = None
    date_of_birth: str | None = None
    address: str | None = None
    guardian_name: str | None = None
    guardian_phone: str | None = None
    subjects: list[StudentSubject] | None = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str | None) -> str | None:
        if value is not None and "@" not in value:
            msg = "email must contain '@'"
            raise ValueError(msg)
        return value


class StudentImport(StudentCreate):
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class SubjectCreate(_Document):
    name: str = Field(min_length=1)
    code: str = Field(min_length=1)
    credits: Credits
    semester: Semester


class SubjectUpdate(_Document):
    name: str | None = Field(default=None, min_length=1)
    code: str | None = Field(default=None, min_length=1)
    credits: Credits | None = None
    semester: Semester | None = None


class SubjectImport(SubjectCreate):
    id: str | None = None
    created_at: str | None = None


class ImportPayload(BaseModel):
    students: list[StudentImport] = Field(default_factory=list)
    subjects: list[SubjectImport] = Field(default_factory=list)
