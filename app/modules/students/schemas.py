"""Students schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.core.enums import StudentStatusEnum


class StudentCreate(BaseModel):
    """Create student request."""

    name: str = Field(min_length=1, max_length=255)
    instrument: str = Field(min_length=1, max_length=128)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=64)
    teacher_id: UUID | None = None
    status: StudentStatusEnum = StudentStatusEnum.ACTIVE
    notes: str | None = None
    price_version: int | None = Field(default=None, ge=1)


class StudentUpdate(BaseModel):
    """Update student request; omitted fields stay unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    instrument: str | None = Field(default=None, min_length=1, max_length=128)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=64)
    teacher_id: UUID | None = None
    status: StudentStatusEnum | None = None
    notes: str | None = None
    price_version: int | None = Field(default=None, ge=1)


class TeacherAssignmentRequest(BaseModel):
    """Assign an additional teacher to a student."""

    teacher_id: UUID


class StudentRead(BaseModel):
    """Student response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    instrument: str
    email: str | None
    phone: str | None
    teacher_id: UUID | None
    status: StudentStatusEnum
    contract_id: UUID | None
    bank_id: str
    notes: str | None
    price_version: int | None = None
    created_at: datetime
    updated_at: datetime


class StudentDetailRead(StudentRead):
    """Student with additional teacher assignments."""

    additional_teacher_ids: list[UUID] = Field(default_factory=list)
