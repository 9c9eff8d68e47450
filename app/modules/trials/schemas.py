"""Trial appointment schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.core.enums import TrialStatusEnum


class TrialCreate(BaseModel):
    """Create trial request; admins may name a teacher directly."""

    student_name: str = Field(min_length=1, max_length=255)
    instrument: str = Field(min_length=1, max_length=128)
    phone: str | None = Field(default=None, max_length=64)
    email: EmailStr | None = None
    notes: str | None = None
    teacher_id: UUID | None = None


class TrialUpdate(BaseModel):
    student_name: str | None = Field(default=None, min_length=1, max_length=255)
    instrument: str | None = Field(default=None, min_length=1, max_length=128)
    phone: str | None = Field(default=None, max_length=64)
    email: EmailStr | None = None
    notes: str | None = None


class TrialAssignRequest(BaseModel):
    teacher_id: UUID


class TrialRead(BaseModel):
    """Trial appointment response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_name: str
    instrument: str
    phone: str | None
    email: str | None
    notes: str | None
    status: TrialStatusEnum
    teacher_id: UUID | None
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime
