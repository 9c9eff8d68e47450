"""Teachers schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field


def _clean_instruments(value: list[str]) -> list[str]:
    cleaned: list[str] = []
    for item in value:
        name = item.strip()
        if name and name not in cleaned:
            cleaned.append(name)
    return cleaned


InstrumentList = Annotated[list[str], AfterValidator(_clean_instruments)]


class TeacherCreate(BaseModel):
    """Create teacher request."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: str | None = Field(default=None, max_length=64)
    instruments: InstrumentList = Field(default_factory=list)
    profile_id: UUID | None = None


class TeacherUpdate(BaseModel):
    """Update teacher request."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=64)
    instruments: InstrumentList | None = None
    profile_id: UUID | None = None


class TeacherRead(BaseModel):
    """Teacher response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    profile_id: UUID | None
    name: str
    email: str
    phone: str | None
    instruments: list[str]
    bank_id: str
    student_count: int
    created_at: datetime
    updated_at: datetime


class TeacherContractCount(BaseModel):
    """Number of contracts owned by a teacher."""

    teacher_id: UUID
    contract_count: int
