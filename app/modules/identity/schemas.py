"""Identity schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.core.enums import RoleEnum


class ProfileUpdate(BaseModel):
    """Admin update of a staff profile."""

    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    role: RoleEnum | None = None
    is_active: bool | None = None


class ProfileRead(BaseModel):
    """Profile output schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: EmailStr
    full_name: str
    role: RoleEnum
    is_active: bool
    created_at: datetime
    updated_at: datetime
