"""Notifications schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.core.enums import NotificationTypeEnum


class NotificationRead(BaseModel):
    """Notification response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: NotificationTypeEnum
    contract_id: UUID | None
    teacher_id: UUID | None
    student_id: UUID | None
    trial_appointment_id: UUID | None
    message: str
    is_read: bool
    created_at: datetime
    updated_at: datetime


class NotificationMarkRead(BaseModel):
    """Toggle read flag request."""

    is_read: bool = True


class UnreadCountRead(BaseModel):
    unread: int


class AffectedRowsRead(BaseModel):
    affected: int
