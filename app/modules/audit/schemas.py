"""Audit schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.core.enums import OperationStatusEnum, OutboxStatusEnum


class OperationLogRead(BaseModel):
    """Operation log response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    actor_id: UUID | None
    operation: str
    entity_type: str
    entity_id: str | None
    status: OperationStatusEnum
    details: dict
    error_message: str | None
    created_at: datetime


class OutboxEventRead(BaseModel):
    """Outbox event response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    aggregate_type: str
    aggregate_id: str
    event_type: str
    payload: dict
    status: OutboxStatusEnum
    occurred_at: datetime
    processed_at: datetime | None
    retries: int
    error_message: str | None
    created_at: datetime
    updated_at: datetime


class OutboxStatusSummary(BaseModel):
    """Outbox backlog by status."""

    pending: int = 0
    processed: int = 0
    failed: int = 0
