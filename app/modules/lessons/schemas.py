"""Lessons schemas."""

from __future__ import annotations

import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LessonRead(BaseModel):
    """Lesson response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    contract_id: UUID
    lesson_number: int
    date: datetime.date | None
    is_available: bool
    comment: str | None
    updated_at: datetime.datetime


class LessonUpdate(BaseModel):
    """Single lesson update; omitted fields stay unchanged, null clears."""

    date: datetime.date | None = None
    comment: str | None = Field(default=None, max_length=2000)
    is_available: bool | None = None


class LessonBatchItem(BaseModel):
    """One entry of a batch update; values are validated per item."""

    id: UUID
    contract_id: UUID | None = None
    date: str | None = None
    comment: str | None = None
    is_available: Any = None


class LessonBatchRequest(BaseModel):
    updates: list[LessonBatchItem] = Field(min_length=1, max_length=500)


class LessonBatchResult(BaseModel):
    """Outcome of a batch update."""

    success: bool
    success_count: int
    error_count: int
    errors: list[str] = Field(default_factory=list)
    processed_contracts: list[UUID] = Field(default_factory=list)
    completed_contracts: list[UUID] = Field(default_factory=list)
