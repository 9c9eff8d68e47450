"""Lesson progress accounting for contracts."""

from __future__ import annotations

import datetime
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from app.core.config import get_settings
from app.core.enums import ContractTypeEnum


class LessonLike(Protocol):
    lesson_number: int
    date: datetime.date | None
    is_available: bool


@dataclass(frozen=True, slots=True)
class ContractProgress:
    """Lesson counts of one contract.

    A contract is complete once every lesson is either taught (available and
    dated) or excluded, and it has at least one lesson.
    """

    total: int
    available: int
    completed_available: int
    excluded: int
    attendance_dates: list[str] = field(default_factory=list)

    @property
    def attendance_count(self) -> str:
        return f"{self.completed_available}/{self.available}"

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.completed_available + self.excluded >= self.total


def compute_progress(lessons: Iterable[LessonLike]) -> ContractProgress:
    """Count lessons and collect dates of taught lessons in lesson order."""
    ordered = sorted(lessons, key=lambda lesson: lesson.lesson_number)
    available = [lesson for lesson in ordered if lesson.is_available]
    taught = [lesson for lesson in available if lesson.date is not None]
    return ContractProgress(
        total=len(ordered),
        available=len(available),
        completed_available=len(taught),
        excluded=len(ordered) - len(available),
        attendance_dates=[lesson.date.isoformat() for lesson in taught],
    )


def expected_lesson_count(contract_type: ContractTypeEnum, variant_total_lessons: int | None) -> int:
    """Number of lessons a contract should have."""
    if variant_total_lessons:
        return variant_total_lessons
    settings = get_settings()
    if contract_type == ContractTypeEnum.TEN_CLASS_CARD:
        return settings.ten_class_card_lessons
    return settings.half_year_lessons
