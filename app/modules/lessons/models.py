"""Lessons ORM models."""

from __future__ import annotations

import datetime
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, BaseModelMixin


class Lesson(BaseModelMixin, Base):
    """Numbered lesson slot of a contract; a date marks it as taught."""

    __tablename__ = "lessons"
    __table_args__ = (
        UniqueConstraint("contract_id", "lesson_number", name="uq_lessons_contract_id_lesson_number"),
        CheckConstraint("lesson_number >= 1", name="lesson_number_positive"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        ForeignKey("contracts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lesson_number: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
