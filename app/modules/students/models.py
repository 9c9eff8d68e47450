"""Students ORM models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, BaseModelMixin, enum_column
from app.core.enums import StudentStatusEnum
from app.shared.utils import utc_now


class Student(BaseModelMixin, Base):
    """Enrolled student."""

    __tablename__ = "students"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    instrument: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    teacher_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("teachers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status: Mapped[StudentStatusEnum] = mapped_column(
        enum_column(StudentStatusEnum, "student_status_enum"),
        default=StudentStatusEnum.ACTIVE,
        nullable=False,
        index=True,
    )
    contract_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("contracts.id", ondelete="SET NULL", use_alter=True),
        nullable=True,
    )
    bank_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    price_version: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)


class StudentTeacher(Base):
    """Additional teacher assigned to a student."""

    __tablename__ = "student_teachers"

    student_id: Mapped[UUID] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE"),
        primary_key=True,
    )
    teacher_id: Mapped[UUID] = mapped_column(
        ForeignKey("teachers.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    assigned_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
