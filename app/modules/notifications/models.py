"""Notifications ORM models."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, BaseModelMixin, enum_column
from app.core.enums import NotificationTypeEnum


class Notification(BaseModelMixin, Base):
    """In-app notification; a NULL teacher_id addresses admins only."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index(
            "uq_notifications_contract_fulfilled",
            "contract_id",
            unique=True,
            postgresql_where=text("type = 'contract_fulfilled'"),
        ),
        Index(
            "uq_notifications_trial_recipient",
            "trial_appointment_id",
            "teacher_id",
            "type",
            unique=True,
            postgresql_where=text("trial_appointment_id IS NOT NULL AND teacher_id IS NOT NULL"),
        ),
        Index(
            "uq_notifications_trial_admin",
            "trial_appointment_id",
            "type",
            unique=True,
            postgresql_where=text("trial_appointment_id IS NOT NULL AND teacher_id IS NULL"),
        ),
    )

    type: Mapped[NotificationTypeEnum] = mapped_column(
        enum_column(NotificationTypeEnum, "notification_type_enum"),
        nullable=False,
        index=True,
    )
    contract_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("contracts.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    teacher_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("teachers.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    student_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("students.id", ondelete="SET NULL"),
        nullable=True,
    )
    trial_appointment_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("trial_appointments.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
