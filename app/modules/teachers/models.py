"""Teachers ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin

if TYPE_CHECKING:
    from app.modules.identity.models import Profile


class Teacher(BaseModelMixin, Base):
    """Teacher record, optionally linked to a staff profile."""

    __tablename__ = "teachers"

    profile_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"),
        unique=True,
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    instruments: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    bank_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    student_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    profile: Mapped["Profile | None"] = relationship(back_populates="teacher")
