"""Identity ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin, enum_column
from app.core.enums import RoleEnum

if TYPE_CHECKING:
    from app.modules.teachers.models import Teacher


class Profile(BaseModelMixin, Base):
    """Staff account mirrored from the hosting platform's user directory.

    The primary key equals the platform user id (`sub` claim), so it is
    assigned explicitly instead of generated.
    """

    __tablename__ = "profiles"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[RoleEnum] = mapped_column(
        enum_column(RoleEnum, "role_enum"),
        default=RoleEnum.TEACHER,
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    teacher: Mapped["Teacher | None"] = relationship(back_populates="profile", uselist=False)
