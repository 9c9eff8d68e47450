"""Teachers repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.teachers.models import Teacher


class TeachersRepository:
    """DB operations for teachers domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_teacher(
        self,
        name: str,
        email: str,
        phone: str | None,
        instruments: list[str],
        bank_id: str,
        profile_id: UUID | None,
    ) -> Teacher:
        teacher = Teacher(
            name=name,
            email=email,
            phone=phone,
            instruments=instruments,
            bank_id=bank_id,
            profile_id=profile_id,
        )
        self.session.add(teacher)
        await self.session.flush()
        return teacher

    async def get_teacher_by_id(self, teacher_id: UUID) -> Teacher | None:
        stmt = select(Teacher).where(Teacher.id == teacher_id)
        return await self.session.scalar(stmt)

    async def get_teacher_by_profile_id(self, profile_id: UUID) -> Teacher | None:
        stmt = select(Teacher).where(Teacher.profile_id == profile_id)
        return await self.session.scalar(stmt)

    async def get_teacher_by_email(self, email: str, *, for_update: bool = False) -> Teacher | None:
        stmt = select(Teacher).where(func.lower(Teacher.email) == email.lower())
        if for_update:
            stmt = stmt.with_for_update()
        return await self.session.scalar(stmt)

    async def get_teachers_by_ids(self, teacher_ids: list[UUID]) -> list[Teacher]:
        if not teacher_ids:
            return []
        stmt = select(Teacher).where(Teacher.id.in_(teacher_ids))
        return (await self.session.scalars(stmt)).all()

    async def list_teachers(
        self,
        limit: int,
        offset: int,
        instrument: str | None = None,
    ) -> tuple[list[Teacher], int]:
        base_stmt: Select[tuple[Teacher]] = select(Teacher)
        if instrument:
            base_stmt = base_stmt.where(Teacher.instruments.contains([instrument]))

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Teacher.name.asc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def list_linked_teacher_ids(self, exclude_teacher_id: UUID | None = None) -> list[UUID]:
        """Return ids of teachers that have a staff profile (notification recipients)."""
        stmt = select(Teacher.id).where(Teacher.profile_id.is_not(None))
        if exclude_teacher_id is not None:
            stmt = stmt.where(Teacher.id != exclude_teacher_id)
        return list((await self.session.scalars(stmt)).all())

    async def list_all_teacher_ids(self) -> list[UUID]:
        return list((await self.session.scalars(select(Teacher.id))).all())

    async def list_bank_ids(self) -> list[str]:
        return list((await self.session.scalars(select(Teacher.bank_id))).all())

    async def update_teacher(self, teacher: Teacher, **changes) -> Teacher:
        for key, value in changes.items():
            if value is not None:
                setattr(teacher, key, value)
        await self.session.flush()
        return teacher

    async def set_student_count(self, teacher: Teacher, student_count: int) -> Teacher:
        teacher.student_count = student_count
        await self.session.flush()
        return teacher

    async def delete_teacher(self, teacher: Teacher) -> None:
        await self.session.delete(teacher)
        await self.session.flush()
