"""Lessons repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.lessons.models import Lesson


class LessonsRepository:
    """DB operations for lessons domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_lessons_for_contract(self, contract_id: UUID) -> list[Lesson]:
        stmt = select(Lesson).where(Lesson.contract_id == contract_id).order_by(Lesson.lesson_number.asc())
        return list((await self.session.scalars(stmt)).all())

    async def get_lesson_by_id(self, lesson_id: UUID) -> Lesson | None:
        stmt = select(Lesson).where(Lesson.id == lesson_id)
        return await self.session.scalar(stmt)

    async def map_contract_ids(self, lesson_ids: list[UUID]) -> dict[UUID, UUID]:
        if not lesson_ids:
            return {}
        stmt = select(Lesson.id, Lesson.contract_id).where(Lesson.id.in_(lesson_ids))
        return {lesson_id: contract_id for lesson_id, contract_id in (await self.session.execute(stmt)).all()}

    async def get_lessons_by_ids(self, lesson_ids: list[UUID]) -> dict[UUID, Lesson]:
        if not lesson_ids:
            return {}
        stmt = select(Lesson).where(Lesson.id.in_(lesson_ids))
        return {lesson.id: lesson for lesson in (await self.session.scalars(stmt)).all()}

    async def create_lessons(self, contract_id: UUID, lesson_numbers: list[int]) -> list[Lesson]:
        lessons = [Lesson(contract_id=contract_id, lesson_number=number) for number in lesson_numbers]
        self.session.add_all(lessons)
        await self.session.flush()
        return lessons

    async def delete_lessons_above(self, contract_id: UUID, max_lesson_number: int) -> int:
        stmt = delete(Lesson).where(
            Lesson.contract_id == contract_id,
            Lesson.lesson_number > max_lesson_number,
        )
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)

    async def update_lesson(self, lesson: Lesson, **changes) -> Lesson:
        for key, value in changes.items():
            setattr(lesson, key, value)
        await self.session.flush()
        return lesson
