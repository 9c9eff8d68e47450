"""Students repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import StudentStatusEnum
from app.modules.students.models import Student, StudentTeacher


class StudentsRepository:
    """DB operations for students domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _visible_to_teacher(teacher_id: UUID):
        assigned = select(StudentTeacher.student_id).where(StudentTeacher.teacher_id == teacher_id)
        return or_(Student.teacher_id == teacher_id, Student.id.in_(assigned))

    async def create_student(self, **fields) -> Student:
        student = Student(**fields)
        self.session.add(student)
        await self.session.flush()
        return student

    async def get_student_by_id(self, student_id: UUID, *, for_update: bool = False) -> Student | None:
        stmt = select(Student).where(Student.id == student_id)
        if for_update:
            stmt = stmt.with_for_update()
        return await self.session.scalar(stmt)

    async def list_students(
        self,
        limit: int,
        offset: int,
        *,
        visible_to_teacher_id: UUID | None = None,
        teacher_id: UUID | None = None,
        status: StudentStatusEnum | None = None,
        search: str | None = None,
    ) -> tuple[list[Student], int]:
        base_stmt: Select[tuple[Student]] = select(Student)
        if visible_to_teacher_id is not None:
            base_stmt = base_stmt.where(self._visible_to_teacher(visible_to_teacher_id))
        if teacher_id is not None:
            base_stmt = base_stmt.where(Student.teacher_id == teacher_id)
        if status is not None:
            base_stmt = base_stmt.where(Student.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            base_stmt = base_stmt.where(or_(Student.name.ilike(pattern), Student.instrument.ilike(pattern)))

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Student.name.asc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def list_bank_ids(self) -> list[str]:
        return list((await self.session.scalars(select(Student.bank_id))).all())

    async def apply_changes(self, student: Student, **changes) -> Student:
        for key, value in changes.items():
            setattr(student, key, value)
        await self.session.flush()
        return student

    async def delete_student(self, student: Student) -> None:
        await self.session.delete(student)
        await self.session.flush()

    async def count_active_students_for_teacher(self, teacher_id: UUID) -> int:
        stmt = select(func.count(Student.id)).where(
            Student.status == StudentStatusEnum.ACTIVE,
            self._visible_to_teacher(teacher_id),
        )
        return int((await self.session.scalar(stmt)) or 0)

    async def list_assigned_teacher_ids(self, student_id: UUID) -> list[UUID]:
        stmt = select(StudentTeacher.teacher_id).where(StudentTeacher.student_id == student_id)
        return list((await self.session.scalars(stmt)).all())

    async def add_assignment(
        self,
        student_id: UUID,
        teacher_id: UUID,
        assigned_by: UUID | None,
    ) -> StudentTeacher:
        assignment = StudentTeacher(student_id=student_id, teacher_id=teacher_id, assigned_by=assigned_by)
        self.session.add(assignment)
        await self.session.flush()
        return assignment

    async def remove_assignment(self, student_id: UUID, teacher_id: UUID) -> bool:
        stmt = delete(StudentTeacher).where(
            StudentTeacher.student_id == student_id,
            StudentTeacher.teacher_id == teacher_id,
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount)
