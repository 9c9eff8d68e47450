"""Students business logic layer."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.core.enums import RoleEnum, StudentStatusEnum
from app.modules.contracts.repository import ContractsRepository
from app.modules.identity.models import Profile
from app.modules.students.models import Student
from app.modules.students.repository import StudentsRepository
from app.modules.students.schemas import StudentCreate, StudentUpdate
from app.modules.teachers.models import Teacher
from app.modules.teachers.repository import TeachersRepository
from app.modules.teachers.service import refresh_student_counts, resolve_actor_teacher
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    UnauthorizedException,
)
from app.shared.utils import next_sequential_code

logger = logging.getLogger(__name__)

STUDENT_BANK_ID_PREFIX = "S"
_REQUIRED_FIELDS = ("name", "instrument", "status")


class StudentsService:
    """Students domain service."""

    def __init__(
        self,
        repository: StudentsRepository,
        teachers_repository: TeachersRepository,
        contracts_repository: ContractsRepository,
    ) -> None:
        self.repository = repository
        self.teachers_repository = teachers_repository
        self.contracts_repository = contracts_repository

    async def _get_student(self, student_id: UUID) -> Student:
        student = await self.repository.get_student_by_id(student_id)
        if student is None:
            raise NotFoundException("Student not found")
        return student

    async def _ensure_teacher_exists(self, teacher_id: UUID) -> None:
        if await self.teachers_repository.get_teacher_by_id(teacher_id) is None:
            raise NotFoundException("Teacher not found")

    async def _ensure_visible(self, student: Student, teacher: Teacher | None) -> list[UUID]:
        assigned = await self.repository.list_assigned_teacher_ids(student.id)
        if teacher is not None and student.teacher_id != teacher.id and teacher.id not in assigned:
            raise UnauthorizedException("Student is not assigned to you")
        return assigned

    async def _refresh_counts(self, *teacher_ids: UUID | None) -> None:
        await refresh_student_counts(self.teachers_repository, self.repository, set(teacher_ids))

    async def create_student(self, payload: StudentCreate, actor: Profile) -> Student:
        """Create student; teachers always create students for themselves."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        teacher_id = payload.teacher_id
        if teacher is not None:
            if teacher_id is not None and teacher_id != teacher.id:
                raise UnauthorizedException("Teachers can only create their own students")
            teacher_id = teacher.id
        elif teacher_id is not None:
            await self._ensure_teacher_exists(teacher_id)

        price_version = payload.price_version
        if price_version is None:
            price_version = await self.contracts_repository.get_current_price_version()
        elif teacher is not None:
            raise UnauthorizedException("Only admin can choose a price version")

        bank_id = next_sequential_code(STUDENT_BANK_ID_PREFIX, await self.repository.list_bank_ids())
        student = await self.repository.create_student(
            name=payload.name,
            instrument=payload.instrument,
            email=payload.email,
            phone=payload.phone,
            teacher_id=teacher_id,
            status=payload.status,
            notes=payload.notes,
            bank_id=bank_id,
            price_version=price_version,
        )
        await self._refresh_counts(teacher_id)
        logger.info("Created student %s (%s)", student.id, student.bank_id)
        return student

    async def get_student(self, student_id: UUID, actor: Profile) -> tuple[Student, list[UUID]]:
        """Return student with additional teacher ids."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        student = await self._get_student(student_id)
        assigned = await self._ensure_visible(student, teacher)
        return student, assigned

    async def list_students(
        self,
        actor: Profile,
        limit: int,
        offset: int,
        *,
        teacher_id: UUID | None = None,
        status: StudentStatusEnum | None = None,
        search: str | None = None,
    ) -> tuple[list[Student], int]:
        """List students visible to actor."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        return await self.repository.list_students(
            limit,
            offset,
            visible_to_teacher_id=teacher.id if teacher is not None else None,
            teacher_id=teacher_id,
            status=status,
            search=search,
        )

    async def update_student(self, student_id: UUID, payload: StudentUpdate, actor: Profile) -> Student:
        """Update student details; only admins reassign the primary teacher."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        student = await self._get_student(student_id)
        if teacher is not None and student.teacher_id != teacher.id:
            raise UnauthorizedException("Only the primary teacher can edit this student")

        changes = payload.model_dump(exclude_unset=True)
        for field_name in _REQUIRED_FIELDS:
            if field_name in changes and changes[field_name] is None:
                changes.pop(field_name)
        if "price_version" in changes:
            if changes["price_version"] is None:
                changes.pop("price_version")
            elif teacher is not None and changes["price_version"] != student.price_version:
                raise UnauthorizedException("Only admin can change the price version")

        previous_teacher_id = student.teacher_id
        if "teacher_id" in changes and changes["teacher_id"] != previous_teacher_id:
            if teacher is not None:
                raise UnauthorizedException("Only admin can reassign the primary teacher")
            new_teacher_id = changes["teacher_id"]
            if new_teacher_id is not None:
                await self._ensure_teacher_exists(new_teacher_id)
                if await self.repository.remove_assignment(student.id, new_teacher_id):
                    logger.info("Promoted additional teacher %s to primary for %s", new_teacher_id, student.id)
        else:
            changes.pop("teacher_id", None)

        student = await self.repository.apply_changes(student, **changes)
        assigned = await self.repository.list_assigned_teacher_ids(student.id)
        await self._refresh_counts(previous_teacher_id, student.teacher_id, *assigned)
        return student

    async def delete_student(self, student_id: UUID, actor: Profile) -> None:
        """Delete student together with contracts and lessons."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        student = await self._get_student(student_id)
        if teacher is not None and student.teacher_id != teacher.id:
            raise UnauthorizedException("Only the primary teacher can delete this student")

        affected = {student.teacher_id, *await self.repository.list_assigned_teacher_ids(student.id)}
        await self.repository.delete_student(student)
        await self._refresh_counts(*affected)
        logger.info("Deleted student %s", student_id)

    async def assign_teacher(self, student_id: UUID, teacher_id: UUID, actor: Profile) -> list[UUID]:
        """Add an additional teacher to the student."""
        if actor.role != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can assign teachers")

        student = await self._get_student(student_id)
        await self._ensure_teacher_exists(teacher_id)

        assigned = await self.repository.list_assigned_teacher_ids(student.id)
        if teacher_id == student.teacher_id or teacher_id in assigned:
            raise ConflictException("Teacher is already assigned to this student")

        current_total = len(assigned) + (1 if student.teacher_id is not None else 0)
        if current_total >= get_settings().max_teachers_per_student:
            raise BusinessRuleException("Student already has the maximum number of teachers")

        await self.repository.add_assignment(student.id, teacher_id, actor.id)
        await self._refresh_counts(teacher_id)
        return [*assigned, teacher_id]

    async def unassign_teacher(self, student_id: UUID, teacher_id: UUID, actor: Profile) -> list[UUID]:
        """Remove an additional teacher from the student."""
        if actor.role != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can unassign teachers")

        student = await self._get_student(student_id)
        if not await self.repository.remove_assignment(student.id, teacher_id):
            raise NotFoundException("Teacher assignment not found")

        await self._refresh_counts(teacher_id)
        return await self.repository.list_assigned_teacher_ids(student.id)


async def get_students_service(session: AsyncSession = Depends(get_db_session)) -> StudentsService:
    """Dependency provider for students service."""
    return StudentsService(
        repository=StudentsRepository(session),
        teachers_repository=TeachersRepository(session),
        contracts_repository=ContractsRepository(session),
    )
