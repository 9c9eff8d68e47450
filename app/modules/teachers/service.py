"""Teachers business logic layer."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import RoleEnum
from app.modules.contracts.repository import ContractsRepository
from app.modules.identity.models import Profile
from app.modules.students.repository import StudentsRepository
from app.modules.teachers.models import Teacher
from app.modules.teachers.repository import TeachersRepository
from app.modules.teachers.schemas import TeacherContractCount, TeacherCreate, TeacherUpdate
from app.shared.exceptions import ConflictException, NotFoundException, UnauthorizedException
from app.shared.utils import next_sequential_code

logger = logging.getLogger(__name__)

TEACHER_BANK_ID_PREFIX = "L"


async def resolve_actor_teacher(repository: TeachersRepository, actor: Profile) -> Teacher | None:
    """Return the teacher record acting on behalf of `actor`; None for admins."""
    if actor.role == RoleEnum.ADMIN:
        return None
    teacher = await repository.get_teacher_by_profile_id(actor.id)
    if teacher is None:
        raise UnauthorizedException("No teacher record is linked to your profile")
    return teacher


async def refresh_student_counts(
    teachers_repository: TeachersRepository,
    students_repository: StudentsRepository,
    teacher_ids: set[UUID | None],
) -> None:
    """Recompute the cached active-student count of the given teachers."""
    ids = [teacher_id for teacher_id in teacher_ids if teacher_id is not None]
    for teacher in await teachers_repository.get_teachers_by_ids(ids):
        count = await students_repository.count_active_students_for_teacher(teacher.id)
        if teacher.student_count != count:
            await teachers_repository.set_student_count(teacher, count)


class TeachersService:
    """Teachers domain service."""

    def __init__(
        self,
        repository: TeachersRepository,
        students_repository: StudentsRepository,
        contracts_repository: ContractsRepository,
    ) -> None:
        self.repository = repository
        self.students_repository = students_repository
        self.contracts_repository = contracts_repository

    async def _ensure_profile_free(self, profile_id: UUID, teacher_id: UUID | None = None) -> None:
        linked = await self.repository.get_teacher_by_profile_id(profile_id)
        if linked is not None and linked.id != teacher_id:
            raise ConflictException("Profile is already linked to another teacher")

    async def create_teacher(self, payload: TeacherCreate, actor: Profile) -> Teacher:
        """Create teacher with a generated bank id."""
        if actor.role != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can create teachers")

        if payload.profile_id is not None:
            await self._ensure_profile_free(payload.profile_id)

        bank_id = next_sequential_code(TEACHER_BANK_ID_PREFIX, await self.repository.list_bank_ids())
        teacher = await self.repository.create_teacher(
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            instruments=payload.instruments,
            bank_id=bank_id,
            profile_id=payload.profile_id,
        )
        logger.info("Created teacher %s (%s)", teacher.id, teacher.bank_id)
        return teacher

    async def get_teacher(self, teacher_id: UUID) -> Teacher:
        """Return teacher or raise."""
        teacher = await self.repository.get_teacher_by_id(teacher_id)
        if teacher is None:
            raise NotFoundException("Teacher not found")
        return teacher

    async def update_teacher(self, teacher_id: UUID, payload: TeacherUpdate, actor: Profile) -> Teacher:
        """Update teacher details (admin or the linked teacher)."""
        teacher = await self.get_teacher(teacher_id)

        is_owner = teacher.profile_id is not None and teacher.profile_id == actor.id
        if actor.role != RoleEnum.ADMIN and not is_owner:
            raise UnauthorizedException("Only admin or owner can update teacher")

        changes = payload.model_dump(exclude_none=True)
        if "profile_id" in changes:
            if actor.role != RoleEnum.ADMIN:
                raise UnauthorizedException("Only admin can link teacher profiles")
            await self._ensure_profile_free(changes["profile_id"], teacher.id)

        return await self.repository.update_teacher(teacher, **changes)

    async def delete_teacher(self, teacher_id: UUID, actor: Profile) -> None:
        """Delete teacher; students and trials are unlinked by the database."""
        if actor.role != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can delete teachers")
        teacher = await self.get_teacher(teacher_id)
        await self.repository.delete_teacher(teacher)
        logger.info("Deleted teacher %s", teacher_id)

    async def list_teachers(
        self,
        limit: int,
        offset: int,
        instrument: str | None = None,
    ) -> tuple[list[Teacher], int]:
        """List teachers."""
        return await self.repository.list_teachers(limit=limit, offset=offset, instrument=instrument)

    async def contract_counts(self, actor: Profile) -> list[TeacherContractCount]:
        """Return number of contracts per teacher (admin only)."""
        if actor.role != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can view contract counts")
        counts = await self.contracts_repository.count_contracts_by_teacher()
        return [
            TeacherContractCount(teacher_id=teacher_id, contract_count=count)
            for teacher_id, count in counts.items()
        ]

    async def recompute_student_counts(self, actor: Profile) -> int:
        """Refresh every teacher's cached student count; returns teachers checked."""
        if actor.role != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can recompute student counts")
        teacher_ids = await self.repository.list_all_teacher_ids()
        await refresh_student_counts(self.repository, self.students_repository, set(teacher_ids))
        return len(teacher_ids)


async def get_teachers_service(session: AsyncSession = Depends(get_db_session)) -> TeachersService:
    """Dependency provider for teachers service."""
    return TeachersService(
        repository=TeachersRepository(session),
        students_repository=StudentsRepository(session),
        contracts_repository=ContractsRepository(session),
    )
