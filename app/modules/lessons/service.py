"""Lessons business logic layer."""

from __future__ import annotations

import datetime
import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import OperationStatusEnum
from app.core.metrics import LESSON_BATCH_ITEMS_TOTAL
from app.modules.audit.repository import AuditRepository
from app.modules.contracts.completion import ContractCompletionTracker
from app.modules.contracts.models import Contract
from app.modules.contracts.repository import ContractsRepository
from app.modules.contracts.service import build_completion_tracker
from app.modules.identity.models import Profile
from app.modules.lessons.models import Lesson
from app.modules.lessons.repository import LessonsRepository
from app.modules.lessons.schemas import LessonBatchItem, LessonBatchResult, LessonUpdate
from app.modules.students.repository import StudentsRepository
from app.modules.teachers.models import Teacher
from app.modules.teachers.repository import TeachersRepository
from app.modules.teachers.service import resolve_actor_teacher
from app.shared.exceptions import NotFoundException, UnauthorizedException
from app.shared.utils import parse_bool

logger = logging.getLogger(__name__)


def _parse_date(value: str | None) -> datetime.date | None:
    if value is None or not value.strip():
        return None
    return datetime.date.fromisoformat(value.strip()[:10])


def _clean_comment(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


class LessonsService:
    """Lesson attendance tracking."""

    def __init__(
        self,
        repository: LessonsRepository,
        contracts_repository: ContractsRepository,
        students_repository: StudentsRepository,
        teachers_repository: TeachersRepository,
        audit_repository: AuditRepository,
        completion_tracker: ContractCompletionTracker,
    ) -> None:
        self.repository = repository
        self.contracts_repository = contracts_repository
        self.students_repository = students_repository
        self.teachers_repository = teachers_repository
        self.audit_repository = audit_repository
        self.completion_tracker = completion_tracker

    async def _can_edit(self, contract: Contract, teacher: Teacher | None) -> bool:
        """Admins, the contract teacher and additionally assigned teachers track lessons."""
        if teacher is None or contract.teacher_id == teacher.id:
            return True
        return teacher.id in await self.students_repository.list_assigned_teacher_ids(contract.student_id)

    async def list_lessons(self, contract_id: UUID, actor: Profile) -> list[Lesson]:
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        contract = await self.contracts_repository.get_contract_by_id(contract_id)
        if contract is None:
            raise NotFoundException("Contract not found")
        if not await self._can_edit(contract, teacher):
            raise UnauthorizedException("Contract belongs to another teacher")
        return await self.repository.list_lessons_for_contract(contract.id)

    async def update_lesson(self, lesson_id: UUID, payload: LessonUpdate, actor: Profile) -> Lesson:
        """Update one lesson and re-evaluate its contract."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        lesson = await self.repository.get_lesson_by_id(lesson_id)
        if lesson is None:
            raise NotFoundException("Lesson not found")

        contract = await self.contracts_repository.get_contract_by_id(lesson.contract_id, for_update=True)
        if contract is None:
            raise NotFoundException("Contract not found")
        if not await self._can_edit(contract, teacher):
            raise UnauthorizedException("Contract belongs to another teacher")

        changes = payload.model_dump(exclude_unset=True)
        if changes.get("is_available", ...) is None:
            changes.pop("is_available", None)
        if "comment" in changes:
            changes["comment"] = _clean_comment(changes["comment"])

        lesson = await self.repository.update_lesson(lesson, **changes)
        await self.completion_tracker.sync(contract, trigger="lesson_update")
        return lesson

    async def batch_update_lessons(self, items: list[LessonBatchItem], actor: Profile) -> LessonBatchResult:
        """Apply many lesson updates; invalid items are reported, not raised.

        Contracts are locked once in id order and refreshed once each after
        all lesson writes.
        """
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        errors: list[str] = []

        lesson_contracts = await self.repository.map_contract_ids(list(dict.fromkeys(item.id for item in items)))
        resolved: list[tuple[LessonBatchItem, UUID]] = []
        for item in items:
            contract_id = lesson_contracts.get(item.id)
            if contract_id is None:
                errors.append(f"Lesson {item.id} not found")
            elif item.contract_id is not None and item.contract_id != contract_id:
                errors.append(f"Lesson {item.id} does not belong to contract {item.contract_id}")
            else:
                resolved.append((item, contract_id))

        contracts = await self.contracts_repository.lock_contracts(
            sorted({contract_id for _, contract_id in resolved}),
        )
        editable: dict[UUID, bool] = {}
        for contract_id, contract in contracts.items():
            editable[contract_id] = await self._can_edit(contract, teacher)

        lessons = await self.repository.get_lessons_by_ids([item.id for item, _ in resolved])
        processed: list[UUID] = []
        success_count = 0
        for item, contract_id in resolved:
            if not editable.get(contract_id, False):
                errors.append(f"Not allowed to edit lessons of contract {contract_id}")
                continue
            lesson = lessons.get(item.id)
            if lesson is None:
                errors.append(f"Lesson {item.id} not found")
                continue
            try:
                lesson_date = _parse_date(item.date)
            except ValueError:
                errors.append(f"Lesson {item.id}: invalid date {item.date!r}")
                continue

            is_available = lesson.is_available
            if item.is_available is not None:
                is_available = parse_bool(item.is_available, default=lesson.is_available)

            await self.repository.update_lesson(
                lesson,
                date=lesson_date,
                comment=_clean_comment(item.comment),
                is_available=is_available,
            )
            success_count += 1
            if contract_id not in processed:
                processed.append(contract_id)

        completed: list[UUID] = []
        for contract_id in sorted(processed):
            _, completed_now = await self.completion_tracker.sync(contracts[contract_id], trigger="batch")
            if completed_now:
                completed.append(contract_id)

        LESSON_BATCH_ITEMS_TOTAL.labels(outcome="success").inc(success_count)
        LESSON_BATCH_ITEMS_TOTAL.labels(outcome="error").inc(len(errors))
        await self.audit_repository.create_operation_log(
            actor_id=actor.id,
            operation="lessons.batch_update",
            entity_type="lesson",
            entity_id=None,
            details={
                "success_count": success_count,
                "error_count": len(errors),
                "processed_contracts": [str(contract_id) for contract_id in processed],
                "completed_contracts": [str(contract_id) for contract_id in completed],
            },
            status=OperationStatusEnum.FAILED if errors else OperationStatusEnum.SUCCESS,
            error_message="; ".join(errors) or None,
        )
        if errors:
            logger.warning("Lesson batch update finished with %s errors", len(errors))

        return LessonBatchResult(
            success=not errors,
            success_count=success_count,
            error_count=len(errors),
            errors=errors,
            processed_contracts=processed,
            completed_contracts=completed,
        )


async def get_lessons_service(session: AsyncSession = Depends(get_db_session)) -> LessonsService:
    """Dependency provider for lessons service."""
    return LessonsService(
        repository=LessonsRepository(session),
        contracts_repository=ContractsRepository(session),
        students_repository=StudentsRepository(session),
        teachers_repository=TeachersRepository(session),
        audit_repository=AuditRepository(session),
        completion_tracker=build_completion_tracker(session),
    )
