"""Attendance cache refresh, contract completion and fulfilment notice."""

from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from app.core.config import get_settings
from app.core.enums import ContractStatusEnum, ContractTypeEnum, NotificationTypeEnum
from app.core.metrics import CONTRACTS_COMPLETED_TOTAL
from app.modules.audit.repository import AuditRepository
from app.modules.contracts.models import Contract
from app.modules.contracts.progress import ContractProgress, compute_progress
from app.modules.contracts.repository import ContractsRepository
from app.modules.lessons.repository import LessonsRepository
from app.modules.notifications.models import Notification
from app.modules.notifications.repository import NotificationsRepository
from app.modules.notifications.service import publish_notification
from app.modules.students.repository import StudentsRepository
from app.modules.teachers.repository import TeachersRepository
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)

CONTRACT_TYPE_LABELS = {
    ContractTypeEnum.TEN_CLASS_CARD: "10er Karte",
    ContractTypeEnum.HALF_YEAR: "Halbjahresvertrag",
}


def format_fulfilment_message(
    student_name: str | None,
    contract_label: str | None,
    progress: ContractProgress,
    teacher_name: str | None,
    completed_at: datetime,
) -> str:
    """Render the German fulfilment notice."""
    local_time = completed_at.astimezone(ZoneInfo(get_settings().display_timezone))
    if progress.excluded > 0:
        lessons_part = (
            f"{progress.completed_available} von {progress.total} Stunden abgeschlossen, "
            f"{progress.excluded} ausgeschlossen"
        )
    else:
        lessons_part = f"{progress.completed_available} von {progress.total} Stunden"
    return (
        f"Vertrag abgeschlossen: {student_name or 'Unbekannter Schüler'} hat den "
        f"{contract_label or 'Vertrag'} erfolgreich abgeschlossen ({lessons_part}). "
        f"Lehrer: {teacher_name or 'Unbekannter Lehrer'}. "
        f"Abgeschlossen am: {local_time:%d.%m.%Y %H:%M}."
    )


class ContractCompletionTracker:
    """Keep a contract's attendance cache and completion state in step with its lessons.

    Callers hold the contract row lock, so one contract is never completed
    twice concurrently; the fulfilment notification is additionally guarded
    by a lookup and a partial unique index.
    """

    def __init__(
        self,
        contracts_repository: ContractsRepository,
        lessons_repository: LessonsRepository,
        students_repository: StudentsRepository,
        teachers_repository: TeachersRepository,
        notifications_repository: NotificationsRepository,
        audit_repository: AuditRepository,
        *,
        now_provider=utc_now,
    ) -> None:
        self.contracts_repository = contracts_repository
        self.lessons_repository = lessons_repository
        self.students_repository = students_repository
        self.teachers_repository = teachers_repository
        self.notifications_repository = notifications_repository
        self.audit_repository = audit_repository
        self.now_provider = now_provider

    async def refresh_attendance(self, contract: Contract) -> ContractProgress:
        """Recompute attendance_count and attendance_dates from lessons."""
        lessons = await self.lessons_repository.list_lessons_for_contract(contract.id)
        progress = compute_progress(lessons)
        if (
            contract.attendance_count != progress.attendance_count
            or contract.attendance_dates != progress.attendance_dates
        ):
            await self.contracts_repository.apply_changes(
                contract,
                attendance_count=progress.attendance_count,
                attendance_dates=progress.attendance_dates,
            )
        return progress

    async def sync(self, contract: Contract, trigger: str) -> tuple[ContractProgress, bool]:
        """Refresh the cache and complete the contract if it is due.

        Returns the progress and whether the contract was completed by this call.
        """
        progress = await self.refresh_attendance(contract)
        if contract.status != ContractStatusEnum.ACTIVE or not progress.is_complete:
            return progress, False
        await self.mark_completed(contract, progress, trigger)
        return progress, True

    async def mark_completed(self, contract: Contract, progress: ContractProgress, trigger: str) -> None:
        await self.contracts_repository.apply_changes(
            contract,
            status=ContractStatusEnum.COMPLETED,
            completed_at=self.now_provider(),
        )
        CONTRACTS_COMPLETED_TOTAL.labels(trigger=trigger).inc()
        logger.info("Contract %s completed (%s, %s)", contract.id, trigger, progress.attendance_count)
        await self.notify_fulfilled(contract, progress)

    async def notify_fulfilled(self, contract: Contract, progress: ContractProgress) -> Notification | None:
        """Create the single fulfilment notification of a contract."""
        if await self.notifications_repository.has_contract_fulfilled(contract.id):
            logger.info("Fulfilment notification for contract %s already exists", contract.id)
            return None

        student = await self.students_repository.get_student_by_id(contract.student_id)
        teacher = None
        if contract.teacher_id is not None:
            teacher = await self.teachers_repository.get_teacher_by_id(contract.teacher_id)
        contract_label = CONTRACT_TYPE_LABELS.get(contract.type)
        if contract.contract_variant_id is not None:
            variant = await self.contracts_repository.get_variant_by_id(contract.contract_variant_id)
            if variant is not None:
                contract_label = variant.name

        message = format_fulfilment_message(
            student.name if student is not None else None,
            contract_label,
            progress,
            teacher.name if teacher is not None else None,
            contract.completed_at or self.now_provider(),
        )
        notification = await publish_notification(
            self.notifications_repository,
            NotificationTypeEnum.CONTRACT_FULFILLED,
            message,
            contract_id=contract.id,
            teacher_id=contract.teacher_id,
            student_id=contract.student_id,
        )
        await self.audit_repository.create_outbox_event(
            aggregate_type="contract",
            aggregate_id=str(contract.id),
            event_type="contract.fulfilled",
            payload={
                "contract_id": str(contract.id),
                "student_id": str(contract.student_id),
                "teacher_id": str(contract.teacher_id) if contract.teacher_id else None,
                "message": message,
            },
        )
        return notification
