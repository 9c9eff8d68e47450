"""Trial appointments business logic layer.

Workflow: ``open`` (any teacher may accept) -> ``assigned`` (admin picked a
teacher, who may accept or decline) -> ``accepted``. Declining returns the
trial to ``open``. Every transition keeps the in-app notifications in step and
queues an email outbox event.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import NotificationTypeEnum, RoleEnum, TrialStatusEnum
from app.modules.audit.repository import AuditRepository
from app.modules.identity.models import Profile
from app.modules.notifications.repository import NotificationsRepository
from app.modules.notifications.service import publish_notification
from app.modules.teachers.models import Teacher
from app.modules.teachers.repository import TeachersRepository
from app.modules.teachers.service import resolve_actor_teacher
from app.modules.trials.models import TrialAppointment
from app.modules.trials.repository import TrialsRepository
from app.modules.trials.schemas import TrialCreate, TrialUpdate
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    UnauthorizedException,
)

logger = logging.getLogger(__name__)

PENDING_TRIAL_TYPES = (NotificationTypeEnum.OPEN_TRIAL, NotificationTypeEnum.ASSIGNED_TRIAL)


def open_trial_message(trial: TrialAppointment) -> str:
    return (
        f"Eine neue offene Probestunde mit {trial.student_name} ({trial.instrument}) ist verfügbar. "
        "Sie können diese in Ihrer Probestundenübersicht annehmen."
    )


def assigned_trial_message(trial: TrialAppointment) -> str:
    return (
        f"Sie wurden einer neuen Probestunde mit {trial.student_name} ({trial.instrument}) zugewiesen. "
        "Bitte prüfen Sie Ihre Probestundenübersicht, um diese anzunehmen oder abzulehnen."
    )


def accepted_trial_message(trial: TrialAppointment, teacher_name: str | None) -> str:
    return (
        f"{teacher_name or 'Ein Lehrer'} hat eine Probestunde mit "
        f"{trial.student_name} ({trial.instrument}) angenommen."
    )


def declined_trial_message(trial: TrialAppointment, teacher_name: str | None) -> str:
    return (
        f"{teacher_name or 'Ein Lehrer'} hat eine Probestunde mit {trial.student_name} ({trial.instrument}) "
        "abgelehnt. Die Probestunde ist jetzt für andere Lehrer verfügbar."
    )


class TrialsService:
    """Trial appointment workflow."""

    def __init__(
        self,
        repository: TrialsRepository,
        teachers_repository: TeachersRepository,
        notifications_repository: NotificationsRepository,
        audit_repository: AuditRepository,
    ) -> None:
        self.repository = repository
        self.teachers_repository = teachers_repository
        self.notifications_repository = notifications_repository
        self.audit_repository = audit_repository

    async def _get_trial(self, trial_id: UUID, *, for_update: bool = False) -> TrialAppointment:
        trial = await self.repository.get_trial_by_id(trial_id, for_update=for_update)
        if trial is None:
            raise NotFoundException("Trial appointment not found")
        return trial

    async def _require_teacher(self, actor: Profile) -> Teacher:
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        if teacher is None:
            raise UnauthorizedException("Only teachers can respond to trial appointments")
        return teacher

    async def _notify(
        self,
        trial: TrialAppointment,
        type: NotificationTypeEnum,
        message: str,
        teacher_ids: list[UUID | None],
    ) -> list[UUID | None]:
        """Create one notification per recipient; None addresses admins."""
        notified: list[UUID | None] = []
        for teacher_id in teacher_ids:
            if await self.notifications_repository.has_trial_notification(trial.id, teacher_id, type):
                continue
            await publish_notification(
                self.notifications_repository,
                type,
                message,
                teacher_id=teacher_id,
                trial_appointment_id=trial.id,
            )
            notified.append(teacher_id)
        return notified

    async def _record(
        self,
        actor: Profile,
        trial: TrialAppointment,
        operation: str,
        message: str | None = None,
        teacher_ids: list[UUID | None] | None = None,
    ) -> None:
        details = {"status": trial.status.value, "teacher_id": str(trial.teacher_id) if trial.teacher_id else None}
        await self.audit_repository.create_operation_log(
            actor_id=actor.id,
            operation=operation,
            entity_type="trial",
            entity_id=str(trial.id),
            details=details,
        )
        if message is None or not teacher_ids:
            return
        await self.audit_repository.create_outbox_event(
            aggregate_type="trial",
            aggregate_id=str(trial.id),
            event_type=operation,
            payload={
                "trial_id": str(trial.id),
                "teacher_ids": [str(teacher_id) for teacher_id in teacher_ids if teacher_id is not None],
                "notify_admins": None in teacher_ids,
                "message": message,
            },
        )

    async def _announce_open(
        self,
        actor: Profile,
        trial: TrialAppointment,
        operation: str,
        exclude_teacher_id: UUID | None,
    ) -> None:
        recipients = await self.teachers_repository.list_linked_teacher_ids(exclude_teacher_id=exclude_teacher_id)
        message = open_trial_message(trial)
        notified = await self._notify(trial, NotificationTypeEnum.OPEN_TRIAL, message, list(recipients))
        await self._record(actor, trial, operation, message, notified)

    async def _announce_assigned(self, actor: Profile, trial: TrialAppointment, operation: str) -> None:
        message = assigned_trial_message(trial)
        notified = await self._notify(trial, NotificationTypeEnum.ASSIGNED_TRIAL, message, [trial.teacher_id])
        await self._record(actor, trial, operation, message, notified)

    async def create_trial(self, payload: TrialCreate, actor: Profile) -> TrialAppointment:
        """Create open trial, or assigned trial when an admin names a teacher."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        if teacher is not None and payload.teacher_id is not None:
            raise UnauthorizedException("Only admin can assign trial appointments")
        if payload.teacher_id is not None:
            if await self.teachers_repository.get_teacher_by_id(payload.teacher_id) is None:
                raise NotFoundException("Teacher not found")

        trial = await self.repository.create_trial(
            student_name=payload.student_name,
            instrument=payload.instrument,
            phone=payload.phone,
            email=payload.email,
            notes=payload.notes,
            teacher_id=payload.teacher_id,
            status=TrialStatusEnum.ASSIGNED if payload.teacher_id is not None else TrialStatusEnum.OPEN,
            created_by=actor.id,
        )
        if trial.status == TrialStatusEnum.ASSIGNED:
            await self._announce_assigned(actor, trial, "trial.assigned")
        else:
            await self._announce_open(
                actor,
                trial,
                "trial.opened",
                exclude_teacher_id=teacher.id if teacher is not None else None,
            )
        logger.info("Created trial appointment %s (%s)", trial.id, trial.status.value)
        return trial

    async def get_trial(self, trial_id: UUID, actor: Profile) -> TrialAppointment:
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        trial = await self._get_trial(trial_id)
        if teacher is not None and trial.status != TrialStatusEnum.OPEN and trial.teacher_id != teacher.id:
            raise UnauthorizedException("Trial appointment is assigned to another teacher")
        return trial

    async def list_trials(
        self,
        actor: Profile,
        limit: int,
        offset: int,
        status: TrialStatusEnum | None = None,
    ) -> tuple[list[TrialAppointment], int]:
        """List trials; teachers see open trials and their own."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        return await self.repository.list_trials(
            limit,
            offset,
            visible_to_teacher_id=teacher.id if teacher is not None else None,
            status=status,
        )

    async def update_trial(self, trial_id: UUID, payload: TrialUpdate, actor: Profile) -> TrialAppointment:
        """Edit contact details (admin, or the creator until accepted)."""
        trial = await self._get_trial(trial_id, for_update=True)
        if actor.role != RoleEnum.ADMIN:
            if trial.created_by != actor.id:
                raise UnauthorizedException("Only admin or creator can edit trial appointment")
            if trial.status == TrialStatusEnum.ACCEPTED:
                raise BusinessRuleException("Accepted trial appointments can no longer be edited")

        changes = payload.model_dump(exclude_unset=True)
        for field_name in ("student_name", "instrument"):
            if changes.get(field_name, ...) is None:
                changes.pop(field_name)
        return await self.repository.apply_changes(trial, **changes)

    async def assign_trial(self, trial_id: UUID, teacher_id: UUID, actor: Profile) -> TrialAppointment:
        """Assign trial to a teacher (admin)."""
        if actor.role != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can assign trial appointments")
        trial = await self._get_trial(trial_id, for_update=True)
        if trial.status == TrialStatusEnum.ACCEPTED:
            raise BusinessRuleException("Trial appointment was already accepted")
        if await self.teachers_repository.get_teacher_by_id(teacher_id) is None:
            raise NotFoundException("Teacher not found")
        if trial.status == TrialStatusEnum.ASSIGNED and trial.teacher_id == teacher_id:
            return trial

        await self.notifications_repository.delete_trial_notifications(
            trial.id,
            [NotificationTypeEnum.OPEN_TRIAL],
        )
        await self.notifications_repository.delete_trial_notifications(
            trial.id,
            [NotificationTypeEnum.ASSIGNED_TRIAL],
            exclude_teacher_id=teacher_id,
        )
        trial = await self.repository.apply_changes(trial, status=TrialStatusEnum.ASSIGNED, teacher_id=teacher_id)
        await self._announce_assigned(actor, trial, "trial.assigned")
        return trial

    async def accept_trial(self, trial_id: UUID, actor: Profile) -> TrialAppointment:
        """Accept trial; the row lock makes the first teacher win."""
        teacher = await self._require_teacher(actor)
        trial = await self._get_trial(trial_id, for_update=True)
        if trial.status == TrialStatusEnum.ACCEPTED:
            raise ConflictException("Trial appointment was already accepted")
        if trial.status == TrialStatusEnum.ASSIGNED and trial.teacher_id != teacher.id:
            raise UnauthorizedException("Trial appointment is assigned to another teacher")

        trial = await self.repository.apply_changes(trial, status=TrialStatusEnum.ACCEPTED, teacher_id=teacher.id)
        removed = await self.notifications_repository.delete_trial_notifications(
            trial.id,
            PENDING_TRIAL_TYPES,
            exclude_teacher_id=teacher.id,
        )
        message = accepted_trial_message(trial, teacher.name)
        notified = await self._notify(trial, NotificationTypeEnum.ACCEPTED_TRIAL, message, [None])
        await self._record(actor, trial, "trial.accepted", message, notified)
        logger.info("Trial %s accepted by teacher %s (%s notifications removed)", trial.id, teacher.id, removed)
        return trial

    async def decline_trial(self, trial_id: UUID, actor: Profile) -> TrialAppointment:
        """Decline an assigned trial; it becomes open for other teachers."""
        teacher = await self._require_teacher(actor)
        trial = await self._get_trial(trial_id, for_update=True)
        if trial.status != TrialStatusEnum.ASSIGNED:
            raise BusinessRuleException("Only assigned trial appointments can be declined")
        if trial.teacher_id != teacher.id:
            raise UnauthorizedException("Trial appointment is assigned to another teacher")

        trial = await self.repository.apply_changes(trial, status=TrialStatusEnum.OPEN, teacher_id=None)
        await self.notifications_repository.delete_trial_notifications(
            trial.id,
            [NotificationTypeEnum.ASSIGNED_TRIAL],
            teacher_id=teacher.id,
        )
        await self._announce_open(actor, trial, "trial.opened", exclude_teacher_id=teacher.id)

        # Each decline is reported, so an older admin notice is replaced.
        await self.notifications_repository.delete_trial_notifications(
            trial.id,
            [NotificationTypeEnum.DECLINED_TRIAL],
        )
        message = declined_trial_message(trial, teacher.name)
        notified = await self._notify(trial, NotificationTypeEnum.DECLINED_TRIAL, message, [None])
        await self._record(actor, trial, "trial.declined", message, notified)
        return trial

    async def delete_trial(self, trial_id: UUID, actor: Profile) -> None:
        """Delete trial (admin or creator); its notifications cascade."""
        trial = await self._get_trial(trial_id, for_update=True)
        if actor.role != RoleEnum.ADMIN and trial.created_by != actor.id:
            raise UnauthorizedException("Only admin or creator can delete trial appointment")
        await self.repository.delete_trial(trial)
        await self.audit_repository.create_operation_log(
            actor_id=actor.id,
            operation="trial.deleted",
            entity_type="trial",
            entity_id=str(trial_id),
            details={},
        )


async def get_trials_service(session: AsyncSession = Depends(get_db_session)) -> TrialsService:
    """Dependency provider for trials service."""
    return TrialsService(
        repository=TrialsRepository(session),
        teachers_repository=TeachersRepository(session),
        notifications_repository=NotificationsRepository(session),
        audit_repository=AuditRepository(session),
    )
