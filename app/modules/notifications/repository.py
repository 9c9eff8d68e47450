"""Notifications repository layer."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import NotificationTypeEnum, TrialStatusEnum
from app.modules.notifications.models import Notification
from app.modules.trials.models import TrialAppointment


class NotificationsRepository:
    """DB operations for notifications domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _recipient_filter(stmt, teacher_id: UUID | None):
        if teacher_id is not None:
            stmt = stmt.where(Notification.teacher_id == teacher_id)
        return stmt

    async def create_notification(
        self,
        type: NotificationTypeEnum,
        message: str,
        *,
        contract_id: UUID | None = None,
        teacher_id: UUID | None = None,
        student_id: UUID | None = None,
        trial_appointment_id: UUID | None = None,
    ) -> Notification:
        notification = Notification(
            type=type,
            message=message,
            contract_id=contract_id,
            teacher_id=teacher_id,
            student_id=student_id,
            trial_appointment_id=trial_appointment_id,
            is_read=False,
        )
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def get_notification_by_id(self, notification_id: UUID) -> Notification | None:
        stmt = select(Notification).where(Notification.id == notification_id)
        return await self.session.scalar(stmt)

    async def has_contract_fulfilled(self, contract_id: UUID) -> bool:
        stmt = select(func.count(Notification.id)).where(
            Notification.contract_id == contract_id,
            Notification.type == NotificationTypeEnum.CONTRACT_FULFILLED,
        )
        return bool(await self.session.scalar(stmt))

    async def has_trial_notification(
        self,
        trial_appointment_id: UUID,
        teacher_id: UUID | None,
        type: NotificationTypeEnum,
    ) -> bool:
        stmt = select(func.count(Notification.id)).where(
            Notification.trial_appointment_id == trial_appointment_id,
            Notification.type == type,
        )
        if teacher_id is None:
            stmt = stmt.where(Notification.teacher_id.is_(None))
        else:
            stmt = stmt.where(Notification.teacher_id == teacher_id)
        return bool(await self.session.scalar(stmt))

    async def list_notifications(
        self,
        limit: int,
        offset: int,
        *,
        teacher_id: UUID | None = None,
        is_read: bool | None = None,
        type: NotificationTypeEnum | None = None,
    ) -> tuple[list[Notification], int]:
        base_stmt: Select[tuple[Notification]] = self._recipient_filter(select(Notification), teacher_id)
        if is_read is not None:
            base_stmt = base_stmt.where(Notification.is_read.is_(is_read))
        if type is not None:
            base_stmt = base_stmt.where(Notification.type == type)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Notification.created_at.desc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def count_unread(self, teacher_id: UUID | None = None) -> int:
        stmt = self._recipient_filter(
            select(func.count(Notification.id)).where(Notification.is_read.is_(False)),
            teacher_id,
        )
        return int((await self.session.scalar(stmt)) or 0)

    async def mark_read(self, notification: Notification, is_read: bool = True) -> Notification:
        notification.is_read = is_read
        await self.session.flush()
        return notification

    async def mark_all_read(self, teacher_id: UUID | None = None) -> int:
        stmt = update(Notification).where(Notification.is_read.is_(False))
        if teacher_id is not None:
            stmt = stmt.where(Notification.teacher_id == teacher_id)
        result = await self.session.execute(stmt.values(is_read=True).execution_options(synchronize_session=False))
        return int(result.rowcount or 0)

    async def delete_notification(self, notification: Notification) -> None:
        await self.session.delete(notification)
        await self.session.flush()

    async def delete_trial_notifications(
        self,
        trial_appointment_id: UUID,
        types: Iterable[NotificationTypeEnum],
        *,
        teacher_id: UUID | None = None,
        exclude_teacher_id: UUID | None = None,
    ) -> int:
        stmt = delete(Notification).where(
            Notification.trial_appointment_id == trial_appointment_id,
            Notification.type.in_(list(types)),
        )
        if teacher_id is not None:
            stmt = stmt.where(Notification.teacher_id == teacher_id)
        if exclude_teacher_id is not None:
            stmt = stmt.where(Notification.teacher_id.is_distinct_from(exclude_teacher_id))
        result = await self.session.execute(stmt.execution_options(synchronize_session=False))
        return int(result.rowcount or 0)

    async def delete_stale_trial_notifications(self) -> int:
        """Drop open/assigned notifications whose trial was already accepted."""
        accepted = select(TrialAppointment.id).where(TrialAppointment.status == TrialStatusEnum.ACCEPTED)
        stmt = delete(Notification).where(
            Notification.type.in_([NotificationTypeEnum.OPEN_TRIAL, NotificationTypeEnum.ASSIGNED_TRIAL]),
            Notification.trial_appointment_id.in_(accepted),
        )
        result = await self.session.execute(stmt.execution_options(synchronize_session=False))
        return int(result.rowcount or 0)
