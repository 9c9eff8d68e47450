"""Notifications business logic layer."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import NotificationTypeEnum, RoleEnum
from app.core.metrics import NOTIFICATIONS_CREATED_TOTAL
from app.modules.identity.models import Profile
from app.modules.notifications.models import Notification
from app.modules.notifications.repository import NotificationsRepository
from app.modules.teachers.repository import TeachersRepository
from app.modules.teachers.service import resolve_actor_teacher
from app.shared.exceptions import NotFoundException, UnauthorizedException

logger = logging.getLogger(__name__)


async def publish_notification(
    repository: NotificationsRepository,
    type: NotificationTypeEnum,
    message: str,
    **references: UUID | None,
) -> Notification:
    """Persist a notification and count it."""
    notification = await repository.create_notification(type, message, **references)
    NOTIFICATIONS_CREATED_TOTAL.labels(type=type.value).inc()
    logger.info("Created %s notification %s", type.value, notification.id)
    return notification


class NotificationsService:
    """Inbox operations; admins see every row, teachers their own."""

    def __init__(
        self,
        repository: NotificationsRepository,
        teachers_repository: TeachersRepository,
    ) -> None:
        self.repository = repository
        self.teachers_repository = teachers_repository

    async def _recipient_teacher_id(self, actor: Profile) -> UUID | None:
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        return teacher.id if teacher is not None else None

    async def _get_owned(self, notification_id: UUID, actor: Profile) -> Notification:
        notification = await self.repository.get_notification_by_id(notification_id)
        if notification is None:
            raise NotFoundException("Notification not found")
        teacher_id = await self._recipient_teacher_id(actor)
        if teacher_id is not None and notification.teacher_id != teacher_id:
            raise UnauthorizedException("Notification is not addressed to you")
        return notification

    async def list_notifications(
        self,
        actor: Profile,
        limit: int,
        offset: int,
        *,
        is_read: bool | None = None,
        type: NotificationTypeEnum | None = None,
    ) -> tuple[list[Notification], int]:
        """List notifications visible to actor, newest first."""
        return await self.repository.list_notifications(
            limit,
            offset,
            teacher_id=await self._recipient_teacher_id(actor),
            is_read=is_read,
            type=type,
        )

    async def unread_count(self, actor: Profile) -> int:
        return await self.repository.count_unread(await self._recipient_teacher_id(actor))

    async def mark_read(self, notification_id: UUID, actor: Profile, is_read: bool = True) -> Notification:
        notification = await self._get_owned(notification_id, actor)
        return await self.repository.mark_read(notification, is_read)

    async def mark_all_read(self, actor: Profile) -> int:
        return await self.repository.mark_all_read(await self._recipient_teacher_id(actor))

    async def delete_notification(self, notification_id: UUID, actor: Profile) -> None:
        notification = await self._get_owned(notification_id, actor)
        await self.repository.delete_notification(notification)

    async def cleanup_trial_notifications(self, actor: Profile) -> int:
        """Remove open/assigned notifications of already accepted trials."""
        if actor.role != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can clean up notifications")
        removed = await self.repository.delete_stale_trial_notifications()
        logger.info("Removed %s stale trial notifications", removed)
        return removed


async def get_notifications_service(session: AsyncSession = Depends(get_db_session)) -> NotificationsService:
    """Dependency provider for notifications service."""
    return NotificationsService(
        repository=NotificationsRepository(session),
        teachers_repository=TeachersRepository(session),
    )
