"""Notifications API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from app.core.enums import NotificationTypeEnum
from app.modules.identity.service import get_current_profile
from app.modules.notifications.schemas import (
    AffectedRowsRead,
    NotificationMarkRead,
    NotificationRead,
    UnreadCountRead,
)
from app.modules.notifications.service import NotificationsService, get_notifications_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=Page[NotificationRead])
async def list_notifications(
    is_read: bool | None = None,
    notification_type: NotificationTypeEnum | None = None,
    pagination=Depends(get_pagination_params),
    service: NotificationsService = Depends(get_notifications_service),
    current_profile=Depends(get_current_profile),
) -> Page[NotificationRead]:
    """List notifications for current profile."""
    items, total = await service.list_notifications(
        current_profile,
        pagination.limit,
        pagination.offset,
        is_read=is_read,
        type=notification_type,
    )
    serialized = [NotificationRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/unread-count", response_model=UnreadCountRead)
async def unread_count(
    service: NotificationsService = Depends(get_notifications_service),
    current_profile=Depends(get_current_profile),
) -> UnreadCountRead:
    """Return number of unread notifications."""
    return UnreadCountRead(unread=await service.unread_count(current_profile))


@router.post("/read-all", response_model=AffectedRowsRead)
async def mark_all_read(
    service: NotificationsService = Depends(get_notifications_service),
    current_profile=Depends(get_current_profile),
) -> AffectedRowsRead:
    """Mark every visible notification as read."""
    return AffectedRowsRead(affected=await service.mark_all_read(current_profile))


@router.post("/cleanup-trials", response_model=AffectedRowsRead)
async def cleanup_trial_notifications(
    service: NotificationsService = Depends(get_notifications_service),
    current_profile=Depends(get_current_profile),
) -> AffectedRowsRead:
    """Remove stale notifications of accepted trials."""
    return AffectedRowsRead(affected=await service.cleanup_trial_notifications(current_profile))


@router.patch("/{notification_id}", response_model=NotificationRead)
async def mark_read(
    notification_id: UUID,
    payload: NotificationMarkRead,
    service: NotificationsService = Depends(get_notifications_service),
    current_profile=Depends(get_current_profile),
) -> NotificationRead:
    """Set read flag."""
    notification = await service.mark_read(notification_id, current_profile, payload.is_read)
    return NotificationRead.model_validate(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: UUID,
    service: NotificationsService = Depends(get_notifications_service),
    current_profile=Depends(get_current_profile),
) -> Response:
    """Delete notification."""
    await service.delete_notification(notification_id, current_profile)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
