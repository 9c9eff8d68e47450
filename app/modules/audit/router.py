"""Audit API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.enums import OperationStatusEnum, OutboxStatusEnum
from app.modules.audit.schemas import OperationLogRead, OutboxEventRead, OutboxStatusSummary
from app.modules.audit.service import AuditService, get_audit_service
from app.modules.identity.service import get_current_profile
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/logs", response_model=Page[OperationLogRead])
async def list_logs(
    entity_type: str | None = None,
    log_status: OperationStatusEnum | None = None,
    pagination=Depends(get_pagination_params),
    service: AuditService = Depends(get_audit_service),
    current_profile=Depends(get_current_profile),
) -> Page[OperationLogRead]:
    """List operation logs."""
    items, total = await service.list_logs(
        current_profile,
        pagination.limit,
        pagination.offset,
        entity_type=entity_type,
        status=log_status,
    )
    serialized = [OperationLogRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/outbox", response_model=Page[OutboxEventRead])
async def list_outbox(
    event_status: OutboxStatusEnum | None = None,
    pagination=Depends(get_pagination_params),
    service: AuditService = Depends(get_audit_service),
    current_profile=Depends(get_current_profile),
) -> Page[OutboxEventRead]:
    """List outbox events."""
    items, total = await service.list_outbox(
        current_profile,
        pagination.limit,
        pagination.offset,
        status=event_status,
    )
    serialized = [OutboxEventRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/outbox/summary", response_model=OutboxStatusSummary)
async def outbox_summary(
    service: AuditService = Depends(get_audit_service),
    current_profile=Depends(get_current_profile),
) -> OutboxStatusSummary:
    """Return outbox backlog counts."""
    return await service.outbox_summary(current_profile)
