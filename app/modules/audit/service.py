"""Audit business logic layer."""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import OperationStatusEnum, OutboxStatusEnum, RoleEnum
from app.modules.audit.models import OperationLog, OutboxEvent
from app.modules.audit.repository import AuditRepository
from app.modules.audit.schemas import OutboxStatusSummary
from app.modules.identity.models import Profile
from app.shared.exceptions import UnauthorizedException


class AuditService:
    """Read access to operation logs and the outbox (admin only)."""

    def __init__(self, repository: AuditRepository) -> None:
        self.repository = repository

    @staticmethod
    def _ensure_admin(actor: Profile) -> None:
        if actor.role != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can view audit data")

    async def list_logs(
        self,
        actor: Profile,
        limit: int,
        offset: int,
        entity_type: str | None = None,
        status: OperationStatusEnum | None = None,
    ) -> tuple[list[OperationLog], int]:
        """List operation logs."""
        self._ensure_admin(actor)
        return await self.repository.list_operation_logs(
            limit=limit,
            offset=offset,
            entity_type=entity_type,
            status=status,
        )

    async def list_outbox(
        self,
        actor: Profile,
        limit: int,
        offset: int,
        status: OutboxStatusEnum | None = None,
    ) -> tuple[list[OutboxEvent], int]:
        """List outbox events."""
        self._ensure_admin(actor)
        return await self.repository.list_outbox_events(limit=limit, offset=offset, status=status)

    async def outbox_summary(self, actor: Profile) -> OutboxStatusSummary:
        """Return outbox counts by status."""
        self._ensure_admin(actor)
        counts = await self.repository.count_outbox_by_status()
        return OutboxStatusSummary(**{status.value: count for status, count in counts.items()})


async def get_audit_service(session: AsyncSession = Depends(get_db_session)) -> AuditService:
    """Dependency provider for audit service."""
    return AuditService(AuditRepository(session))
