"""Audit repository layer."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import OperationStatusEnum, OutboxStatusEnum
from app.modules.audit.models import OperationLog, OutboxEvent


class AuditRepository:
    """DB operations for operation logs and outbox."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_operation_log(
        self,
        actor_id: UUID | None,
        operation: str,
        entity_type: str,
        entity_id: str | None,
        details: dict,
        status: OperationStatusEnum = OperationStatusEnum.SUCCESS,
        error_message: str | None = None,
    ) -> OperationLog:
        log = OperationLog(
            actor_id=actor_id,
            operation=operation,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            status=status,
            error_message=error_message,
        )
        self.session.add(log)
        await self.session.flush()
        return log

    async def list_operation_logs(
        self,
        limit: int,
        offset: int,
        entity_type: str | None = None,
        status: OperationStatusEnum | None = None,
    ) -> tuple[list[OperationLog], int]:
        base_stmt: Select[tuple[OperationLog]] = select(OperationLog)
        if entity_type is not None:
            base_stmt = base_stmt.where(OperationLog.entity_type == entity_type)
        if status is not None:
            base_stmt = base_stmt.where(OperationLog.status == status)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(OperationLog.created_at.desc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def create_outbox_event(
        self,
        aggregate_type: str,
        aggregate_id: str,
        event_type: str,
        payload: dict,
    ) -> OutboxEvent:
        event = OutboxEvent(
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            event_type=event_type,
            payload=payload,
            status=OutboxStatusEnum.PENDING,
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def list_outbox_events(
        self,
        limit: int,
        offset: int,
        status: OutboxStatusEnum | None = None,
    ) -> tuple[list[OutboxEvent], int]:
        base_stmt: Select[tuple[OutboxEvent]] = select(OutboxEvent)
        if status is not None:
            base_stmt = base_stmt.where(OutboxEvent.status == status)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(OutboxEvent.occurred_at.desc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def list_pending_outbox(self, limit: int) -> list[OutboxEvent]:
        stmt = (
            select(OutboxEvent)
            .where(OutboxEvent.status == OutboxStatusEnum.PENDING)
            .order_by(OutboxEvent.occurred_at.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return (await self.session.scalars(stmt)).all()

    async def list_failed_outbox(self, limit: int, max_retries: int) -> list[OutboxEvent]:
        stmt = (
            select(OutboxEvent)
            .where(
                OutboxEvent.status == OutboxStatusEnum.FAILED,
                OutboxEvent.retries < max_retries,
            )
            .order_by(OutboxEvent.updated_at.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return (await self.session.scalars(stmt)).all()

    async def mark_outbox_pending(self, event: OutboxEvent) -> OutboxEvent:
        event.status = OutboxStatusEnum.PENDING
        event.error_message = None
        event.processed_at = None
        await self.session.flush()
        return event

    async def mark_outbox_processed(
        self,
        event: OutboxEvent,
        processed_at: datetime,
    ) -> OutboxEvent:
        event.status = OutboxStatusEnum.PROCESSED
        event.processed_at = processed_at
        event.error_message = None
        await self.session.flush()
        return event

    async def mark_outbox_failed(self, event: OutboxEvent, error_message: str) -> OutboxEvent:
        event.status = OutboxStatusEnum.FAILED
        event.retries += 1
        event.error_message = error_message
        event.processed_at = None
        await self.session.flush()
        return event

    async def count_outbox_by_status(self) -> dict[OutboxStatusEnum, int]:
        stmt = select(OutboxEvent.status, func.count()).group_by(OutboxEvent.status)
        rows = (await self.session.execute(stmt)).all()
        return {status: int(count) for status, count in rows}
