"""Trial appointments repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import TrialStatusEnum
from app.modules.trials.models import TrialAppointment


class TrialsRepository:
    """DB operations for trial appointments."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_trial(self, **fields) -> TrialAppointment:
        trial = TrialAppointment(**fields)
        self.session.add(trial)
        await self.session.flush()
        return trial

    async def get_trial_by_id(self, trial_id: UUID, *, for_update: bool = False) -> TrialAppointment | None:
        stmt = select(TrialAppointment).where(TrialAppointment.id == trial_id)
        if for_update:
            stmt = stmt.with_for_update()
        return await self.session.scalar(stmt)

    async def list_trials(
        self,
        limit: int,
        offset: int,
        *,
        visible_to_teacher_id: UUID | None = None,
        status: TrialStatusEnum | None = None,
    ) -> tuple[list[TrialAppointment], int]:
        base_stmt: Select[tuple[TrialAppointment]] = select(TrialAppointment)
        if visible_to_teacher_id is not None:
            base_stmt = base_stmt.where(
                or_(
                    TrialAppointment.status == TrialStatusEnum.OPEN,
                    TrialAppointment.teacher_id == visible_to_teacher_id,
                ),
            )
        if status is not None:
            base_stmt = base_stmt.where(TrialAppointment.status == status)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(TrialAppointment.created_at.desc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def apply_changes(self, trial: TrialAppointment, **changes) -> TrialAppointment:
        for key, value in changes.items():
            setattr(trial, key, value)
        await self.session.flush()
        return trial

    async def delete_trial(self, trial: TrialAppointment) -> None:
        await self.session.delete(trial)
        await self.session.flush()
