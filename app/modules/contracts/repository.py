"""Contracts repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import ContractStatusEnum
from app.modules.contracts.models import (
    Contract,
    ContractCategory,
    ContractDiscount,
    ContractVariant,
    PricingSettings,
)

PRICING_SETTINGS_ID = 1
DEFAULT_PRICE_VERSION = 2


class ContractsRepository:
    """DB operations for contracts and the contract catalog."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _add(self, entity):
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def apply_changes(self, entity, **changes):
        for key, value in changes.items():
            setattr(entity, key, value)
        await self.session.flush()
        return entity

    async def create_category(self, **fields) -> ContractCategory:
        return await self._add(ContractCategory(**fields))

    async def get_category_by_id(self, category_id: UUID) -> ContractCategory | None:
        return await self.session.get(ContractCategory, category_id)

    async def get_category_by_name(self, name: str) -> ContractCategory | None:
        return await self.session.scalar(select(ContractCategory).where(ContractCategory.name == name))

    async def list_categories(self) -> list[ContractCategory]:
        stmt = select(ContractCategory).order_by(ContractCategory.display_name.asc())
        return list((await self.session.scalars(stmt)).all())

    async def create_variant(self, **fields) -> ContractVariant:
        return await self._add(ContractVariant(**fields))

    async def get_variant_by_id(self, variant_id: UUID) -> ContractVariant | None:
        return await self.session.get(ContractVariant, variant_id)

    async def list_variants(
        self,
        category_id: UUID | None = None,
        include_inactive: bool = False,
        price_version: int | None = None,
    ) -> list[ContractVariant]:
        stmt = select(ContractVariant)
        if category_id is not None:
            stmt = stmt.where(ContractVariant.category_id == category_id)
        if not include_inactive:
            stmt = stmt.where(ContractVariant.is_active.is_(True))
        if price_version is not None:
            stmt = stmt.where(
                or_(ContractVariant.price_version.is_(None), ContractVariant.price_version == price_version),
            )
        stmt = stmt.order_by(ContractVariant.name.asc())
        return list((await self.session.scalars(stmt)).all())

    async def get_pricing_settings(self, *, for_update: bool = False) -> PricingSettings | None:
        stmt = select(PricingSettings).where(PricingSettings.id == PRICING_SETTINGS_ID)
        if for_update:
            stmt = stmt.with_for_update()
        return await self.session.scalar(stmt)

    async def get_current_price_version(self) -> int:
        settings = await self.get_pricing_settings()
        return settings.current_price_version if settings is not None else DEFAULT_PRICE_VERSION

    async def set_current_price_version(self, price_version: int) -> PricingSettings:
        settings = await self.get_pricing_settings(for_update=True)
        if settings is None:
            return await self._add(PricingSettings(id=PRICING_SETTINGS_ID, current_price_version=price_version))
        return await self.apply_changes(settings, current_price_version=price_version)

    async def create_discount(self, **fields) -> ContractDiscount:
        return await self._add(ContractDiscount(**fields))

    async def get_discount_by_id(self, discount_id: UUID) -> ContractDiscount | None:
        return await self.session.get(ContractDiscount, discount_id)

    async def get_discounts_by_ids(self, discount_ids: list[UUID]) -> list[ContractDiscount]:
        if not discount_ids:
            return []
        stmt = select(ContractDiscount).where(ContractDiscount.id.in_(discount_ids))
        return list((await self.session.scalars(stmt)).all())

    async def list_discounts(self, include_inactive: bool = False) -> list[ContractDiscount]:
        stmt = select(ContractDiscount)
        if not include_inactive:
            stmt = stmt.where(ContractDiscount.is_active.is_(True))
        stmt = stmt.order_by(ContractDiscount.name.asc())
        return list((await self.session.scalars(stmt)).all())

    async def create_contract(self, **fields) -> Contract:
        return await self._add(Contract(**fields))

    async def get_contract_by_id(self, contract_id: UUID, *, for_update: bool = False) -> Contract | None:
        stmt = select(Contract).where(Contract.id == contract_id)
        if for_update:
            stmt = stmt.with_for_update()
        return await self.session.scalar(stmt)

    async def lock_contracts(self, contract_ids: list[UUID]) -> dict[UUID, Contract]:
        """Lock contracts in id order to keep lock acquisition deterministic."""
        if not contract_ids:
            return {}
        stmt = (
            select(Contract)
            .where(Contract.id.in_(contract_ids))
            .order_by(Contract.id.asc())
            .with_for_update()
        )
        return {contract.id: contract for contract in (await self.session.scalars(stmt)).all()}

    async def get_active_contract_for_student(self, student_id: UUID) -> Contract | None:
        stmt = (
            select(Contract)
            .where(Contract.student_id == student_id, Contract.status == ContractStatusEnum.ACTIVE)
            .with_for_update()
        )
        return await self.session.scalar(stmt)

    async def list_contracts(
        self,
        limit: int,
        offset: int,
        *,
        teacher_id: UUID | None = None,
        student_id: UUID | None = None,
        status: ContractStatusEnum | None = None,
    ) -> tuple[list[Contract], int]:
        base_stmt: Select[tuple[Contract]] = select(Contract)
        if teacher_id is not None:
            base_stmt = base_stmt.where(Contract.teacher_id == teacher_id)
        if student_id is not None:
            base_stmt = base_stmt.where(Contract.student_id == student_id)
        if status is not None:
            base_stmt = base_stmt.where(Contract.status == status)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Contract.created_at.desc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def delete_contract(self, contract: Contract) -> None:
        await self.session.delete(contract)
        await self.session.flush()

    async def count_contracts_by_teacher(self) -> dict[UUID, int]:
        stmt = (
            select(Contract.teacher_id, func.count(Contract.id))
            .where(Contract.teacher_id.is_not(None))
            .group_by(Contract.teacher_id)
        )
        rows = (await self.session.execute(stmt)).all()
        return {teacher_id: int(count) for teacher_id, count in rows}
