"""Contracts business logic layer."""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import ContractStatusEnum, RoleEnum
from app.modules.audit.repository import AuditRepository
from app.modules.contracts.completion import ContractCompletionTracker
from app.modules.contracts.models import (
    Contract,
    ContractCategory,
    ContractDiscount,
    ContractVariant,
)
from app.modules.contracts.pricing import PriceQuote, quote_price
from app.modules.contracts.progress import expected_lesson_count
from app.modules.contracts.repository import ContractsRepository
from app.modules.contracts.schemas import (
    CompletionCheckRead,
    ContractCategoryCreate,
    ContractCategoryUpdate,
    ContractCreate,
    ContractDiscountCreate,
    ContractDiscountUpdate,
    ContractUpdate,
    ContractVariantCreate,
    ContractVariantUpdate,
    PriceQuoteRequest,
    PricingSettingsRead,
    PricingSettingsUpdate,
)
from app.modules.identity.models import Profile
from app.modules.lessons.models import Lesson
from app.modules.lessons.repository import LessonsRepository
from app.modules.notifications.repository import NotificationsRepository
from app.modules.students.repository import StudentsRepository
from app.modules.teachers.models import Teacher
from app.modules.teachers.repository import TeachersRepository
from app.modules.teachers.service import resolve_actor_teacher
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    UnauthorizedException,
)

logger = logging.getLogger(__name__)

PRICING_FIELDS = ("contract_variant_id", "discount_ids", "custom_discount_percent")


def _ensure_admin(actor: Profile, message: str) -> None:
    if actor.role != RoleEnum.ADMIN:
        raise UnauthorizedException(message)


class ContractsService:
    """Contracts domain service: catalog, pricing, contract lifecycle."""

    def __init__(
        self,
        repository: ContractsRepository,
        lessons_repository: LessonsRepository,
        students_repository: StudentsRepository,
        teachers_repository: TeachersRepository,
        audit_repository: AuditRepository,
        completion_tracker: ContractCompletionTracker,
    ) -> None:
        self.repository = repository
        self.lessons_repository = lessons_repository
        self.students_repository = students_repository
        self.teachers_repository = teachers_repository
        self.audit_repository = audit_repository
        self.completion_tracker = completion_tracker

    # Catalog

    async def list_categories(self) -> list[ContractCategory]:
        return await self.repository.list_categories()

    async def create_category(self, payload: ContractCategoryCreate, actor: Profile) -> ContractCategory:
        _ensure_admin(actor, "Only admin can manage the contract catalog")
        if await self.repository.get_category_by_name(payload.name) is not None:
            raise ConflictException("Contract category already exists")
        return await self.repository.create_category(**payload.model_dump())

    async def update_category(
        self,
        category_id: UUID,
        payload: ContractCategoryUpdate,
        actor: Profile,
    ) -> ContractCategory:
        _ensure_admin(actor, "Only admin can manage the contract catalog")
        category = await self.repository.get_category_by_id(category_id)
        if category is None:
            raise NotFoundException("Contract category not found")
        return await self.repository.apply_changes(category, **payload.model_dump(exclude_unset=True))

    async def list_variants(
        self,
        category_id: UUID | None = None,
        include_inactive: bool = False,
    ) -> list[ContractVariant]:
        return await self.repository.list_variants(category_id=category_id, include_inactive=include_inactive)

    async def list_variants_for_student(self, student_id: UUID, actor: Profile) -> list[ContractVariant]:
        """Active variants offered to the student's price cohort."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        student = await self.students_repository.get_student_by_id(student_id)
        if student is None:
            raise NotFoundException("Student not found")
        if teacher is not None and student.teacher_id != teacher.id:
            if teacher.id not in await self.students_repository.list_assigned_teacher_ids(student.id):
                raise UnauthorizedException("Student is not assigned to you")
        return await self.repository.list_variants(price_version=student.price_version)

    async def get_pricing_settings(self) -> PricingSettingsRead:
        settings = await self.repository.get_pricing_settings()
        if settings is None:
            return PricingSettingsRead(current_price_version=await self.repository.get_current_price_version())
        return PricingSettingsRead.model_validate(settings)

    async def update_pricing_settings(self, payload: PricingSettingsUpdate, actor: Profile) -> PricingSettingsRead:
        """Set the price cohort stamped on newly created students."""
        _ensure_admin(actor, "Only admin can change pricing settings")
        settings = await self.repository.set_current_price_version(payload.current_price_version)
        logger.info("Current price version set to %s", settings.current_price_version)
        return PricingSettingsRead.model_validate(settings)

    async def create_variant(self, payload: ContractVariantCreate, actor: Profile) -> ContractVariant:
        _ensure_admin(actor, "Only admin can manage the contract catalog")
        if await self.repository.get_category_by_id(payload.category_id) is None:
            raise NotFoundException("Contract category not found")
        return await self.repository.create_variant(**payload.model_dump())

    async def update_variant(
        self,
        variant_id: UUID,
        payload: ContractVariantUpdate,
        actor: Profile,
    ) -> ContractVariant:
        _ensure_admin(actor, "Only admin can manage the contract catalog")
        variant = await self.repository.get_variant_by_id(variant_id)
        if variant is None:
            raise NotFoundException("Contract variant not found")
        changes = payload.model_dump(exclude_unset=True)
        for field_name in ("name", "group_type", "is_active"):
            if changes.get(field_name, ...) is None:
                changes.pop(field_name)
        return await self.repository.apply_changes(variant, **changes)

    async def list_discounts(self, include_inactive: bool = False) -> list[ContractDiscount]:
        return await self.repository.list_discounts(include_inactive=include_inactive)

    async def create_discount(self, payload: ContractDiscountCreate, actor: Profile) -> ContractDiscount:
        _ensure_admin(actor, "Only admin can manage the contract catalog")
        return await self.repository.create_discount(**payload.model_dump())

    async def update_discount(
        self,
        discount_id: UUID,
        payload: ContractDiscountUpdate,
        actor: Profile,
    ) -> ContractDiscount:
        _ensure_admin(actor, "Only admin can manage the contract catalog")
        discount = await self.repository.get_discount_by_id(discount_id)
        if discount is None:
            raise NotFoundException("Contract discount not found")
        return await self.repository.apply_changes(discount, **payload.model_dump(exclude_none=True))

    # Pricing

    async def _resolve_pricing(
        self,
        variant_id: UUID | None,
        discount_ids: list[UUID],
        custom_discount_percent: Decimal | None,
        *,
        allow_inactive_variant: bool = False,
        price_version: int | None = None,
    ) -> tuple[ContractVariant | None, PriceQuote]:
        variant = None
        if variant_id is not None:
            variant = await self.repository.get_variant_by_id(variant_id)
            if variant is None:
                raise NotFoundException("Contract variant not found")
            if not variant.is_active and not allow_inactive_variant:
                raise BusinessRuleException("Contract variant is not active")
            if (
                price_version is not None
                and variant.price_version is not None
                and variant.price_version != price_version
            ):
                raise BusinessRuleException("Contract variant is not offered to the student's price cohort")

        unique_ids = list(dict.fromkeys(discount_ids))
        discounts = await self.repository.get_discounts_by_ids(unique_ids)
        if len(discounts) != len(unique_ids) or not all(discount.is_active for discount in discounts):
            raise BusinessRuleException("One or more discounts are invalid or inactive")

        return variant, quote_price(variant, discounts, custom_discount_percent)

    async def quote(self, payload: PriceQuoteRequest, actor: Profile) -> PriceQuote:
        """Price a variant with the selected discounts."""
        _ensure_admin(actor, "Only admin can quote prices")
        price_version = None
        if payload.student_id is not None:
            student = await self.students_repository.get_student_by_id(payload.student_id)
            if student is None:
                raise NotFoundException("Student not found")
            price_version = student.price_version
        _, price = await self._resolve_pricing(
            payload.contract_variant_id,
            payload.discount_ids,
            payload.custom_discount_percent,
            price_version=price_version,
        )
        return price

    # Contracts

    async def _get_contract(self, contract_id: UUID, *, for_update: bool = False) -> Contract:
        contract = await self.repository.get_contract_by_id(contract_id, for_update=for_update)
        if contract is None:
            raise NotFoundException("Contract not found")
        return contract

    @staticmethod
    def _ensure_can_manage(contract: Contract, teacher: Teacher | None) -> None:
        if teacher is not None and contract.teacher_id != teacher.id:
            raise UnauthorizedException("Contract belongs to another teacher")

    async def _ensure_can_view(self, contract: Contract, teacher: Teacher | None) -> None:
        if teacher is None or contract.teacher_id == teacher.id:
            return
        if teacher.id in await self.students_repository.list_assigned_teacher_ids(contract.student_id):
            return
        raise UnauthorizedException("Contract belongs to another teacher")

    async def _sync_lessons(self, contract: Contract, variant: ContractVariant | None) -> None:
        """Make lessons 1..N exist; dated lessons within range are kept."""
        expected = expected_lesson_count(contract.type, variant.total_lessons if variant is not None else None)
        removed = await self.lessons_repository.delete_lessons_above(contract.id, expected)
        existing = {lesson.lesson_number for lesson in await self.lessons_repository.list_lessons_for_contract(contract.id)}
        missing = [number for number in range(1, expected + 1) if number not in existing]
        if missing:
            await self.lessons_repository.create_lessons(contract.id, missing)
        if removed or missing:
            logger.info("Synced lessons of contract %s: +%s -%s", contract.id, len(missing), removed)

    async def _record(
        self,
        actor: Profile,
        operation: str,
        contract_id: UUID,
        details: dict | None = None,
    ) -> None:
        details = details or {}
        await self.audit_repository.create_operation_log(
            actor_id=actor.id,
            operation=operation,
            entity_type="contract",
            entity_id=str(contract_id),
            details=details,
        )
        await self.audit_repository.create_outbox_event(
            aggregate_type="contract",
            aggregate_id=str(contract_id),
            event_type=operation,
            payload={"contract_id": str(contract_id), "actor_id": str(actor.id), **details},
        )

    async def create_contract(self, payload: ContractCreate, actor: Profile) -> Contract:
        """Create contract for a student, optionally replacing the active one."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        student = await self.students_repository.get_student_by_id(payload.student_id, for_update=True)
        if student is None:
            raise NotFoundException("Student not found")
        if teacher is not None and student.teacher_id != teacher.id:
            raise UnauthorizedException("Teachers can only create contracts for their own students")

        variant, price = await self._resolve_pricing(
            payload.contract_variant_id,
            payload.discount_ids,
            payload.custom_discount_percent,
            price_version=student.price_version,
        )

        existing = await self.repository.get_active_contract_for_student(student.id)
        if existing is not None:
            if not payload.replace_existing:
                raise ConflictException("Student already has an active contract")
            self._ensure_can_manage(existing, teacher)
            await self.repository.delete_contract(existing)
            await self._record(actor, "contract.replaced", existing.id, {"student_id": str(student.id)})
            logger.info("Replaced active contract %s of student %s", existing.id, student.id)

        fields = payload.model_dump(exclude={"replace_existing", "discount_ids", "student_id"})
        contract = await self.repository.create_contract(
            **fields,
            student_id=student.id,
            teacher_id=student.teacher_id,
            status=ContractStatusEnum.ACTIVE,
            discount_ids=[str(discount_id) for discount_id in dict.fromkeys(payload.discount_ids)],
            final_price=price.final_price,
            payment_type=price.payment_type,
            attendance_count="0/0",
            attendance_dates=[],
            version=1,
        )
        await self._sync_lessons(contract, variant)
        await self.students_repository.apply_changes(student, contract_id=contract.id)
        await self.completion_tracker.sync(contract, trigger="save")

        final_price = str(price.final_price) if price.final_price is not None else None
        await self._record(
            actor,
            "contract.created",
            contract.id,
            {"student_id": str(student.id), "final_price": final_price},
        )
        logger.info("Created contract %s for student %s", contract.id, student.id)
        return contract

    async def update_contract(self, contract_id: UUID, payload: ContractUpdate, actor: Profile) -> Contract:
        """Update contract; lessons are re-synced without losing progress."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        contract = await self._get_contract(contract_id, for_update=True)
        self._ensure_can_manage(contract, teacher)

        changes = payload.model_dump(exclude_unset=True)
        if changes.get("type", ...) is None:
            changes.pop("type", None)
        if "discount_ids" in changes and changes["discount_ids"] is None:
            changes["discount_ids"] = []

        variant_id = changes.get("contract_variant_id", contract.contract_variant_id)
        if any(field_name in changes for field_name in PRICING_FIELDS):
            discount_ids = changes.get("discount_ids")
            if discount_ids is None:
                discount_ids = [UUID(value) for value in contract.discount_ids]
            keeps_variant = variant_id == contract.contract_variant_id
            price_version = None
            if not keeps_variant:
                student = await self.students_repository.get_student_by_id(contract.student_id)
                price_version = student.price_version if student is not None else None
            variant, price = await self._resolve_pricing(
                variant_id,
                discount_ids,
                changes.get("custom_discount_percent", contract.custom_discount_percent),
                allow_inactive_variant=keeps_variant,
                price_version=price_version,
            )
            changes["discount_ids"] = [str(discount_id) for discount_id in dict.fromkeys(discount_ids)]
            changes["final_price"] = price.final_price
            changes["payment_type"] = price.payment_type
        else:
            variant = await self.repository.get_variant_by_id(variant_id) if variant_id is not None else None

        changes["version"] = contract.version + 1
        contract = await self.repository.apply_changes(contract, **changes)
        await self._sync_lessons(contract, variant)
        await self.completion_tracker.sync(contract, trigger="save")

        await self._record(actor, "contract.updated", contract.id, {"version": contract.version})
        return contract

    async def update_status(self, contract_id: UUID, status: ContractStatusEnum, actor: Profile) -> Contract:
        """Manually complete or reopen a contract."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        contract = await self._get_contract(contract_id, for_update=True)
        self._ensure_can_manage(contract, teacher)

        previous = contract.status
        if previous == status:
            return contract

        if status == ContractStatusEnum.COMPLETED:
            progress = await self.completion_tracker.refresh_attendance(contract)
            await self.completion_tracker.mark_completed(contract, progress, trigger="manual")
        else:
            active = await self.repository.get_active_contract_for_student(contract.student_id)
            if active is not None and active.id != contract.id:
                raise ConflictException("Student already has an active contract")
            await self.repository.apply_changes(contract, status=ContractStatusEnum.ACTIVE, completed_at=None)

        await self.repository.apply_changes(contract, version=contract.version + 1)
        await self._record(
            actor,
            "contract.status_changed",
            contract.id,
            {"from": previous.value, "to": status.value},
        )
        return contract

    async def update_notes(self, contract_id: UUID, private_notes: str | None, actor: Profile) -> Contract:
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        contract = await self._get_contract(contract_id, for_update=True)
        self._ensure_can_manage(contract, teacher)
        return await self.repository.apply_changes(contract, private_notes=private_notes)

    async def delete_contract(self, contract_id: UUID, actor: Profile) -> None:
        """Delete contract with its lessons and notifications."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        contract = await self._get_contract(contract_id)
        self._ensure_can_manage(contract, teacher)

        # Student before contract, same order as contract creation.
        student = await self.students_repository.get_student_by_id(contract.student_id, for_update=True)
        contract = await self._get_contract(contract_id, for_update=True)
        if student is not None and student.contract_id == contract.id:
            await self.students_repository.apply_changes(student, contract_id=None)
        await self.repository.delete_contract(contract)
        await self._record(actor, "contract.deleted", contract_id, {"student_id": str(contract.student_id)})
        logger.info("Deleted contract %s", contract_id)

    async def get_contract(self, contract_id: UUID, actor: Profile) -> tuple[Contract, list[Lesson]]:
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        contract = await self._get_contract(contract_id)
        await self._ensure_can_view(contract, teacher)
        lessons = await self.lessons_repository.list_lessons_for_contract(contract.id)
        return contract, lessons

    async def list_contracts(
        self,
        actor: Profile,
        limit: int,
        offset: int,
        *,
        student_id: UUID | None = None,
        status: ContractStatusEnum | None = None,
    ) -> tuple[list[Contract], int]:
        """List contracts; teachers see their own only."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        return await self.repository.list_contracts(
            limit,
            offset,
            teacher_id=teacher.id if teacher is not None else None,
            student_id=student_id,
            status=status,
        )

    async def check_completion(self, contract_id: UUID, actor: Profile) -> CompletionCheckRead:
        """Recompute attendance and complete the contract when due."""
        teacher = await resolve_actor_teacher(self.teachers_repository, actor)
        contract = await self._get_contract(contract_id, for_update=True)
        self._ensure_can_manage(contract, teacher)

        progress, completed_now = await self.completion_tracker.sync(contract, trigger="check")
        return CompletionCheckRead(
            contract_id=contract.id,
            status=contract.status,
            attendance_count=contract.attendance_count,
            is_complete=progress.is_complete,
            completed_now=completed_now,
        )


def build_completion_tracker(session: AsyncSession) -> ContractCompletionTracker:
    return ContractCompletionTracker(
        contracts_repository=ContractsRepository(session),
        lessons_repository=LessonsRepository(session),
        students_repository=StudentsRepository(session),
        teachers_repository=TeachersRepository(session),
        notifications_repository=NotificationsRepository(session),
        audit_repository=AuditRepository(session),
    )


async def get_contracts_service(session: AsyncSession = Depends(get_db_session)) -> ContractsService:
    """Dependency provider for contracts service."""
    return ContractsService(
        repository=ContractsRepository(session),
        lessons_repository=LessonsRepository(session),
        students_repository=StudentsRepository(session),
        teachers_repository=TeachersRepository(session),
        audit_repository=AuditRepository(session),
        completion_tracker=build_completion_tracker(session),
    )
