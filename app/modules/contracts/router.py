"""Contracts API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from app.core.enums import ContractStatusEnum
from app.modules.contracts.schemas import (
    CompletionCheckRead,
    ContractCategoryCreate,
    ContractCategoryRead,
    ContractCategoryUpdate,
    ContractCreate,
    ContractDetailRead,
    ContractDiscountCreate,
    ContractDiscountRead,
    ContractDiscountUpdate,
    ContractNotesUpdate,
    ContractRead,
    ContractStatusUpdate,
    ContractUpdate,
    ContractVariantCreate,
    ContractVariantRead,
    ContractVariantUpdate,
    PriceQuoteRead,
    PriceQuoteRequest,
    PricingSettingsRead,
    PricingSettingsUpdate,
)
from app.modules.contracts.service import ContractsService, get_contracts_service
from app.modules.identity.service import get_current_profile
from app.modules.lessons.schemas import LessonRead
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/contracts", tags=["contracts"])


@router.get("/categories", response_model=list[ContractCategoryRead])
async def list_categories(
    service: ContractsService = Depends(get_contracts_service),
    _=Depends(get_current_profile),
) -> list[ContractCategoryRead]:
    """List contract categories."""
    return [ContractCategoryRead.model_validate(item) for item in await service.list_categories()]


@router.post("/categories", response_model=ContractCategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: ContractCategoryCreate,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> ContractCategoryRead:
    category = await service.create_category(payload, current_profile)
    return ContractCategoryRead.model_validate(category)


@router.patch("/categories/{category_id}", response_model=ContractCategoryRead)
async def update_category(
    category_id: UUID,
    payload: ContractCategoryUpdate,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> ContractCategoryRead:
    category = await service.update_category(category_id, payload, current_profile)
    return ContractCategoryRead.model_validate(category)


@router.get("/variants", response_model=list[ContractVariantRead])
async def list_variants(
    category_id: UUID | None = None,
    include_inactive: bool = False,
    service: ContractsService = Depends(get_contracts_service),
    _=Depends(get_current_profile),
) -> list[ContractVariantRead]:
    """List contract variants."""
    items = await service.list_variants(category_id=category_id, include_inactive=include_inactive)
    return [ContractVariantRead.model_validate(item) for item in items]


@router.post("/variants", response_model=ContractVariantRead, status_code=status.HTTP_201_CREATED)
async def create_variant(
    payload: ContractVariantCreate,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> ContractVariantRead:
    variant = await service.create_variant(payload, current_profile)
    return ContractVariantRead.model_validate(variant)


@router.patch("/variants/{variant_id}", response_model=ContractVariantRead)
async def update_variant(
    variant_id: UUID,
    payload: ContractVariantUpdate,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> ContractVariantRead:
    variant = await service.update_variant(variant_id, payload, current_profile)
    return ContractVariantRead.model_validate(variant)


@router.get("/variants/for-student/{student_id}", response_model=list[ContractVariantRead])
async def list_variants_for_student(
    student_id: UUID,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> list[ContractVariantRead]:
    """List active variants offered to the student's price cohort."""
    items = await service.list_variants_for_student(student_id, current_profile)
    return [ContractVariantRead.model_validate(item) for item in items]


@router.get("/pricing-settings", response_model=PricingSettingsRead)
async def get_pricing_settings(
    service: ContractsService = Depends(get_contracts_service),
    _=Depends(get_current_profile),
) -> PricingSettingsRead:
    return await service.get_pricing_settings()


@router.put("/pricing-settings", response_model=PricingSettingsRead)
async def update_pricing_settings(
    payload: PricingSettingsUpdate,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> PricingSettingsRead:
    """Set the price cohort of newly created students."""
    return await service.update_pricing_settings(payload, current_profile)


@router.get("/discounts", response_model=list[ContractDiscountRead])
async def list_discounts(
    include_inactive: bool = False,
    service: ContractsService = Depends(get_contracts_service),
    _=Depends(get_current_profile),
) -> list[ContractDiscountRead]:
    """List contract discounts."""
    items = await service.list_discounts(include_inactive=include_inactive)
    return [ContractDiscountRead.model_validate(item) for item in items]


@router.post("/discounts", response_model=ContractDiscountRead, status_code=status.HTTP_201_CREATED)
async def create_discount(
    payload: ContractDiscountCreate,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> ContractDiscountRead:
    discount = await service.create_discount(payload, current_profile)
    return ContractDiscountRead.model_validate(discount)


@router.patch("/discounts/{discount_id}", response_model=ContractDiscountRead)
async def update_discount(
    discount_id: UUID,
    payload: ContractDiscountUpdate,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> ContractDiscountRead:
    discount = await service.update_discount(discount_id, payload, current_profile)
    return ContractDiscountRead.model_validate(discount)


@router.post("/quote", response_model=PriceQuoteRead)
async def quote_price(
    payload: PriceQuoteRequest,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> PriceQuoteRead:
    """Calculate contract price."""
    quote = await service.quote(payload, current_profile)
    return PriceQuoteRead(
        base_price=quote.base_price,
        payment_type=quote.payment_type,
        discount_percent=quote.discount_percent,
        final_price=quote.final_price,
    )


@router.post("", response_model=ContractRead, status_code=status.HTTP_201_CREATED)
async def create_contract(
    payload: ContractCreate,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> ContractRead:
    """Create contract and its lessons."""
    contract = await service.create_contract(payload, current_profile)
    return ContractRead.model_validate(contract)


@router.get("", response_model=Page[ContractRead])
async def list_contracts(
    student_id: UUID | None = None,
    contract_status: ContractStatusEnum | None = None,
    pagination=Depends(get_pagination_params),
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> Page[ContractRead]:
    """List contracts visible to current profile."""
    items, total = await service.list_contracts(
        current_profile,
        pagination.limit,
        pagination.offset,
        student_id=student_id,
        status=contract_status,
    )
    serialized = [ContractRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/{contract_id}", response_model=ContractDetailRead)
async def get_contract(
    contract_id: UUID,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> ContractDetailRead:
    """Return contract with lessons."""
    contract, lessons = await service.get_contract(contract_id, current_profile)
    return ContractDetailRead.model_validate(contract).model_copy(
        update={"lessons": [LessonRead.model_validate(lesson) for lesson in lessons]},
    )


@router.put("/{contract_id}", response_model=ContractRead)
async def update_contract(
    contract_id: UUID,
    payload: ContractUpdate,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> ContractRead:
    """Update contract."""
    contract = await service.update_contract(contract_id, payload, current_profile)
    return ContractRead.model_validate(contract)


@router.patch("/{contract_id}/status", response_model=ContractRead)
async def update_contract_status(
    contract_id: UUID,
    payload: ContractStatusUpdate,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> ContractRead:
    """Complete or reopen contract."""
    contract = await service.update_status(contract_id, payload.status, current_profile)
    return ContractRead.model_validate(contract)


@router.patch("/{contract_id}/notes", response_model=ContractRead)
async def update_contract_notes(
    contract_id: UUID,
    payload: ContractNotesUpdate,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> ContractRead:
    """Update private notes."""
    contract = await service.update_notes(contract_id, payload.private_notes, current_profile)
    return ContractRead.model_validate(contract)


@router.post("/{contract_id}/check-completion", response_model=CompletionCheckRead)
async def check_completion(
    contract_id: UUID,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> CompletionCheckRead:
    """Recompute attendance and complete when due."""
    return await service.check_completion(contract_id, current_profile)


@router.delete("/{contract_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contract(
    contract_id: UUID,
    service: ContractsService = Depends(get_contracts_service),
    current_profile=Depends(get_current_profile),
) -> Response:
    """Delete contract."""
    await service.delete_contract(contract_id, current_profile)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
