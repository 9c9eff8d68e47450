"""Contracts schemas."""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import (
    BillingCycleEnum,
    ContractStatusEnum,
    ContractTypeEnum,
    GroupTypeEnum,
    PaymentTypeEnum,
)
from app.modules.lessons.schemas import LessonRead

Percent = Annotated[Decimal, Field(ge=0, le=100)]
Price = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]
PriceVersion = Annotated[int, Field(ge=1, le=32767)]


class ContractCategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    display_name: str = Field(min_length=1, max_length=128)
    description: str | None = None


class ContractCategoryUpdate(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = None


class ContractCategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    display_name: str
    description: str | None


class ContractVariantCreate(BaseModel):
    category_id: UUID
    name: str = Field(min_length=1, max_length=128)
    duration_months: int | None = Field(default=None, ge=1)
    group_type: GroupTypeEnum = GroupTypeEnum.SINGLE
    session_length_minutes: int | None = Field(default=None, ge=1)
    total_lessons: int | None = Field(default=None, ge=1, le=200)
    monthly_price: Price | None = None
    one_time_price: Price | None = None
    notes: str | None = None
    is_active: bool = True
    price_version: PriceVersion | None = None


class ContractVariantUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    duration_months: int | None = Field(default=None, ge=1)
    group_type: GroupTypeEnum | None = None
    session_length_minutes: int | None = Field(default=None, ge=1)
    total_lessons: int | None = Field(default=None, ge=1, le=200)
    monthly_price: Price | None = None
    one_time_price: Price | None = None
    notes: str | None = None
    is_active: bool | None = None
    price_version: PriceVersion | None = None


class ContractVariantRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    category_id: UUID
    name: str
    duration_months: int | None
    group_type: GroupTypeEnum
    session_length_minutes: int | None
    total_lessons: int | None
    monthly_price: Decimal | None
    one_time_price: Decimal | None
    notes: str | None
    is_active: bool
    price_version: int | None


class ContractDiscountCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    discount_percent: Decimal = Field(ge=0, le=100)
    conditions: str | None = None
    is_active: bool = True


class ContractDiscountUpdate(BaseModel):
    discount_percent: Percent | None = None
    conditions: str | None = None
    is_active: bool | None = None


class ContractDiscountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    discount_percent: Decimal
    conditions: str | None
    is_active: bool


class PricingSettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_price_version: int
    updated_at: datetime.datetime | None = None


class PricingSettingsUpdate(BaseModel):
    current_price_version: PriceVersion


class PriceQuoteRequest(BaseModel):
    contract_variant_id: UUID
    discount_ids: list[UUID] = Field(default_factory=list)
    custom_discount_percent: Percent | None = None
    student_id: UUID | None = None


class PriceQuoteRead(BaseModel):
    base_price: Decimal | None
    payment_type: PaymentTypeEnum | None
    discount_percent: Decimal
    final_price: Decimal | None


class ContractCreate(BaseModel):
    """Create contract request."""

    student_id: UUID
    type: ContractTypeEnum
    contract_variant_id: UUID | None = None
    discount_ids: list[UUID] = Field(default_factory=list)
    custom_discount_percent: Percent | None = None
    billing_cycle: BillingCycleEnum | None = None
    paid_at: datetime.datetime | None = None
    paid_through: datetime.date | None = None
    first_payment_date: datetime.date | None = None
    term_start: datetime.date | None = None
    term_end: datetime.date | None = None
    term_label: str | None = Field(default=None, max_length=64)
    cancelled_at: datetime.datetime | None = None
    private_notes: str | None = None
    replace_existing: bool = False


class ContractUpdate(BaseModel):
    """Update contract request; omitted fields stay unchanged."""

    type: ContractTypeEnum | None = None
    contract_variant_id: UUID | None = None
    discount_ids: list[UUID] | None = None
    custom_discount_percent: Percent | None = None
    billing_cycle: BillingCycleEnum | None = None
    paid_at: datetime.datetime | None = None
    paid_through: datetime.date | None = None
    first_payment_date: datetime.date | None = None
    term_start: datetime.date | None = None
    term_end: datetime.date | None = None
    term_label: str | None = Field(default=None, max_length=64)
    cancelled_at: datetime.datetime | None = None
    private_notes: str | None = None


class ContractStatusUpdate(BaseModel):
    status: ContractStatusEnum


class ContractNotesUpdate(BaseModel):
    private_notes: str | None = None


class ContractRead(BaseModel):
    """Contract response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    teacher_id: UUID | None
    type: ContractTypeEnum
    contract_variant_id: UUID | None
    status: ContractStatusEnum
    attendance_count: str
    attendance_dates: list[str]
    discount_ids: list[str]
    custom_discount_percent: Decimal | None
    final_price: Decimal | None
    payment_type: PaymentTypeEnum | None
    billing_cycle: BillingCycleEnum | None
    paid_at: datetime.datetime | None
    paid_through: datetime.date | None
    first_payment_date: datetime.date | None
    term_start: datetime.date | None
    term_end: datetime.date | None
    term_label: str | None
    cancelled_at: datetime.datetime | None
    private_notes: str | None
    completed_at: datetime.datetime | None
    version: int
    created_at: datetime.datetime
    updated_at: datetime.datetime


class ContractDetailRead(ContractRead):
    lessons: list[LessonRead] = Field(default_factory=list)


class CompletionCheckRead(BaseModel):
    contract_id: UUID
    status: ContractStatusEnum
    attendance_count: str
    is_complete: bool
    completed_now: bool
