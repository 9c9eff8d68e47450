"""Contracts and contract catalog ORM models."""

from __future__ import annotations

import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, BaseModelMixin, enum_column
from app.core.enums import (
    BillingCycleEnum,
    ContractStatusEnum,
    ContractTypeEnum,
    GroupTypeEnum,
    PaymentTypeEnum,
)
from app.shared.utils import utc_now


class ContractCategory(BaseModelMixin, Base):
    """Top-level contract product family, e.g. ten lesson card."""

    __tablename__ = "contract_categories"

    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class ContractVariant(BaseModelMixin, Base):
    """Purchasable contract product with lesson count and price."""

    __tablename__ = "contract_variants"

    category_id: Mapped[UUID] = mapped_column(
        ForeignKey("contract_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    duration_months: Mapped[int | None] = mapped_column(Integer, nullable=True)
    group_type: Mapped[GroupTypeEnum] = mapped_column(
        enum_column(GroupTypeEnum, "group_type_enum"),
        default=GroupTypeEnum.SINGLE,
        nullable=False,
    )
    session_length_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_lessons: Mapped[int | None] = mapped_column(Integer, nullable=True)
    monthly_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    one_time_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # NULL: offered to every price cohort.
    price_version: Mapped[int | None] = mapped_column(SmallInteger, nullable=True, index=True)


class ContractDiscount(BaseModelMixin, Base):
    """Percentage discount selectable on a contract."""

    __tablename__ = "contract_discounts"

    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    discount_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    conditions: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Contract(BaseModelMixin, Base):
    """Block of lessons bought by a student."""

    __tablename__ = "contracts"
    __table_args__ = (
        Index(
            "uq_contracts_active_student_id",
            "student_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
        ),
    )

    student_id: Mapped[UUID] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    teacher_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("teachers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    type: Mapped[ContractTypeEnum] = mapped_column(
        enum_column(ContractTypeEnum, "contract_type_enum"),
        nullable=False,
    )
    contract_variant_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("contract_variants.id", ondelete="RESTRICT"),
        nullable=True,
    )
    status: Mapped[ContractStatusEnum] = mapped_column(
        enum_column(ContractStatusEnum, "contract_status_enum"),
        default=ContractStatusEnum.ACTIVE,
        nullable=False,
        index=True,
    )
    attendance_count: Mapped[str] = mapped_column(String(32), default="0/0", nullable=False)
    attendance_dates: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    discount_ids: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    custom_discount_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    final_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    payment_type: Mapped[PaymentTypeEnum | None] = mapped_column(
        enum_column(PaymentTypeEnum, "payment_type_enum"),
        nullable=True,
    )
    billing_cycle: Mapped[BillingCycleEnum | None] = mapped_column(
        enum_column(BillingCycleEnum, "billing_cycle_enum"),
        nullable=True,
    )
    paid_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_through: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    first_payment_date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    term_start: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    term_end: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    term_label: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cancelled_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    private_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)


class PricingSettings(Base):
    """Single-row table holding the price cohort assigned to new students."""

    __tablename__ = "pricing_settings"
    __table_args__ = (
        CheckConstraint("id = 1", name="single_row"),
        CheckConstraint("current_price_version > 0", name="current_price_version_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    current_price_version: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=2)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
