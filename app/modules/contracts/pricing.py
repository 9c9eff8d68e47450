"""Contract price calculation."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from app.core.enums import PaymentTypeEnum
from app.modules.contracts.models import ContractDiscount, ContractVariant

HUNDRED = Decimal("100")
CENT = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class PriceQuote:
    base_price: Decimal | None
    payment_type: PaymentTypeEnum | None
    discount_percent: Decimal
    final_price: Decimal | None


def total_discount_percent(
    discounts: Iterable[ContractDiscount],
    custom_discount_percent: Decimal | None,
) -> Decimal:
    """Sum active discounts and the custom percent, clamped to 0..100."""
    total = sum((discount.discount_percent for discount in discounts if discount.is_active), Decimal("0"))
    if custom_discount_percent is not None:
        total += custom_discount_percent
    return min(max(total, Decimal("0")), HUNDRED)


def quote_price(
    variant: ContractVariant | None,
    discounts: Iterable[ContractDiscount] = (),
    custom_discount_percent: Decimal | None = None,
) -> PriceQuote:
    """Price a variant; the monthly price wins over the one-time price."""
    discount_percent = total_discount_percent(discounts, custom_discount_percent)
    if variant is None:
        return PriceQuote(None, None, discount_percent, None)

    if variant.monthly_price is not None:
        base_price, payment_type = variant.monthly_price, PaymentTypeEnum.MONTHLY
    elif variant.one_time_price is not None:
        base_price, payment_type = variant.one_time_price, PaymentTypeEnum.ONE_TIME
    else:
        return PriceQuote(None, None, discount_percent, None)

    final_price = (base_price * (HUNDRED - discount_percent) / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
    return PriceQuote(base_price, payment_type, discount_percent, final_price)
