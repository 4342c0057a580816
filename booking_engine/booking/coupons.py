"""
Coupon eligibility rules and discount arithmetic.

Rules run in a fixed order and stop at the first failure:
1. applicability : coupon exists, is active and belongs to the store
2. period        : start_date <= now <= end_date (when set)
3. global limit  : usage_count < usage_limit (when set)
4. user limit    : identified user's redemptions < user_usage_limit (when set)
5. minimum amount: amount >= min_amount (when set)
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from booking_engine.errors import (
    CouponExhaustedError,
    CouponExpiredError,
    CouponMinAmountError,
    CouponUserLimitError,
    InvalidCouponError,
)
from booking_engine.logging_context import get_request_logger
from booking_engine.schemas.coupon_schema import Coupon, CouponQuote, CouponType

logger = get_request_logger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_money(value: Decimal) -> Decimal:
    """Round to cents, half up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class CouponRules:
    """Ordered coupon checks. Each check raises a CouponError subclass on failure."""

    def check_applicable(self, coupon: Optional[Coupon], store_id: str) -> Coupon:
        if coupon is None or not coupon.active or coupon.store_id != store_id:
            raise InvalidCouponError(store_id=store_id)
        return coupon

    def check_period(self, coupon: Coupon, now: datetime) -> None:
        if coupon.start_date > now:
            raise CouponExpiredError("Cupom ainda não está válido", coupon_code=coupon.code)
        if coupon.end_date is not None and coupon.end_date < now:
            raise CouponExpiredError("Cupom expirado", coupon_code=coupon.code)

    def check_global_limit(self, coupon: Coupon) -> None:
        if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
            raise CouponExhaustedError(coupon_code=coupon.code, usage_limit=coupon.usage_limit)

    def check_user_limit(
        self, coupon: Coupon, user_id: Optional[str], user_redemptions: int
    ) -> None:
        if user_id is None or coupon.user_usage_limit is None:
            return
        if user_redemptions >= coupon.user_usage_limit:
            raise CouponUserLimitError(coupon_code=coupon.code, user_id=user_id)

    def check_min_amount(self, coupon: Coupon, amount: Decimal) -> None:
        if coupon.min_amount is not None and amount < coupon.min_amount:
            raise CouponMinAmountError(
                f"Valor mínimo para usar este cupom é R$ {coupon.min_amount:.2f}",
                coupon_code=coupon.code,
                min_amount=coupon.min_amount,
            )

    def validate(
        self,
        coupon: Optional[Coupon],
        store_id: str,
        amount: Decimal,
        now: datetime,
        user_id: Optional[str] = None,
        user_redemptions: int = 0,
    ) -> Coupon:
        """Run every rule in order and return the coupon when all pass."""
        coupon = self.check_applicable(coupon, store_id)
        self.check_period(coupon, now)
        self.check_global_limit(coupon)
        self.check_user_limit(coupon, user_id, user_redemptions)
        self.check_min_amount(coupon, amount)
        return coupon


def compute_discount(coupon: Coupon, amount: Decimal) -> Decimal:
    """
    Discount granted by ``coupon`` on ``amount``.

    Percentage discounts are capped at ``max_discount`` when set. No
    discount ever exceeds ``amount``, so totals never go negative.
    """
    if coupon.type == CouponType.PERCENTAGE:
        discount = to_money(amount * coupon.value / HUNDRED)
        if coupon.max_discount is not None and discount > coupon.max_discount:
            discount = to_money(coupon.max_discount)
    else:
        discount = to_money(min(coupon.value, amount))
    return min(discount, to_money(amount))


def build_quote(coupon: Coupon, amount: Decimal) -> CouponQuote:
    """Describe the effect of an already validated coupon on ``amount``."""
    amount = to_money(amount)
    discount = compute_discount(coupon, amount)
    percentage = to_money(discount / amount * HUNDRED) if amount > 0 else Decimal("0.00")
    return CouponQuote(
        coupon_id=coupon.id,
        code=coupon.code,
        type=coupon.type,
        value=coupon.value,
        original_amount=amount,
        discount_amount=discount,
        discount_percentage=percentage,
        final_amount=amount - discount,
    )
