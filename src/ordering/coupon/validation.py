"""Coupon validation.

Checks run in a fixed order and the first failure wins:

1. the coupon is active
2. ``now`` falls inside ``[valid_from, valid_to]``
3. the usage limit has not been reached
4. the order subtotal meets the minimum purchase amount

An invalid coupon is a normal outcome, reported in the result, never raised.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from ordering.coupon.coupon import Coupon, CouponType, find_coupon_by_code, normalize_code
from shared.db import utc_now
from shared.money import ZERO, round_money, to_decimal

INVALID_CODE = "Invalid coupon code."
INACTIVE = "This coupon is no longer active."
NOT_YET_VALID = "This coupon is not yet valid."
EXPIRED = "This coupon has expired."
USAGE_LIMIT_REACHED = "This coupon has reached its usage limit."


@dataclass(frozen=True)
class CouponValidation:
    valid: bool
    discount_amount: Decimal = ZERO
    reason: str | None = None

    @classmethod
    def invalid(cls, reason: str) -> "CouponValidation":
        return cls(valid=False, discount_amount=ZERO, reason=reason)


def _format_amount(amount: Decimal) -> str:
    """Whole rupees with thousands separators, e.g. ``1,500``."""
    whole = to_decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{whole:,.0f}"


def calculate_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    subtotal = to_decimal(subtotal)
    if coupon.coupon_type is CouponType.PERCENTAGE:
        discount = subtotal * coupon.value / Decimal(100)
        if coupon.max_discount_amount is not None:
            discount = min(discount, coupon.max_discount_amount)
    else:
        discount = min(coupon.value, subtotal)
    return round_money(max(discount, ZERO))


def validate(coupon: Coupon, subtotal, now: datetime | None = None) -> CouponValidation:
    now = now or utc_now()
    subtotal = to_decimal(subtotal)

    if not coupon.is_active:
        return CouponValidation.invalid(INACTIVE)
    if now < coupon.valid_from:
        return CouponValidation.invalid(NOT_YET_VALID)
    if now > coupon.valid_to:
        return CouponValidation.invalid(EXPIRED)
    if coupon.usage_limit > 0 and coupon.used_count >= coupon.usage_limit:
        return CouponValidation.invalid(USAGE_LIMIT_REACHED)
    if coupon.min_purchase_amount is not None and subtotal < coupon.min_purchase_amount:
        return CouponValidation.invalid(
            f"Minimum order amount of ₹{_format_amount(coupon.min_purchase_amount)} required."
        )

    return CouponValidation(valid=True, discount_amount=calculate_discount(coupon, subtotal))


def validate_code(session: Session, code: str | None, subtotal, now: datetime | None = None) -> CouponValidation:
    """Look a code up and validate it against ``subtotal``."""
    code = normalize_code(code)
    coupon = find_coupon_by_code(session, code) if code else None
    if coupon is None:
        return CouponValidation.invalid(INVALID_CODE)
    return validate(coupon, subtotal, now)
