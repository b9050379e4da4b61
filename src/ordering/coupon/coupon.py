"""Coupon aggregate and its persistence helpers.

Coupons are managed by back-office tooling; ordering reads them at checkout
and increments ``used_count`` when an order redeems one.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Integer, Numeric, String, or_, select, update
from sqlalchemy.orm import Mapped, Session, mapped_column

from shared.db import Base, SoftDeleteMixin, TimestampMixin, UTCDateTime, utc_now, visible
from shared.errors import ValidationError
from shared.money import round_money


class CouponType(Enum):
    PERCENTAGE = "Percentage"
    FLAT_AMOUNT = "FlatAmount"


class Coupon(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint("used_count >= 0", name="ck_coupons_used_count_non_negative"),
        CheckConstraint("usage_limit = 0 OR used_count <= usage_limit", name="ck_coupons_within_usage_limit"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    min_purchase_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    max_discount_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    valid_from: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    valid_to: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    usage_limit: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    used_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @classmethod
    def create(
        cls,
        code,
        type,
        value,
        valid_from,
        valid_to,
        min_purchase_amount=None,
        max_discount_amount=None,
        usage_limit=0,
        is_active=True,
        description="",
    ):
        coupon_type = CouponType(type.value if isinstance(type, CouponType) else type)
        errors = {}
        if not code or not code.strip():
            errors["code"] = ["is required"]
        if valid_to < valid_from:
            errors["valid_to"] = ["must be after valid_from"]
        if usage_limit < 0:
            errors["usage_limit"] = ["cannot be negative"]
        if round_money(value) < 0:
            errors["value"] = ["cannot be negative"]
        if errors:
            raise ValidationError(errors)

        return cls(
            code=code.strip(),
            description=description.strip(),
            type=coupon_type.value,
            value=round_money(value),
            min_purchase_amount=round_money(min_purchase_amount) if min_purchase_amount is not None else None,
            max_discount_amount=round_money(max_discount_amount) if max_discount_amount is not None else None,
            valid_from=valid_from,
            valid_to=valid_to,
            usage_limit=usage_limit,
            used_count=0,
            is_active=is_active,
        )

    @property
    def coupon_type(self) -> CouponType:
        return CouponType(self.type)

    @property
    def is_unlimited(self) -> bool:
        return self.usage_limit == 0


def normalize_code(code: str | None) -> str | None:
    """Trim a user-supplied code; blank means no coupon."""
    if code is None:
        return None
    code = code.strip()
    return code or None


def find_coupon_by_code(session: Session, code: str) -> Coupon | None:
    """Exact, case-sensitive lookup."""
    return session.scalar(select(Coupon).where(Coupon.code == code, visible(Coupon)))


def redeem(session: Session, coupon_id: int) -> bool:
    """Count one use of the coupon. False if the limit was reached meanwhile."""
    result = session.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon_id,
            visible(Coupon),
            or_(Coupon.usage_limit == 0, Coupon.used_count < Coupon.usage_limit),
        )
        .values(used_count=Coupon.used_count + 1, updated_at=utc_now())
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount == 1
