"""Order aggregate: the core of the ordering domain.

An order is written once by checkout and never re-priced. The financial
snapshot (subtotal, discount, tax, total and every line) is immutable; only
the fulfillment envelope (status, tracking number, shipped and delivered
dates) changes afterwards, and only along the state machine below.

State Machine:
    PENDING → CONFIRMED → SHIPPED → DELIVERED
    CANCELLED (from PENDING, CONFIRMED)
    DELIVERED and CANCELLED are terminal.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.db import Base, SoftDeleteMixin, TimestampMixin, UTCDateTime, utc_now
from shared.errors import InvalidTransitionError, ValidationError
from shared.money import ZERO, round_money


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethod(Enum):
    CARD = "Card"
    UPI = "UPI"
    CASH_ON_DELIVERY = "CashOnDelivery"
    OTHER = "Other"


class PaymentStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


def parse_status(value) -> OrderStatus:
    """Accept an OrderStatus or its value, case-insensitively."""
    if isinstance(value, OrderStatus):
        return value
    if isinstance(value, str):
        for status in OrderStatus:
            if status.value.lower() == value.strip().lower():
                return status
    raise ValidationError({"status": [f"Unknown order status: {value!r}"]})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
class OrderLine(TimestampMixin, SoftDeleteMixin, Base):
    """Frozen copy of one cart line at the moment of purchase."""

    __tablename__ = "order_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    seller_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    @classmethod
    def snapshot(cls, product_id, product_name, seller_id, quantity, unit_price, discount_amount=ZERO):
        unit_price = round_money(unit_price)
        discount_amount = round_money(discount_amount)
        return cls(
            product_id=product_id,
            product_name=product_name,
            seller_id=seller_id,
            quantity=quantity,
            unit_price=unit_price,
            discount_amount=discount_amount,
            line_total=round_money(unit_price * quantity - discount_amount),
            is_deleted=False,
        )


class Order(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    customer_email: Mapped[str | None] = mapped_column(String(255))
    address_id: Mapped[int] = mapped_column(Integer, nullable=False)
    shipping_address: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    coupon_id: Mapped[int | None] = mapped_column(Integer)
    coupon_code: Mapped[str | None] = mapped_column(String(50))

    # Financial snapshot
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=ZERO, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Fulfillment envelope
    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.PENDING.value, nullable=False, index=True)
    tracking_number: Mapped[str | None] = mapped_column(String(100))
    shipped_date: Mapped[datetime | None] = mapped_column(UTCDateTime)
    delivered_date: Mapped[datetime | None] = mapped_column(UTCDateTime)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    lines: Mapped[list[OrderLine]] = relationship(
        cascade="all, delete-orphan",
        order_by=OrderLine.id,
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    @classmethod
    def create(
        cls,
        order_number,
        user_id,
        address_id,
        pricing,
        lines,
        shipping_address="",
        customer_email=None,
        coupon_id=None,
        coupon_code=None,
        created_at=None,
    ):
        """Create a Pending order from a priced set of lines."""
        if not lines:
            raise ValidationError({"lines": ["An order must contain at least one line"]})

        return cls(
            order_number=order_number,
            user_id=user_id,
            customer_email=customer_email,
            address_id=address_id,
            shipping_address=shipping_address,
            coupon_id=coupon_id,
            coupon_code=coupon_code,
            subtotal=pricing.subtotal,
            discount_amount=pricing.discount_amount,
            tax_amount=pricing.tax_amount,
            total_amount=pricing.total_amount,
            status=OrderStatus.PENDING.value,
            lines=list(lines),
            created_at=created_at or utc_now(),
            is_deleted=False,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def order_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def seller_ids(self) -> set[int]:
        return {line.seller_id for line in self.lines if not line.is_deleted}

    def has_seller(self, seller_id) -> bool:
        return seller_id in self.seller_ids()

    def lines_for_seller(self, seller_id) -> list[OrderLine]:
        return [line for line in self.lines if line.seller_id == seller_id and not line.is_deleted]

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def can_transition_to(self, target_status: OrderStatus) -> bool:
        return target_status in _VALID_TRANSITIONS.get(self.order_status, set())

    def apply_status(self, target_status, tracking_number=None, now=None) -> bool:
        """Move the order to ``target_status``.

        Returns False when the order is already in that status (nothing
        changes). Raises InvalidTransitionError for moves the state machine
        does not allow.
        """
        target_status = parse_status(target_status)
        current = self.order_status
        if target_status is current:
            return False
        if not self.can_transition_to(target_status):
            raise InvalidTransitionError(current, target_status)

        now = now or utc_now()
        self.status = target_status.value
        if target_status is OrderStatus.SHIPPED:
            tracking_number = (tracking_number or "").strip()
            if tracking_number:
                self.tracking_number = tracking_number
            if self.shipped_date is None:
                self.shipped_date = now
        elif target_status is OrderStatus.DELIVERED:
            self.delivered_date = now
        self.updated_at = now
        return True


class Payment(TimestampMixin, SoftDeleteMixin, Base):
    """Payment reserved at checkout. Settlement happens outside this system."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False)
    transaction_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    method: Mapped[str] = mapped_column(String(20), default=PaymentMethod.OTHER.value, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=PaymentStatus.PENDING.value, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    @classmethod
    def reserve(cls, order: Order, transaction_id: str):
        return cls(
            order_id=order.id,
            transaction_id=transaction_id,
            method=PaymentMethod.OTHER.value,
            status=PaymentStatus.PENDING.value,
            amount=order.total_amount,
        )
