"""Shopping Cart aggregate: the user's pending selection before checkout.

Each user owns exactly one cart. Lines capture the unit price at the moment the
product was added, not the live catalogue price. A cart holds at most one line
per product; adding the same product again merges quantities.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.db import Base, SoftDeleteMixin, TimestampMixin, utc_now
from shared.errors import NotFoundError, ValidationError
from shared.money import ZERO, round_money


class CartLine(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "cart_lines"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_lines_cart_product"),
        CheckConstraint("quantity > 0", name="ck_cart_lines_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cart_id: Mapped[int] = mapped_column(ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    @property
    def line_total(self) -> Decimal:
        return round_money(self.unit_price * self.quantity)


class Cart(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "carts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    lines: Mapped[list[CartLine]] = relationship(
        cascade="all, delete-orphan",
        order_by=CartLine.id,
        lazy="selectin",
    )

    @classmethod
    def create(cls, user_id):
        return cls(user_id=user_id, lines=[], is_deleted=False)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def visible_lines(self) -> list[CartLine]:
        return [line for line in self.lines if not line.is_deleted]

    @property
    def is_empty(self) -> bool:
        return not self.visible_lines

    @property
    def subtotal(self) -> Decimal:
        return round_money(sum((line.unit_price * line.quantity for line in self.visible_lines), ZERO))

    def line_for_product(self, product_id) -> CartLine | None:
        return next((line for line in self.lines if line.product_id == product_id), None)

    def get_line(self, line_id) -> CartLine:
        line = next((line for line in self.visible_lines if line.id == line_id), None)
        if line is None:
            raise NotFoundError("Cart line", line_id)
        return line

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_line(self, product_id, quantity, unit_price) -> CartLine:
        """Add a product (or merge into its existing line) at the given price."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = utc_now()
        existing = self.line_for_product(product_id)
        if existing is not None and existing.is_deleted:
            # A removed line is revived rather than duplicated
            existing.is_deleted = False
            existing.quantity = quantity
            existing.unit_price = round_money(unit_price)
            line = existing
        elif existing is not None:
            existing.quantity += quantity
            existing.unit_price = round_money(unit_price)
            line = existing
        else:
            line = CartLine(product_id=product_id, quantity=quantity, unit_price=round_money(unit_price), is_deleted=False)
            self.lines.append(line)

        self.updated_at = now
        return line

    def update_line_quantity(self, line_id, new_quantity) -> CartLine:
        if new_quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        line = self.get_line(line_id)
        line.quantity = new_quantity
        self.updated_at = utc_now()
        return line

    def remove_line(self, line_id) -> None:
        line = self.get_line(line_id)
        line.is_deleted = True
        self.updated_at = utc_now()

    def clear(self) -> None:
        """Drop every line. Used after checkout: lines are deleted, not archived."""
        self.lines.clear()
        self.updated_at = utc_now()
