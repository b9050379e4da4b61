"""Product: the slice of the catalogue the ordering core reads.

Product CRUD lives elsewhere; ordering only needs the selling price and the
seller that owns the product at the moment of purchase.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from shared.db import Base, SoftDeleteMixin, TimestampMixin, visible
from shared.errors import NotFoundError
from shared.money import round_money


class Product(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    seller_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @classmethod
    def create(cls, name, price, seller_id, discount_price=None, is_active=True):
        return cls(
            name=name,
            price=round_money(price),
            discount_price=round_money(discount_price) if discount_price is not None else None,
            seller_id=seller_id,
            is_active=is_active,
        )

    @property
    def selling_price(self) -> Decimal:
        """Active discount price when one is set, list price otherwise."""
        return self.discount_price if self.discount_price is not None else self.price


def get_product(session: Session, product_id: int) -> Product:
    product = session.scalar(select(Product).where(Product.id == product_id, visible(Product)))
    if product is None:
        raise NotFoundError("Product", product_id)
    return product
