"""StockRecord: per-product stock levels.

Stock Level Model:
    stock_quantity:    Physical count in the warehouse
    reserved_quantity: Committed to orders but not yet fulfilled
    available:         stock_quantity - reserved_quantity (what can be sold)

A record is only ever written by checkout (decrement) and by restocking
(increment). Both go through conditional UPDATE statements in this package so
that concurrent writers can never drive the count below zero.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, Integer, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from catalogue.product.product import Product
from shared.db import Base, SoftDeleteMixin, TimestampMixin, UTCDateTime, visible
from shared.errors import NotFoundError

DEFAULT_LOW_STOCK_THRESHOLD = 10


class StockRecord(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "stock_records"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_stock_records_stock_non_negative"),
        CheckConstraint("reserved_quantity >= 0", name="ck_stock_records_reserved_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reserved_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, default=DEFAULT_LOW_STOCK_THRESHOLD, nullable=False)
    last_restocked_date: Mapped[datetime | None] = mapped_column(UTCDateTime)

    @property
    def available_quantity(self) -> int:
        return self.stock_quantity - self.reserved_quantity

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.low_stock_threshold


def find_stock(session: Session, product_id: int) -> StockRecord | None:
    return session.scalar(select(StockRecord).where(StockRecord.product_id == product_id, visible(StockRecord)))


def get_stock(session: Session, product_id: int) -> StockRecord:
    record = find_stock(session, product_id)
    if record is None:
        raise NotFoundError("Stock record for product", product_id)
    return record


def available_quantity(session: Session, product_id: int) -> int:
    """Units that can still be sold. A product without a stock record has none."""
    record = find_stock(session, product_id)
    return record.available_quantity if record is not None else 0


def low_stock_records(session: Session, seller_id: int | None = None) -> list[StockRecord]:
    """Records at or below their threshold, optionally limited to one seller's products."""
    stmt = (
        select(StockRecord)
        .where(visible(StockRecord), StockRecord.stock_quantity <= StockRecord.low_stock_threshold)
        .order_by(StockRecord.product_id)
    )
    if seller_id is not None:
        stmt = stmt.join(Product, Product.id == StockRecord.product_id).where(
            Product.seller_id == seller_id, visible(Product)
        )
    return list(session.scalars(stmt))
