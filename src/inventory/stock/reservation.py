"""Stock reservation: availability checks and the atomic decrement used by checkout."""

import structlog
from sqlalchemy import update
from sqlalchemy.orm import Session

from inventory.stock.stock import StockRecord, available_quantity, find_stock
from shared.db import utc_now, visible
from shared.errors import InsufficientStockError, ValidationError

logger = structlog.get_logger(__name__)


def check_availability(session: Session, product_id: int, quantity: int) -> bool:
    """Fast-path check only. The guard that counts is ``reserve_and_decrement``."""
    return available_quantity(session, product_id) >= quantity


def reserve_and_decrement(session: Session, product_id: int, quantity: int) -> StockRecord:
    """Take ``quantity`` units out of stock, or fail without changing anything.

    The availability predicate and the decrement are one UPDATE statement, so
    the row lock taken by the database serializes competing checkouts on the
    same product.
    """
    if quantity <= 0:
        raise ValidationError({"quantity": ["Quantity must be positive"]})

    result = session.execute(
        update(StockRecord)
        .where(
            StockRecord.product_id == product_id,
            visible(StockRecord),
            StockRecord.stock_quantity - StockRecord.reserved_quantity >= quantity,
        )
        .values(
            stock_quantity=StockRecord.stock_quantity - quantity,
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        available = available_quantity(session, product_id)
        raise InsufficientStockError(
            [product_id],
            f"Only {available} unit(s) of product '{product_id}' available, {quantity} requested",
        )

    record = find_stock(session, product_id)
    session.refresh(record)
    if record.is_low_stock:
        logger.warning(
            "Low stock detected",
            product_id=product_id,
            stock_quantity=record.stock_quantity,
            low_stock_threshold=record.low_stock_threshold,
        )
    return record
