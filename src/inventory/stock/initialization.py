"""Stock initialization. Creates the one stock record a product may have."""

import structlog
from sqlalchemy.orm import Session

from inventory.stock.stock import DEFAULT_LOW_STOCK_THRESHOLD, StockRecord, find_stock
from shared.errors import ConflictError, ValidationError

logger = structlog.get_logger(__name__)


def initialize_stock(
    session: Session,
    product_id: int,
    quantity: int = 0,
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> StockRecord:
    if quantity < 0:
        raise ValidationError({"quantity": ["Initial quantity cannot be negative"]})
    if low_stock_threshold < 0:
        raise ValidationError({"low_stock_threshold": ["Threshold cannot be negative"]})
    if find_stock(session, product_id) is not None:
        raise ConflictError(f"Stock record for product '{product_id}' already exists")

    record = StockRecord(
        product_id=product_id,
        stock_quantity=quantity,
        reserved_quantity=0,
        low_stock_threshold=low_stock_threshold,
    )
    session.add(record)
    session.flush()
    logger.info("Stock initialized", product_id=product_id, quantity=quantity)
    return record
