"""Stock receiving: restock increments the physical count."""

from datetime import datetime

import structlog
from sqlalchemy import update
from sqlalchemy.orm import Session

from inventory.stock.stock import StockRecord, get_stock
from shared.db import utc_now, visible
from shared.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


def restock(session: Session, product_id: int, quantity: int, timestamp: datetime | None = None) -> StockRecord:
    """Add ``quantity`` units and record when the shelf was last refilled."""
    if quantity <= 0:
        raise ValidationError({"quantity": ["Quantity must be positive"]})

    timestamp = timestamp or utc_now()
    result = session.execute(
        update(StockRecord)
        .where(StockRecord.product_id == product_id, visible(StockRecord))
        .values(
            stock_quantity=StockRecord.stock_quantity + quantity,
            last_restocked_date=timestamp,
            updated_at=timestamp,
        )
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        raise NotFoundError("Stock record for product", product_id)

    record = get_stock(session, product_id)
    session.refresh(record)
    logger.info(
        "Stock received",
        product_id=product_id,
        quantity=quantity,
        new_stock_quantity=record.stock_quantity,
    )
    return record
