"""Cart item management: the operations behind the /cart endpoints."""

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from catalogue.product.product import get_product
from inventory.stock.stock import available_quantity
from ordering.cart.cart import Cart
from shared.db import visible
from shared.errors import ValidationError

logger = structlog.get_logger(__name__)


def find_cart(session: Session, user_id: int) -> Cart | None:
    return session.scalar(select(Cart).where(Cart.user_id == user_id, visible(Cart)))


def get_cart(session: Session, user_id: int) -> Cart:
    """Return the user's cart, creating an empty one on first access."""
    cart = find_cart(session, user_id)
    if cart is None:
        cart = Cart.create(user_id)
        session.add(cart)
        session.flush()
    return cart


def _ensure_stock(session, product_id, wanted):
    available = available_quantity(session, product_id)
    if wanted > available:
        raise ValidationError({"quantity": [f"Only {available} unit(s) available for product {product_id}"]})


def add_to_cart(session: Session, user_id: int, product_id: int, quantity: int) -> Cart:
    if quantity <= 0:
        raise ValidationError({"quantity": ["Quantity must be at least 1"]})

    product = get_product(session, product_id)
    if not product.is_active:
        raise ValidationError({"product_id": [f"Product {product_id} is not available"]})

    cart = get_cart(session, user_id)
    existing = cart.line_for_product(product_id)
    already = existing.quantity if existing is not None and not existing.is_deleted else 0
    _ensure_stock(session, product_id, already + quantity)

    line = cart.add_line(product_id, quantity, product.selling_price)
    session.flush()
    logger.info(
        "Item added to cart",
        user_id=user_id,
        product_id=product_id,
        quantity=line.quantity,
        unit_price=str(line.unit_price),
    )
    return cart


def update_line_quantity(session: Session, user_id: int, line_id: int, new_quantity: int) -> Cart:
    if new_quantity <= 0:
        raise ValidationError({"quantity": ["Quantity must be at least 1"]})

    cart = get_cart(session, user_id)
    line = cart.get_line(line_id)
    _ensure_stock(session, line.product_id, new_quantity)
    cart.update_line_quantity(line_id, new_quantity)
    session.flush()
    return cart


def remove_line(session: Session, user_id: int, line_id: int) -> Cart:
    cart = get_cart(session, user_id)
    cart.remove_line(line_id)
    session.flush()
    logger.info("Item removed from cart", user_id=user_id, line_id=line_id)
    return cart


def clear_cart(session: Session, user_id: int) -> Cart:
    cart = get_cart(session, user_id)
    cart.clear()
    session.flush()
    return cart
