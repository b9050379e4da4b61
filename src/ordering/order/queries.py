"""Role-scoped order reads."""

from sqlalchemy import exists, func, select
from sqlalchemy.orm import Session

from ordering.order.lifecycle import find_payment
from ordering.order.order import Order, OrderLine
from ordering.projections.order_detail import OrderDetail, OrderPage, order_detail, seller_order_detail
from shared.db import visible
from shared.errors import AuthorizationError, NotFoundError, ValidationError
from shared.principal import Principal

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _sells_in(seller_id):
    return exists().where(
        OrderLine.order_id == Order.id,
        OrderLine.seller_id == seller_id,
        visible(OrderLine),
    )


def _check_paging(page, page_size):
    errors = {}
    if page < 1:
        errors["page"] = ["must be at least 1"]
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        errors["page_size"] = [f"must be between 1 and {MAX_PAGE_SIZE}"]
    if errors:
        raise ValidationError(errors)


def _page(session, stmt, page, page_size, render) -> OrderPage:
    _check_paging(page, page_size)
    total = session.scalar(select(func.count()).select_from(stmt.subquery()))
    orders = session.scalars(
        stmt.order_by(Order.created_at.desc(), Order.id.desc()).offset((page - 1) * page_size).limit(page_size)
    )
    return OrderPage.build(
        data=[render(order) for order in orders],
        page_number=page,
        page_size=page_size,
        total_records=total,
    )


def get_order(session: Session, actor: Principal, order_id: int) -> OrderDetail:
    """Load one order as ``actor`` is allowed to see it; anything else is not found."""
    stmt = select(Order).where(Order.id == order_id, visible(Order))
    if actor.is_customer:
        stmt = stmt.where(Order.user_id == actor.user_id)
    elif actor.is_seller:
        stmt = stmt.where(_sells_in(actor.user_id))

    order = session.scalar(stmt)
    if order is None:
        raise NotFoundError("Order", order_id)

    payment = find_payment(session, order.id)
    if actor.is_seller:
        return seller_order_detail(order, actor.user_id, payment)
    return order_detail(order, payment)


def list_my_orders(session: Session, actor: Principal, limit: int | None = None) -> list[OrderDetail]:
    stmt = (
        select(Order)
        .where(Order.user_id == actor.user_id, visible(Order))
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return [order_detail(order) for order in session.scalars(stmt)]


def list_orders_for_admin(
    session: Session, actor: Principal, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE, status=None
) -> OrderPage:
    if not actor.is_admin:
        raise AuthorizationError("Only admins can list all orders")
    stmt = select(Order).where(visible(Order))
    if status is not None:
        stmt = stmt.where(Order.status == status)
    return _page(session, stmt, page, page_size, order_detail)


def list_orders_for_seller(
    session: Session, actor: Principal, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE
) -> OrderPage:
    if not actor.is_seller:
        raise AuthorizationError("Only sellers can list their orders")
    stmt = select(Order).where(visible(Order), _sells_in(actor.user_id))
    return _page(session, stmt, page, page_size, lambda order: seller_order_detail(order, actor.user_id))
