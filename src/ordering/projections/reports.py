"""Sales reports over a half-open ``[from_utc, to_utc)`` window of order creation times.

Admins see every order. Sellers see only orders containing their lines, and
their revenue counts only their own line totals. Cancelled orders are not
excluded: revenue is what was ordered in the window.

Reports run in a read session (a deferred transaction on SQLite, REPEATABLE
READ on PostgreSQL), so every figure comes from one snapshot and no write
locks are taken.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

import structlog
from pydantic import BaseModel
from sqlalchemy import func, select

from ordering.order.order import Order, OrderLine, OrderStatus
from shared.db import visible
from shared.errors import AuthorizationError, ValidationError
from shared.money import ZERO, round_money
from shared.principal import Principal

logger = structlog.get_logger(__name__)

DEFAULT_TOP_PRODUCTS = 10


class DailyStats(BaseModel):
    date: date
    order_count: int
    revenue: Decimal


class StatusCount(BaseModel):
    status: str
    count: int


class ProductSales(BaseModel):
    product_id: int
    product_name: str
    units_sold: int
    revenue: Decimal


class AdminReport(BaseModel):
    from_utc: datetime
    to_utc: datetime
    total_revenue: Decimal
    total_orders: int
    daily_stats: list[DailyStats]
    orders_by_status: list[StatusCount]


class SellerReport(BaseModel):
    seller_id: int
    from_utc: datetime
    to_utc: datetime
    total_revenue: Decimal
    total_orders: int
    daily_stats: list[DailyStats]
    top_products: list[ProductSales]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _as_date(value) -> date:
    # SQLite's date() hands back text, PostgreSQL a date
    if isinstance(value, str):
        return date.fromisoformat(value)
    if isinstance(value, datetime):
        return value.date()
    return value


def _money(value) -> Decimal:
    return round_money(value if value is not None else ZERO)


class ReportingAggregator:
    def __init__(self, read_session_factory, top_products: int = DEFAULT_TOP_PRODUCTS):
        self.read_session_factory = read_session_factory
        self.top_products = top_products

    def get_report(self, actor: Principal, from_utc: datetime, to_utc: datetime):
        if actor.is_customer:
            raise AuthorizationError("Reports are available to sellers and admins only")
        from_utc, to_utc = _as_utc(from_utc), _as_utc(to_utc)
        if from_utc >= to_utc:
            raise ValidationError({"from_utc": ["must be earlier than to_utc"]})

        with self.read_session_factory() as session, session.begin():
            if actor.is_admin:
                report = self._admin_report(session, from_utc, to_utc)
            else:
                report = self._seller_report(session, actor.user_id, from_utc, to_utc)

        logger.info(
            "Report generated",
            actor_id=actor.user_id,
            actor_role=actor.role.value,
            from_utc=from_utc.isoformat(),
            to_utc=to_utc.isoformat(),
            total_orders=report.total_orders,
        )
        return report

    # -------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------
    def _admin_report(self, session, from_utc, to_utc) -> AdminReport:
        in_window = (visible(Order), Order.created_at >= from_utc, Order.created_at < to_utc)

        total_orders, total_revenue = session.execute(
            select(func.count(Order.id), func.sum(Order.total_amount)).where(*in_window)
        ).one()

        day = func.date(Order.created_at)
        daily = session.execute(
            select(day, func.count(Order.id), func.sum(Order.total_amount)).where(*in_window).group_by(day).order_by(day)
        ).all()

        counts = dict(
            session.execute(select(Order.status, func.count(Order.id)).where(*in_window).group_by(Order.status)).all()
        )

        return AdminReport(
            from_utc=from_utc,
            to_utc=to_utc,
            total_revenue=_money(total_revenue),
            total_orders=total_orders,
            daily_stats=[
                DailyStats(date=_as_date(value), order_count=count, revenue=_money(revenue))
                for value, count, revenue in daily
            ],
            orders_by_status=[StatusCount(status=status.value, count=counts.get(status.value, 0)) for status in OrderStatus],
        )

    # -------------------------------------------------------------------
    # Seller
    # -------------------------------------------------------------------
    def _seller_report(self, session, seller_id, from_utc, to_utc) -> SellerReport:
        def seller_lines(*columns):
            return (
                select(*columns)
                .join(Order, Order.id == OrderLine.order_id)
                .where(
                    OrderLine.seller_id == seller_id,
                    visible(OrderLine),
                    visible(Order),
                    Order.created_at >= from_utc,
                    Order.created_at < to_utc,
                )
            )

        total_orders, total_revenue = session.execute(
            seller_lines(func.count(func.distinct(Order.id)), func.sum(OrderLine.line_total))
        ).one()

        day = func.date(Order.created_at)
        daily = session.execute(
            seller_lines(day, func.count(func.distinct(Order.id)), func.sum(OrderLine.line_total))
            .group_by(day)
            .order_by(day)
        ).all()

        units = func.sum(OrderLine.quantity)
        revenue = func.sum(OrderLine.line_total)
        top = session.execute(
            seller_lines(OrderLine.product_id, func.max(OrderLine.product_name), units, revenue)
            .group_by(OrderLine.product_id)
            .order_by(units.desc(), revenue.desc(), OrderLine.product_id)
            .limit(self.top_products)
        ).all()

        return SellerReport(
            seller_id=seller_id,
            from_utc=from_utc,
            to_utc=to_utc,
            total_revenue=_money(total_revenue),
            total_orders=total_orders,
            daily_stats=[
                DailyStats(date=_as_date(value), order_count=count, revenue=_money(amount))
                for value, count, amount in daily
            ],
            top_products=[
                ProductSales(product_id=product_id, product_name=name or "", units_sold=sold, revenue=_money(amount))
                for product_id, name, sold, amount in top
            ],
        )
