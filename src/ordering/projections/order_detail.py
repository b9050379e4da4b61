"""Order detail: the read model returned by checkout, status updates and order queries.

A seller only ever sees the lines they sold. Their view recomputes subtotal
and total over those lines and hides the order-level discount and tax, which
belong to the whole order.
"""

import math
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from shared.money import ZERO, round_money


class OrderLineDetail(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    product_name: str
    seller_id: int
    quantity: int
    unit_price: Decimal
    discount_amount: Decimal
    line_total: Decimal


class OrderDetail(BaseModel):
    id: int
    order_number: str
    user_id: int
    customer_email: str | None = None
    status: str
    address_id: int
    shipping_address: str
    coupon_code: str | None = None
    subtotal: Decimal
    discount_amount: Decimal | None = None
    tax_amount: Decimal
    total_amount: Decimal
    tracking_number: str | None = None
    shipped_date: datetime | None = None
    delivered_date: datetime | None = None
    payment_status: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    lines: list[OrderLineDetail]


class OrderPage(BaseModel):
    data: list[OrderDetail]
    page_number: int
    page_size: int
    total_pages: int
    total_records: int

    @classmethod
    def build(cls, data, page_number, page_size, total_records):
        total_pages = math.ceil(total_records / page_size) if page_size else 0
        return cls(
            data=data,
            page_number=page_number,
            page_size=page_size,
            total_pages=total_pages,
            total_records=total_records,
        )


def _envelope(order, payment=None) -> dict:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "customer_email": order.customer_email,
        "status": order.status,
        "address_id": order.address_id,
        "shipping_address": order.shipping_address,
        "coupon_code": order.coupon_code,
        "tracking_number": order.tracking_number,
        "shipped_date": order.shipped_date,
        "delivered_date": order.delivered_date,
        "payment_status": payment.status if payment is not None else None,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


def order_detail(order, payment=None) -> OrderDetail:
    """Full view for the customer who placed the order and for admins."""
    return OrderDetail(
        **_envelope(order, payment),
        subtotal=order.subtotal,
        discount_amount=order.discount_amount,
        tax_amount=order.tax_amount,
        total_amount=order.total_amount,
        lines=[OrderLineDetail.model_validate(line) for line in order.lines if not line.is_deleted],
    )


def seller_order_detail(order, seller_id, payment=None) -> OrderDetail:
    lines = order.lines_for_seller(seller_id)
    subtotal = round_money(sum((line.line_total for line in lines), ZERO))
    return OrderDetail(
        **_envelope(order, payment),
        subtotal=subtotal,
        discount_amount=None,
        tax_amount=ZERO,
        total_amount=subtotal,
        lines=[OrderLineDetail.model_validate(line) for line in lines],
    )
