"""FastAPI routes for the Ordering domain: cart, orders, coupons and reports."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from ordering.api.schemas import (
    AddToCartRequest,
    CartResponse,
    PlaceOrderRequest,
    UpdateCartLineRequest,
    UpdateOrderStatusRequest,
    ValidateCouponRequest,
    ValidateCouponResponse,
)
from ordering.cart.items import add_to_cart, clear_cart, get_cart, remove_line, update_line_quantity
from ordering.coupon.validation import validate_code
from ordering.order.order import parse_status
from ordering.order.queries import (
    DEFAULT_PAGE_SIZE,
    get_order,
    list_my_orders,
    list_orders_for_admin,
    list_orders_for_seller,
)
from ordering.projections.order_detail import OrderDetail, OrderPage
from ordering.projections.reports import AdminReport, SellerReport
from shared.principal import Principal
from shared.web import get_actor, get_services, read_transaction, transaction

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
def show_cart(actor: Principal = Depends(get_actor), services=Depends(get_services)) -> CartResponse:
    with transaction(services) as session:
        return CartResponse.from_cart(get_cart(session, actor.user_id))


@cart_router.post("/items", response_model=CartResponse)
def add_cart_item(
    body: AddToCartRequest,
    actor: Principal = Depends(get_actor),
    services=Depends(get_services),
) -> CartResponse:
    with transaction(services) as session:
        cart = add_to_cart(session, actor.user_id, body.product_id, body.quantity)
        return CartResponse.from_cart(cart)


@cart_router.put("/items/{line_id}", response_model=CartResponse)
def update_cart_item(
    line_id: int,
    body: UpdateCartLineRequest,
    actor: Principal = Depends(get_actor),
    services=Depends(get_services),
) -> CartResponse:
    with transaction(services) as session:
        cart = update_line_quantity(session, actor.user_id, line_id, body.quantity)
        return CartResponse.from_cart(cart)


@cart_router.delete("/items/{line_id}", response_model=CartResponse)
def remove_cart_item(line_id: int, actor: Principal = Depends(get_actor), services=Depends(get_services)) -> CartResponse:
    with transaction(services) as session:
        return CartResponse.from_cart(remove_line(session, actor.user_id, line_id))


@cart_router.delete("", response_model=CartResponse)
def empty_cart(actor: Principal = Depends(get_actor), services=Depends(get_services)) -> CartResponse:
    with transaction(services) as session:
        return CartResponse.from_cart(clear_cart(session, actor.user_id))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderDetail)
def place_order(
    body: PlaceOrderRequest,
    actor: Principal = Depends(get_actor),
    services=Depends(get_services),
) -> OrderDetail:
    return services.checkout.place_order(actor, body.address_id, body.coupon_code)


@order_router.get("/mine", response_model=list[OrderDetail])
def my_orders(
    limit: int | None = Query(default=None, ge=1),
    actor: Principal = Depends(get_actor),
    services=Depends(get_services),
) -> list[OrderDetail]:
    with read_transaction(services) as session:
        return list_my_orders(session, actor, limit=limit)


@order_router.get("/admin", response_model=OrderPage)
def admin_orders(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1),
    status: str | None = None,
    actor: Principal = Depends(get_actor),
    services=Depends(get_services),
) -> OrderPage:
    status = parse_status(status).value if status else None
    with read_transaction(services) as session:
        return list_orders_for_admin(session, actor, page=page, page_size=page_size, status=status)


@order_router.get("/seller", response_model=OrderPage)
def seller_orders(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1),
    actor: Principal = Depends(get_actor),
    services=Depends(get_services),
) -> OrderPage:
    with read_transaction(services) as session:
        return list_orders_for_seller(session, actor, page=page, page_size=page_size)


@order_router.get("/{order_id}", response_model=OrderDetail)
def show_order(order_id: int, actor: Principal = Depends(get_actor), services=Depends(get_services)) -> OrderDetail:
    with read_transaction(services) as session:
        return get_order(session, actor, order_id)


@order_router.put("/{order_id}/status", response_model=OrderDetail)
def update_order_status(
    order_id: int,
    body: UpdateOrderStatusRequest,
    actor: Principal = Depends(get_actor),
    services=Depends(get_services),
) -> OrderDetail:
    return services.lifecycle.update_status(actor, order_id, body.status, body.tracking_number)


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("/validate", response_model=ValidateCouponResponse)
def validate_coupon(
    body: ValidateCouponRequest,
    actor: Principal = Depends(get_actor),  # noqa: ARG001
    services=Depends(get_services),
) -> ValidateCouponResponse:
    with read_transaction(services) as session:
        result = validate_code(session, body.code, body.order_amount)
    return ValidateCouponResponse(valid=result.valid, discount_amount=result.discount_amount, reason=result.reason)


# ---------------------------------------------------------------------------
# Report Router
# ---------------------------------------------------------------------------
report_router = APIRouter(prefix="/reports", tags=["reports"])


@report_router.get("", response_model=AdminReport | SellerReport)
def get_report(
    from_utc: datetime,
    to_utc: datetime,
    actor: Principal = Depends(get_actor),
    services=Depends(get_services),
) -> AdminReport | SellerReport:
    return services.reports.get_report(actor, from_utc, to_utc)
