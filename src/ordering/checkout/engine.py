"""Checkout engine: turns a user's cart into a durable order.

Everything below happens in a single database transaction:

    1. Load the cart; no lines → EmptyCartError
    2. Load the shipping address owned by the caller
    3. Resolve and validate the coupon, if one was given
    4. Price the cart (each product must exist and be active)
    5. Check availability of every line, reporting all short products at once
    6. Decrement stock, insert the order, its lines and a pending payment,
       redeem the coupon and empty the cart
    7. Commit

Any failure rolls the whole transaction back. The order e-mail goes out only
after the commit succeeded.
"""

import time

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from catalogue.product.product import get_product
from identity.customer.addresses import get_address
from inventory.stock.reservation import check_availability, reserve_and_decrement
from notifications.notification.dispatch import OrderMailer
from ordering.cart.items import find_cart
from ordering.coupon.coupon import find_coupon_by_code, normalize_code, redeem
from ordering.coupon.validation import INVALID_CODE, validate
from ordering.order.numbering import generate_order_number, generate_transaction_id
from ordering.order.order import Order, OrderLine, Payment
from ordering.order.pricing import calculate_pricing
from ordering.projections.order_detail import OrderDetail, order_detail
from shared.db import apply_statement_timeout, utc_now
from shared.errors import (
    AuthorizationError,
    CheckoutTimeoutError,
    ConflictError,
    CouponInvalidError,
    EmptyCartError,
    InsufficientStockError,
    InternalError,
    MarketplaceError,
    ValidationError,
)
from shared.principal import Principal

logger = structlog.get_logger(__name__)

# PostgreSQL SQLSTATE for a statement cancelled by statement_timeout
_QUERY_CANCELED = "57014"


class _Deadline:
    def __init__(self, seconds, clock):
        self.seconds = seconds
        self.clock = clock
        self.expires_at = clock() + seconds if seconds else None

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and self.clock() > self.expires_at

    def check(self, step: str) -> None:
        if self.expired:
            raise CheckoutTimeoutError(self.seconds, step)


class CheckoutEngine:
    def __init__(
        self,
        session_factory,
        config,
        mailer=None,
        order_number_factory=generate_order_number,
        clock=time.monotonic,
    ):
        self.session_factory = session_factory
        self.config = config
        self.mailer = mailer if mailer is not None else OrderMailer()
        self.order_number_factory = order_number_factory
        self.clock = clock

    def place_order(self, actor: Principal, address_id: int, coupon_code: str | None = None) -> OrderDetail:
        if not actor.is_customer:
            raise AuthorizationError("Only customers can place orders")
        deadline = _Deadline(self.config.checkout_timeout_seconds, self.clock)
        log = logger.bind(user_id=actor.user_id)

        try:
            with self.session_factory() as session, session.begin():
                if deadline.seconds:
                    apply_statement_timeout(session, deadline.seconds)
                order, payment = self._place(session, actor, address_id, coupon_code, deadline)
                deadline.check("commit")
            detail = order_detail(order, payment)
        except MarketplaceError as exc:
            log.info("Checkout rejected", kind=exc.kind, reason=exc.message)
            raise
        except SQLAlchemyError as exc:
            if getattr(getattr(exc, "orig", None), "pgcode", None) == _QUERY_CANCELED or deadline.expired:
                log.error("Checkout timed out in the database", error=str(exc))
                raise CheckoutTimeoutError(deadline.seconds, "database") from exc
            log.error("Checkout failed on storage", error=str(exc))
            raise InternalError("Order could not be placed, please try again") from exc

        log.info(
            "Order placed",
            order_id=order.id,
            order_number=order.order_number,
            total_amount=str(order.total_amount),
            line_count=len(order.lines),
        )
        self.mailer.order_placed(order)
        return detail

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def _place(self, session, actor, address_id, coupon_code, deadline):
        # 1. Cart
        cart = find_cart(session, actor.user_id)
        if cart is None or cart.is_empty:
            raise EmptyCartError()
        cart_lines = sorted(cart.visible_lines, key=lambda line: line.product_id)
        deadline.check("cart")

        # 2. Address
        address = get_address(session, address_id, actor.user_id)
        deadline.check("address")

        # 3. Coupon
        code = normalize_code(coupon_code)
        coupon = None
        if code is not None:
            coupon = find_coupon_by_code(session, code)
            if coupon is None:
                raise CouponInvalidError(INVALID_CODE)
        deadline.check("coupon")

        # 4. Pricing
        products = {}
        for line in cart_lines:
            product = get_product(session, line.product_id)
            if not product.is_active:
                raise ValidationError({"product_id": [f"Product '{product.name}' is no longer available"]})
            products[line.product_id] = product

        subtotal = calculate_pricing(
            [(line.product_id, line.quantity, line.unit_price) for line in cart_lines],
            tax_rate=self.config.tax_rate,
        ).subtotal
        discount = None
        if coupon is not None:
            result = validate(coupon, subtotal, utc_now())
            if not result.valid:
                raise CouponInvalidError(result.reason)
            discount = result.discount_amount

        pricing = calculate_pricing(
            [(line.product_id, line.quantity, line.unit_price) for line in cart_lines],
            discount=discount,
            tax_rate=self.config.tax_rate,
        )
        deadline.check("pricing")

        # 5. Availability
        short = [
            line.product_id
            for line in cart_lines
            if not check_availability(session, line.product_id, line.quantity)
        ]
        if short:
            raise InsufficientStockError(short)
        deadline.check("availability")

        # 6. Writes. Stock rows are taken in ascending product id order.
        for line in cart_lines:
            reserve_and_decrement(session, line.product_id, line.quantity)
        deadline.check("stock")

        def build_order(order_number):
            return Order.create(
                order_number=order_number,
                user_id=actor.user_id,
                address_id=address.id,
                pricing=pricing,
                lines=[
                    OrderLine.snapshot(
                        product_id=priced.product_id,
                        product_name=products[priced.product_id].name,
                        seller_id=products[priced.product_id].seller_id,
                        quantity=priced.quantity,
                        unit_price=priced.unit_price,
                        discount_amount=priced.discount_amount,
                    )
                    for priced in pricing.lines
                ],
                shipping_address=address.display_line,
                customer_email=actor.email,
                coupon_id=coupon.id if coupon is not None else None,
                coupon_code=coupon.code if coupon is not None else None,
            )

        order = self._insert_order(session, build_order)

        payment = Payment.reserve(order, generate_transaction_id(order.id))
        session.add(payment)

        if coupon is not None and not redeem(session, coupon.id):
            raise ConflictError(f"Coupon '{coupon.code}' reached its usage limit while the order was being placed")

        cart.clear()
        session.flush()
        deadline.check("order")
        return order, payment

    def _insert_order(self, session, build_order) -> Order:
        """Insert the order, retrying once with a new number on collision."""
        for attempt in (1, 2):
            order = build_order(self.order_number_factory())
            try:
                with session.begin_nested():
                    session.add(order)
            except IntegrityError as exc:
                if "order_number" not in str(exc.orig):
                    raise
                if attempt == 2:
                    raise ConflictError("Could not allocate a unique order number, please try again") from exc
                logger.warning("Order number collision, retrying", order_number=order.order_number)
                continue
            return order
