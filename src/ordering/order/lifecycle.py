"""Order lifecycle: status updates by sellers and admins."""

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from notifications.notification.dispatch import OrderMailer
from ordering.order.order import Order, Payment, parse_status
from ordering.projections.order_detail import OrderDetail, order_detail, seller_order_detail
from shared.db import utc_now, visible
from shared.errors import AuthorizationError, ConflictError, InternalError, NotFoundError
from shared.principal import Principal

logger = structlog.get_logger(__name__)


def find_payment(session, order_id) -> Payment | None:
    return session.scalar(select(Payment).where(Payment.order_id == order_id, visible(Payment)))


class OrderLifecycleManager:
    def __init__(self, session_factory, mailer=None, clock=utc_now):
        self.session_factory = session_factory
        self.mailer = mailer if mailer is not None else OrderMailer()
        self.clock = clock

    def update_status(
        self,
        actor: Principal,
        order_id: int,
        new_status,
        tracking_number: str | None = None,
    ) -> OrderDetail:
        if actor.is_customer:
            raise AuthorizationError("Customers cannot change order status")
        target = parse_status(new_status)

        try:
            with self.session_factory() as session, session.begin():
                order = session.scalar(select(Order).where(Order.id == order_id, visible(Order)))
                if order is None:
                    raise NotFoundError("Order", order_id)
                if actor.is_seller and not order.has_seller(actor.user_id):
                    raise AuthorizationError("You can only update orders that contain your products")

                previous = order.order_status
                changed = order.apply_status(target, tracking_number=tracking_number, now=self.clock())
                payment = find_payment(session, order.id)
        except StaleDataError as exc:
            raise ConflictError(f"Order {order_id} was updated concurrently, please retry") from exc
        except SQLAlchemyError as exc:
            logger.error("Order status update failed on storage", order_id=order_id, error=str(exc))
            raise InternalError("Order status could not be updated, please try again") from exc

        if changed:
            logger.info(
                "Order status updated",
                order_id=order.id,
                order_number=order.order_number,
                from_status=previous.value,
                to_status=order.status,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
            )
            self.mailer.status_changed(order, order.status)

        if actor.is_seller:
            return seller_order_detail(order, actor.user_id, payment)
        return order_detail(order, payment)
