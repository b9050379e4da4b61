"""Order e-mail dispatch.

E-mails go out after the order transaction has committed. Delivery is
fire-and-forget: a failing transport is logged as a warning and never
reaches the caller that placed or updated the order.
"""

import structlog

from notifications.channel import get_channel
from notifications.notification.notification import NotificationChannel, NotificationType
from notifications.templates import get_template

logger = structlog.get_logger(__name__)

_STATUS_NOTIFICATIONS = {
    "Confirmed": NotificationType.ORDER_CONFIRMATION,
    "Cancelled": NotificationType.ORDER_CANCELLATION,
    "Delivered": NotificationType.DELIVERY_CONFIRMATION,
}


def order_context(order) -> dict:
    return {
        "order_number": order.order_number,
        "subtotal": str(order.subtotal),
        "discount_amount": str(order.discount_amount),
        "tax_amount": str(order.tax_amount),
        "total_amount": str(order.total_amount),
        "shipping_address": order.shipping_address,
        "delivered_date": order.delivered_date,
        "lines": [
            {"product_name": line.product_name, "quantity": line.quantity, "line_total": str(line.line_total)}
            for line in order.lines
        ],
    }


class OrderMailer:
    """Renders order templates and hands them to the email channel."""

    def __init__(self, channel=None):
        self.channel = channel if channel is not None else get_channel(NotificationChannel.EMAIL.value)

    def order_placed(self, order) -> bool:
        return self._send(NotificationType.ORDER_PLACED, order)

    def status_changed(self, order, status: str) -> bool:
        notification_type = _STATUS_NOTIFICATIONS.get(status)
        if notification_type is None:
            return False
        return self._send(notification_type, order)

    def _send(self, notification_type: NotificationType, order) -> bool:
        recipient = order.customer_email
        if not recipient or not recipient.strip():
            return False

        try:
            content = get_template(notification_type.value).render(order_context(order))
            result = self.channel.send(to=recipient, subject=content["subject"], body=content["body"])
        except Exception as exc:
            logger.warning(
                "Order email failed",
                notification_type=notification_type.value,
                order_number=order.order_number,
                recipient=recipient,
                error=str(exc),
            )
            return False

        if result.get("status") != "sent":
            logger.warning(
                "Order email failed",
                notification_type=notification_type.value,
                order_number=order.order_number,
                recipient=recipient,
                error=result.get("error", "Unknown dispatch error"),
            )
            return False

        logger.info(
            "Order email sent",
            notification_type=notification_type.value,
            order_number=order.order_number,
            recipient=recipient,
        )
        return True
