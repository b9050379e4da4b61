"""Delivery confirmation template."""

from notifications.notification.notification import NotificationType


class DeliveryConfirmationTemplate:
    notification_type = NotificationType.DELIVERY_CONFIRMATION.value

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        delivered_date = context.get("delivered_date")
        when = f" on {delivered_date:%d %b %Y}" if delivered_date else ""
        return {
            "subject": f"Order {order_number} delivered",
            "body": (
                f"Your order {order_number} was delivered{when}.\n\n"
                "We hope you enjoy your purchase!"
            ),
        }
