"""Order confirmation template, sent when a seller or admin confirms the order."""

from notifications.notification.notification import NotificationType


class OrderConfirmationTemplate:
    notification_type = NotificationType.ORDER_CONFIRMATION.value

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        return {
            "subject": f"Order {order_number} confirmed",
            "body": (
                f"Your order {order_number} has been confirmed.\n\n"
                "We'll let you know once it ships."
            ),
        }
