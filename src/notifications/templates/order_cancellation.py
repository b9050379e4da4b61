"""Order cancellation template."""

from notifications.notification.notification import NotificationType


class OrderCancellationTemplate:
    notification_type = NotificationType.ORDER_CANCELLATION.value

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        return {
            "subject": f"Order {order_number} cancelled",
            "body": (
                f"Your order {order_number} has been cancelled.\n\n"
                "If you have questions, please contact our support team."
            ),
        }
