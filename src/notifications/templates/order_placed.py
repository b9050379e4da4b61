"""Order placed template, sent right after checkout commits."""

from notifications.notification.notification import NotificationType


class OrderPlacedTemplate:
    notification_type = NotificationType.ORDER_PLACED.value

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        lines = "\n".join(
            f"  {line['product_name']} x {line['quantity']} = ₹{line['line_total']}" for line in context.get("lines", [])
        )
        return {
            "subject": f"Order {order_number} placed",
            "body": (
                f"Thank you! We have received your order {order_number}.\n\n"
                f"{lines}\n\n"
                f"Subtotal: ₹{context.get('subtotal', '0.00')}\n"
                f"Discount: ₹{context.get('discount_amount', '0.00')}\n"
                f"Tax: ₹{context.get('tax_amount', '0.00')}\n"
                f"Total: ₹{context.get('total_amount', '0.00')}\n\n"
                f"Shipping to: {context.get('shipping_address', '')}"
            ),
        }
