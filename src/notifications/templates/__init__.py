"""Template registry: maps NotificationType to the template that renders it."""

from notifications.notification.notification import NotificationType
from notifications.templates.delivery_confirmation import DeliveryConfirmationTemplate
from notifications.templates.order_cancellation import OrderCancellationTemplate
from notifications.templates.order_confirmation import OrderConfirmationTemplate
from notifications.templates.order_placed import OrderPlacedTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationType.ORDER_PLACED.value: OrderPlacedTemplate,
    NotificationType.ORDER_CONFIRMATION.value: OrderConfirmationTemplate,
    NotificationType.ORDER_CANCELLATION.value: OrderCancellationTemplate,
    NotificationType.DELIVERY_CONFIRMATION.value: DeliveryConfirmationTemplate,
}


def get_template(notification_type: str):
    template = TEMPLATE_REGISTRY.get(notification_type)
    if template is None:
        raise ValueError(f"No template registered for {notification_type}")
    return template
