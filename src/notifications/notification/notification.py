"""Notification kinds and channels known to the marketplace."""

from enum import Enum


class NotificationType(Enum):
    ORDER_PLACED = "OrderPlaced"
    ORDER_CONFIRMATION = "OrderConfirmation"
    ORDER_CANCELLATION = "OrderCancellation"
    DELIVERY_CONFIRMATION = "DeliveryConfirmation"


class NotificationChannel(Enum):
    EMAIL = "Email"
