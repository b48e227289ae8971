"""
Reporter notifications - email and SMS with a logging fallback.

Delivery is best-effort and never affects whether a workflow transition
commits.
"""

from app.services.notifications.base import DeliveryResult, NotificationProvider, Recipient
from app.services.notifications.dispatcher import NotificationDispatcher, get_notification_dispatcher

__all__ = [
    "DeliveryResult",
    "NotificationProvider",
    "Recipient",
    "NotificationDispatcher",
    "get_notification_dispatcher",
]
