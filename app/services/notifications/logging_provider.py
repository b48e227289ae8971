"""
Logging fallback provider.

Always available. Used in development and whenever every real channel failed,
so the notification is at least visible in the server log.
"""

import logging

from app.models.report import Report
from app.services.notifications.base import (
    DeliveryResult,
    NotificationProvider,
    Recipient,
    resolution_pending_text,
)

logger = logging.getLogger(__name__)


class LoggingNotificationProvider(NotificationProvider):

    name = "log"

    def is_enabled(self, recipient: Recipient) -> bool:
        return True

    def send_resolution_pending(self, recipient: Recipient, report: Report) -> DeliveryResult:
        logger.info(
            f"[NOTIFY:DEV] To user {recipient.user_id} "
            f"(email={recipient.email or '-'}, phone={recipient.phone or '-'}): "
            f"{resolution_pending_text(report)}"
        )
        return DeliveryResult(provider=self.name, delivered=False, message_id=f"log-{report.id}")
