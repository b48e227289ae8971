"""
Notification dispatcher.

Builds the configured providers from settings and fans a notification out to
every channel that can reach the recipient. Delivery is best-effort: provider
failures are logged and swallowed here, and when nothing was delivered the
logging provider records the message instead.
"""

from typing import List, Optional
import logging

from app.core.errors import NotifierError
from app.core.settings import settings
from app.models.report import Report
from app.services.notifications.base import DeliveryResult, NotificationProvider, Recipient
from app.services.notifications.email_provider import SendGridEmailProvider
from app.services.notifications.logging_provider import LoggingNotificationProvider
from app.services.notifications.sms_provider import SemaphoreSMSProvider, TextBeltSMSProvider

logger = logging.getLogger(__name__)


class NotificationDispatcher:

    def __init__(
        self,
        providers: Optional[List[NotificationProvider]] = None,
        fallback: Optional[NotificationProvider] = None
    ):
        self.providers = providers or []
        self.fallback = fallback or LoggingNotificationProvider()

    def notify_resolution_pending(self, recipient: Recipient, report: Report) -> List[DeliveryResult]:
        """
        Tell a reporter their report awaits confirmation. Never raises.
        """
        results: List[DeliveryResult] = []

        for provider in self.providers:
            if not provider.is_enabled(recipient):
                continue
            try:
                results.append(provider.send_resolution_pending(recipient, report))
            except NotifierError as e:
                logger.warning(f"⚠️ {provider.name} notification failed for report {report.id}: {e.message}")
            except Exception as e:
                logger.warning(
                    f"⚠️ {provider.name} notification crashed for report {report.id}: {e}",
                    exc_info=True
                )

        if not any(result.delivered for result in results):
            try:
                results.append(self.fallback.send_resolution_pending(recipient, report))
            except Exception as e:
                logger.error(f"Fallback notification failed for report {report.id}: {e}")

        return results


def build_providers() -> List[NotificationProvider]:
    """Instantiate the real channels enabled in settings, email first."""
    timeout = settings.NOTIFIER_TIMEOUT_SECONDS
    providers: List[NotificationProvider] = []

    if settings.SENDGRID_API_KEY:
        providers.append(SendGridEmailProvider(settings.SENDGRID_API_KEY, settings.EMAIL_FROM, timeout))

    sms_provider = (settings.SMS_PROVIDER or "none").lower()
    if sms_provider == "auto":
        sms_provider = "semaphore" if settings.SEMAPHORE_API_KEY else "textbelt"
    if sms_provider == "semaphore":
        providers.append(SemaphoreSMSProvider(settings.SEMAPHORE_API_KEY, settings.SMS_SENDER_NAME, timeout))
    elif sms_provider == "textbelt":
        providers.append(TextBeltSMSProvider(settings.TEXTBELT_API_KEY, timeout))

    logger.info(f"Notification providers: {[p.name for p in providers] or ['log only']}")
    return providers


# Global dispatcher instance (singleton pattern)
_dispatcher: Optional[NotificationDispatcher] = None


def get_notification_dispatcher() -> NotificationDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(build_providers())
    return _dispatcher
