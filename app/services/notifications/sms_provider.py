"""
SMS providers: Semaphore (paid, PH numbers) and TextBelt (free key, 1 SMS/day).

Both post a short plain-text message with a strict timeout and raise
NotifierError when the provider does not accept it.
"""

from typing import Dict, Optional
import logging
import re

import requests

from app.core.errors import NotifierError
from app.models.report import Report
from app.services.notifications.base import (
    DeliveryResult,
    NotificationProvider,
    Recipient,
    resolution_pending_text,
)

logger = logging.getLogger(__name__)


def format_phone_number(contact_number: str) -> str:
    """
    Normalize Philippine mobile numbers to +63 form.

    >>> format_phone_number("0917-123-4567")
    '+639171234567'
    >>> format_phone_number("639171234567")
    '+639171234567'
    """
    cleaned = re.sub(r"\D", "", contact_number or "")
    if cleaned.startswith("09"):
        return f"+63{cleaned[1:]}"
    if cleaned.startswith("639"):
        return f"+{cleaned}"
    if cleaned.startswith("9") and len(cleaned) == 10:
        return f"+63{cleaned}"
    if cleaned.startswith("0") and len(cleaned) == 11:
        return f"+63{cleaned[1:]}"
    return cleaned


class _SMSProvider(NotificationProvider):

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    def _post(self, url: str, payload: Dict) -> requests.Response:
        try:
            return requests.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotifierError(f"{self.name} request failed: {e}")


class SemaphoreSMSProvider(_SMSProvider):

    name = "semaphore"
    BASE_URL = "https://semaphore.co/api/v4/messages"

    def __init__(self, api_key: Optional[str], sender_name: str = "EcoCheck", timeout: float = 5.0):
        super().__init__(timeout)
        self.api_key = api_key
        self.sender_name = sender_name

    def is_enabled(self, recipient: Recipient) -> bool:
        return bool(self.api_key and recipient.phone)

    def send_resolution_pending(self, recipient: Recipient, report: Report) -> DeliveryResult:
        number = format_phone_number(recipient.phone)
        resp = self._post(self.BASE_URL, {
            "apikey": self.api_key,
            "number": number,
            "message": resolution_pending_text(report),
            "sendername": self.sender_name,
        })
        if resp.status_code != 200:
            raise NotifierError(f"Semaphore returned status {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            raise NotifierError("Semaphore returned a non-JSON response")
        result = data[0] if isinstance(data, list) and data else {}
        if result.get("status") not in ("Queued", "Sent", "Pending"):
            raise NotifierError(f"Semaphore SMS failed: {result.get('message') or data}")

        logger.info(f"Resolution SMS queued via Semaphore for user {recipient.user_id}")
        return DeliveryResult(provider=self.name, delivered=True, message_id=str(result.get("message_id")))


class TextBeltSMSProvider(_SMSProvider):

    name = "textbelt"
    BASE_URL = "https://textbelt.com/text"

    def __init__(self, api_key: str = "textbelt", timeout: float = 5.0):
        super().__init__(timeout)
        self.api_key = api_key

    def is_enabled(self, recipient: Recipient) -> bool:
        return bool(recipient.phone)

    def send_resolution_pending(self, recipient: Recipient, report: Report) -> DeliveryResult:
        resp = self._post(self.BASE_URL, {
            "phone": format_phone_number(recipient.phone),
            "message": resolution_pending_text(report),
            "key": self.api_key,
        })
        try:
            data = resp.json() if resp.status_code == 200 else {}
        except ValueError:
            data = {}
        if not data.get("success"):
            error = data.get("error") or f"status {resp.status_code}"
            if "quota" in str(error).lower():
                logger.warning("TextBelt daily quota exceeded")
            raise NotifierError(f"TextBelt error: {error}")

        logger.info(
            f"Resolution SMS sent via TextBelt for user {recipient.user_id} "
            f"(quota remaining: {data.get('quotaRemaining', 'unknown')})"
        )
        return DeliveryResult(provider=self.name, delivered=True, message_id=str(data.get("textId")))
