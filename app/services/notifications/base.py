"""
Notification Provider Base Interface.

Defines the contract for outbound reporter notifications.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel

from app.models.report import Report


class Recipient(BaseModel):
    """Where a reporter can be reached, taken from their user profile."""
    user_id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    display_name: Optional[str] = None


class DeliveryResult(BaseModel):
    provider: str
    delivered: bool
    message_id: Optional[str] = None


class NotificationProvider(ABC):
    """
    Contract:
    - is_enabled() says whether the provider is configured and can reach the recipient
    - send_resolution_pending() either delivers or raises NotifierError
    - Implementations must bound every network call with a timeout
    """

    name: str = "base"

    @abstractmethod
    def is_enabled(self, recipient: Recipient) -> bool:
        raise NotImplementedError

    @abstractmethod
    def send_resolution_pending(self, recipient: Recipient, report: Report) -> DeliveryResult:
        raise NotImplementedError


def resolution_pending_text(report: Report) -> str:
    """Short plain-text body shared by the SMS and logging providers."""
    location = report.display_location or report.landmark or "your area"
    text = (
        f"EcoCheck: your report at {location} has been marked as resolved. "
        f"Please open the app to confirm or reject within 3 days."
    )
    if report.resolution_photo_url:
        text += f" Photo: {report.resolution_photo_url}"
    return text
