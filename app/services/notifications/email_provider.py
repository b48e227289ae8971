"""
SendGrid email provider.

Sends the "resolution pending confirmation" email through the SendGrid v3
HTTP API with a strict timeout. Raises NotifierError on any failure.
"""

import html
import logging

import requests

from app.core.errors import NotifierError
from app.models.report import Report
from app.services.notifications.base import DeliveryResult, NotificationProvider, Recipient

logger = logging.getLogger(__name__)


class SendGridEmailProvider(NotificationProvider):

    name = "sendgrid"
    BASE_URL = "https://api.sendgrid.com/v3/mail/send"

    def __init__(self, api_key: str, sender: str, timeout: float = 5.0):
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    def is_enabled(self, recipient: Recipient) -> bool:
        return bool(self.api_key and recipient.email)

    def send_resolution_pending(self, recipient: Recipient, report: Report) -> DeliveryResult:
        payload = {
            "personalizations": [{"to": [{"email": recipient.email}]}],
            "from": {"email": self.sender, "name": "EcoCheck"},
            "subject": "EcoCheck - Please confirm your report is resolved",
            "content": [{"type": "text/html", "value": self._build_html(recipient, report)}],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            resp = requests.post(self.BASE_URL, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotifierError(f"SendGrid request failed: {e}")

        # SendGrid answers 202 Accepted on success
        if resp.status_code not in (200, 202):
            raise NotifierError(f"SendGrid returned status {resp.status_code}: {resp.text[:200]}")

        message_id = resp.headers.get("X-Message-Id")
        logger.info(f"Resolution email sent to user {recipient.user_id} (message_id={message_id})")
        return DeliveryResult(provider=self.name, delivered=True, message_id=message_id)

    def _build_html(self, recipient: Recipient, report: Report) -> str:
        greeting = f"Hi {html.escape(recipient.display_name)}," if recipient.display_name else "Hi,"
        location = html.escape(report.display_location or report.landmark or "your reported location")
        photo = ""
        if report.resolution_photo_url:
            photo = (
                f'<p><img src="{html.escape(report.resolution_photo_url, quote=True)}" alt="Resolution photo" '
                f'style="max-width: 100%; border-radius: 5px;"></p>'
            )
        return f"""
          <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <div style="background-color: #4CAF50; color: white; padding: 20px; text-align: center;">
              <h1>EcoCheck</h1>
            </div>
            <div style="padding: 20px; background-color: #f9f9f9;">
              <p>{greeting}</p>
              <p>Your report at <strong>{location}</strong> has been marked as resolved by our team.</p>
              {photo}
              <p>Please open the EcoCheck app to confirm or reject the resolution.
                 If we do not hear from you within 3 days it will be resolved automatically.</p>
              <p style="color: #666; font-size: 12px;">
                This is an automated email from EcoCheck. Please do not reply to this email.
              </p>
            </div>
          </div>
        """
