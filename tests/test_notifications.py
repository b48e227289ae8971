import pytest
import requests

from app.core.errors import NotifierError
from app.services.notifications import NotificationDispatcher, Recipient
from app.services.notifications.email_provider import SendGridEmailProvider
from app.services.notifications.logging_provider import LoggingNotificationProvider
from app.services.notifications.sms_provider import (
    SemaphoreSMSProvider,
    TextBeltSMSProvider,
    format_phone_number,
)
from tests.conftest import RecordingProvider, sample_report

RECIPIENT = Recipient(user_id="reporter", email="maria@example.com", phone="0917 123 4567", display_name="Maria")
REPORT = sample_report(resolution_photo_url="https://cdn.example.com/uploads/fixed.jpg")


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


@pytest.fixture
def post_calls(monkeypatch):
    calls = []

    def install(response=None, error=None):
        def fake_post(url, **kwargs):
            calls.append((url, kwargs))
            if error is not None:
                raise error
            return response
        monkeypatch.setattr(requests, "post", fake_post)
        return calls

    return install


@pytest.mark.parametrize("raw,expected", [
    ("09171234567", "+639171234567"),
    ("0917-123-4567", "+639171234567"),
    ("639171234567", "+639171234567"),
    ("9171234567", "+639171234567"),
])
def test_format_phone_number(raw, expected):
    assert format_phone_number(raw) == expected


class TestDispatcher:

    def test_delivers_through_enabled_providers(self):
        email, sms = RecordingProvider(), RecordingProvider()
        results = NotificationDispatcher([email, sms]).notify_resolution_pending(RECIPIENT, REPORT)

        assert [r.delivered for r in results] == [True, True]
        assert len(email.sent) == 1 and len(sms.sent) == 1

    def test_failure_falls_back_to_log(self):
        fallback = RecordingProvider()
        results = NotificationDispatcher([RecordingProvider(fail=True)], fallback=fallback).notify_resolution_pending(
            RECIPIENT, REPORT
        )

        assert len(fallback.sent) == 1
        assert results[-1].provider == "recording"

    def test_unexpected_exception_is_swallowed(self):
        class Exploding(RecordingProvider):
            def send_resolution_pending(self, recipient, report):
                raise KeyError("template")

        results = NotificationDispatcher([Exploding()]).notify_resolution_pending(RECIPIENT, REPORT)
        assert [r.provider for r in results] == ["log"]

    def test_no_providers_uses_log(self):
        results = NotificationDispatcher().notify_resolution_pending(RECIPIENT, REPORT)
        assert results[0].provider == "log"
        assert results[0].delivered is False

    def test_logging_provider(self):
        result = LoggingNotificationProvider().send_resolution_pending(RECIPIENT, REPORT)
        assert result.message_id == f"log-{REPORT.id}"


class TestSendGrid:

    def test_sends_email(self, post_calls):
        calls = post_calls(FakeResponse(202, headers={"X-Message-Id": "sg-1"}))
        provider = SendGridEmailProvider("SG.key", "noreply@ecocheck.app", timeout=2.0)

        result = provider.send_resolution_pending(RECIPIENT, REPORT)

        assert result.delivered is True
        assert result.message_id == "sg-1"
        url, kwargs = calls[0]
        assert url == SendGridEmailProvider.BASE_URL
        assert kwargs["timeout"] == 2.0
        assert kwargs["json"]["personalizations"][0]["to"][0]["email"] == "maria@example.com"
        assert "fixed.jpg" in kwargs["json"]["content"][0]["value"]

    def test_error_status_raises(self, post_calls):
        post_calls(FakeResponse(401, text="unauthorized"))
        with pytest.raises(NotifierError):
            SendGridEmailProvider("SG.key", "noreply@ecocheck.app").send_resolution_pending(RECIPIENT, REPORT)

    def test_timeout_raises_notifier_error(self, post_calls):
        post_calls(error=requests.Timeout("read timed out"))
        with pytest.raises(NotifierError):
            SendGridEmailProvider("SG.key", "noreply@ecocheck.app").send_resolution_pending(RECIPIENT, REPORT)

    def test_disabled_without_email(self):
        provider = SendGridEmailProvider("SG.key", "noreply@ecocheck.app")
        assert not provider.is_enabled(Recipient(user_id="x"))


class TestSMS:

    def test_semaphore_queued(self, post_calls):
        calls = post_calls(FakeResponse(200, payload=[{"message_id": 42, "status": "Queued"}]))
        result = SemaphoreSMSProvider("sem-key", "EcoCheck").send_resolution_pending(RECIPIENT, REPORT)

        assert result.message_id == "42"
        assert calls[0][1]["json"]["number"] == "+639171234567"

    def test_semaphore_failed_status(self, post_calls):
        post_calls(FakeResponse(200, payload=[{"status": "Failed", "message": "Invalid number"}]))
        with pytest.raises(NotifierError):
            SemaphoreSMSProvider("sem-key").send_resolution_pending(RECIPIENT, REPORT)

    def test_semaphore_non_json(self, post_calls):
        post_calls(FakeResponse(200, payload=None))
        with pytest.raises(NotifierError):
            SemaphoreSMSProvider("sem-key").send_resolution_pending(RECIPIENT, REPORT)

    def test_textbelt_success(self, post_calls):
        post_calls(FakeResponse(200, payload={"success": True, "textId": "tb-7", "quotaRemaining": 0}))
        result = TextBeltSMSProvider().send_resolution_pending(RECIPIENT, REPORT)
        assert result.message_id == "tb-7"

    def test_textbelt_quota(self, post_calls):
        post_calls(FakeResponse(200, payload={"success": False, "error": "Out of quota"}))
        with pytest.raises(NotifierError, match="quota"):
            TextBeltSMSProvider().send_resolution_pending(RECIPIENT, REPORT)


def test_email_escapes_profile_and_report_text(post_calls):
    calls = post_calls(FakeResponse(202))
    recipient = Recipient(user_id="reporter", email="maria@example.com", display_name="<script>alert(1)</script>")
    report = sample_report(resolution_photo_url='https://cdn.example.com/x.jpg" onerror="steal()')

    SendGridEmailProvider("SG.key", "noreply@ecocheck.app").send_resolution_pending(recipient, report)

    body = calls[0][1]["json"]["content"][0]["value"]
    assert "<script>" not in body
    assert "&lt;script&gt;" in body
    assert 'x.jpg" onerror' not in body
    assert "x.jpg&quot; onerror" in body
