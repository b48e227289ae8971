from app.models.report import PII_FIELDS
from app.services.pii_redaction import build_display_name, redact_pii
from tests.conftest import sample_report


def test_display_name_skips_blank_parts():
    assert build_display_name("Maria", "  ", "Santos") == "Maria Santos"


def test_display_name_falls_back_to_name():
    assert build_display_name(None, None, None, "  Juan  ") == "Juan"


def test_display_name_empty():
    assert build_display_name() is None


def test_redact_nulls_every_pii_field():
    redacted = redact_pii(sample_report())

    for field in PII_FIELDS:
        assert getattr(redacted, field) is None
    assert not redacted.has_pii()


def test_redact_keeps_location_photos_and_owner():
    original = sample_report(latitude=14.65, longitude=121.10, landmark="Creek")
    redacted = redact_pii(original)

    assert redacted.reporter_id == original.reporter_id
    assert redacted.photo_url == original.photo_url
    assert redacted.display_location == original.display_location
    assert redacted.user_location == original.user_location
    assert redacted.landmark == "Creek"
    assert (redacted.latitude, redacted.longitude) == (14.65, 121.10)


def test_redact_does_not_mutate_input():
    original = sample_report()
    redact_pii(original)
    assert original.first_name == "Maria"


def test_redact_is_idempotent():
    once = redact_pii(sample_report())
    assert redact_pii(once) is once
