import pytest

from app.core.errors import ForbiddenError
from app.models.report import ReportStatus
from app.services.pii_migration import remove_pii_from_resolved_reports
from tests.conftest import ADMIN, SUPERADMIN, sample_report


@pytest.fixture
def legacy_store(store):
    # Resolved before redaction existed: still carries PII
    store.create_report(sample_report(id="legacy-1", status=ReportStatus.RESOLVED))
    store.create_report(sample_report(id="legacy-2", status=ReportStatus.RESOLVED, name="Juan"))
    store.create_report(sample_report(
        id="clean", status=ReportStatus.RESOLVED,
        first_name=None, middle_name=None, last_name=None, display_name=None,
        contact=None, description=None,
    ))
    store.create_report(sample_report(id="open", status=ReportStatus.ON_GOING))
    return store


def test_strips_pii_from_resolved_reports(legacy_store):
    result = remove_pii_from_resolved_reports(legacy_store, SUPERADMIN)

    assert result.total == 3
    assert result.updated == 2
    assert result.skipped == 1
    assert result.failed == 0
    assert not legacy_store.get_report("legacy-1").has_pii()
    assert not legacy_store.get_report("legacy-2").has_pii()
    assert legacy_store.get_report("legacy-1").display_location == "Concepcion Uno, Marikina"


def test_open_reports_are_untouched(legacy_store):
    remove_pii_from_resolved_reports(legacy_store, SUPERADMIN)
    assert legacy_store.get_report("open").first_name == "Maria"


def test_rerun_is_a_no_op(legacy_store):
    remove_pii_from_resolved_reports(legacy_store, SUPERADMIN)
    result = remove_pii_from_resolved_reports(legacy_store, SUPERADMIN)

    assert result.updated == 0
    assert result.skipped == 3


def test_dry_run_writes_nothing(legacy_store):
    result = remove_pii_from_resolved_reports(legacy_store, SUPERADMIN, apply=False)

    assert result.updated == 2
    assert legacy_store.get_report("legacy-1").has_pii()


def test_requires_superadmin(legacy_store):
    with pytest.raises(ForbiddenError):
        remove_pii_from_resolved_reports(legacy_store, ADMIN)
