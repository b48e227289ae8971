from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from app.config.mock_firestore import InMemoryReportStore, seed_users
from app.core.errors import NotFoundError, PersistenceError
from app.models.report import ReportStatus
from app.services.status_workflow import TransitionOutcome
from app.utils.firestore_helpers import where_filter
from tests.conftest import START, USERS, sample_report


def test_list_reports_filters_and_orders(store):
    store.create_report(sample_report(id="old", created_at=START))
    store.create_report(sample_report(id="new", created_at=START + timedelta(hours=1)))
    store.create_report(sample_report(id="pasig", reporter_id="pasig-reporter", user_location="Pasig"))

    assert [r.id for r in store.list_reports(reporter_id="reporter")] == ["new", "old"]
    assert [r.id for r in store.list_reports(user_location="Pasig")] == ["pasig"]
    assert len(store.list_reports()) == 3


def test_stale_candidates(store):
    store.create_report(sample_report(
        id="stale", status=ReportStatus.PENDING_CONFIRMATION, pending_confirmation_since=START
    ))
    store.create_report(sample_report(
        id="fresh", status=ReportStatus.PENDING_CONFIRMATION, pending_confirmation_since=START + timedelta(days=2)
    ))

    stale = store.find_stale_pending_confirmations(START + timedelta(days=1))
    assert [r.id for r in stale] == ["stale"]


def test_apply_transition_missing_report(store):
    with pytest.raises(NotFoundError):
        store.apply_transition("ghost", lambda r: TransitionOutcome(report=r, previous_status=r.status))


def test_apply_transition_refuses_owner_change(store):
    store.create_report(sample_report())

    def steal(report):
        return TransitionOutcome(
            report=report.model_copy(update={"reporter_id": "neighbor"}),
            previous_status=report.status,
        )

    with pytest.raises(PersistenceError):
        store.apply_transition("r1", steal)
    assert store.get_report("r1").reporter_id == "reporter"


def test_failed_mutation_writes_nothing(store):
    store.create_report(sample_report())

    def explode(report):
        raise PersistenceError("boom")

    with pytest.raises(PersistenceError):
        store.apply_transition("r1", explode)
    assert store.get_report("r1").status == ReportStatus.PENDING


def test_points_for_unknown_reporter_are_skipped(store):
    store.create_report(sample_report(reporter_id="ghost-user"))

    def resolve(report):
        return TransitionOutcome(
            report=report.model_copy(update={"status": ReportStatus.RESOLVED}),
            previous_status=report.status,
            points_awarded=10,
        )

    store.apply_transition("r1", resolve)
    assert store.get_report("r1").status == ReportStatus.RESOLVED
    assert store.get_user("ghost-user") is None


def test_snapshot_persistence(tmp_path):
    path = str(tmp_path / "mock_db.json")
    first = InMemoryReportStore(snapshot_path=path)
    seed_users(first, USERS)
    first.create_report(sample_report())

    reloaded = InMemoryReportStore(snapshot_path=path)

    assert reloaded.get_report("r1").display_name == "Maria L Santos"
    assert reloaded.get_report("r1").created_at == START
    assert reloaded.get_user("admin-marikina").location == "Marikina"


def test_where_filter_uses_keyword_filter():
    query = MagicMock()
    where_filter(query, "status", "==", "Resolved")

    field_filter = query.where.call_args.kwargs["filter"]
    assert field_filter.field_path == "status"
    assert field_filter.op_string == "=="
    assert field_filter.value == "Resolved"


def test_failed_snapshot_write_leaves_state_unchanged(tmp_path):
    store = InMemoryReportStore(snapshot_path=str(tmp_path / "mock_db.json"))
    seed_users(store, USERS)
    store.create_report(sample_report(status=ReportStatus.PENDING_CONFIRMATION))
    # A directory cannot be opened for writing
    store.snapshot_path = str(tmp_path)

    def resolve(report):
        return TransitionOutcome(
            report=report.model_copy(update={"status": ReportStatus.RESOLVED}),
            previous_status=report.status,
            points_awarded=10,
        )

    with pytest.raises(PersistenceError):
        store.apply_transition("r1", resolve)

    assert store.get_report("r1").status == ReportStatus.PENDING_CONFIRMATION
    assert store.get_user("reporter").points == 0
