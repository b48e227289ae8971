"""
Backfill: remove PII from Resolved reports.

Reports resolved before redaction moved to the confirmation step can still
carry names, contacts and descriptions. This strips them with the same
redaction policy, one atomic update per report.

PII fields removed: display_name, first/middle/last name, name, contact, description.
Fields retained: locations, coordinates, photos, status, timestamps, reporter_id.
"""

import logging

from app.core.errors import StateConflictError, WorkflowError
from app.models.report import PIIMigrationResult, Report, ReportStatus
from app.models.user import Actor
from app.services.authorization import Action, authorize
from app.services.pii_redaction import redact_pii
from app.services.report_store import ReportStore
from app.services.status_workflow import TransitionOutcome

logger = logging.getLogger(__name__)


def _redact_if_resolved(report: Report) -> TransitionOutcome:
    if report.status != ReportStatus.RESOLVED:
        raise StateConflictError(f"Report {report.id} is no longer Resolved")
    return TransitionOutcome(
        report=redact_pii(report),
        previous_status=report.status,
        changed=report.has_pii(),
    )


def remove_pii_from_resolved_reports(store: ReportStore, actor: Actor, apply: bool = True) -> PIIMigrationResult:
    """
    Strip PII from every Resolved report that still has any.

    With apply=False nothing is written; "updated" counts what would change.

    Raises:
        ForbiddenError: caller is not a superadmin
    """
    authorize(Action.MIGRATE, actor)

    resolved = store.list_reports_by_status(ReportStatus.RESOLVED)
    result = PIIMigrationResult(total=len(resolved))
    logger.info(f"📊 Found {len(resolved)} resolved reports")

    for report in resolved:
        if not report.has_pii():
            result.skipped += 1
            continue

        if not apply:
            result.updated += 1
            continue

        try:
            outcome = store.apply_transition(report.id, _redact_if_resolved)
        except WorkflowError as e:
            result.failed += 1
            logger.error(f"Report {report.id} - PII removal failed: {e.message}")
            continue

        if outcome.changed:
            result.updated += 1
            logger.info(f"🔒 Report {report.id} - PII removed")
        else:
            result.skipped += 1

    logger.info(
        f"✅ PII migration completed: {result.updated} updated, "
        f"{result.skipped} skipped, {result.failed} failed"
    )
    return result
