"""
Admin endpoints - maintenance operations restricted to superadmins.
"""

from fastapi import APIRouter, Depends, Query

from app.models.report import PIIMigrationResult
from app.models.user import Actor
from app.services.pii_migration import remove_pii_from_resolved_reports
from app.services.report_store import ReportStore, get_report_store
from app.utils.security import get_current_actor

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/migrations/remove-pii-from-resolved", response_model=PIIMigrationResult)
def remove_pii_from_resolved(
    dry_run: bool = Query(False, description="Count affected reports without writing"),
    actor: Actor = Depends(get_current_actor),
    store: ReportStore = Depends(get_report_store),
):
    """
    Strip PII from Resolved reports created before redaction at confirmation.

    Superadmin only. Safe to run repeatedly: clean reports are skipped.
    """
    return remove_pii_from_resolved_reports(store, actor, apply=not dry_run)
