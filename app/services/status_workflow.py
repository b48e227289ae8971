"""
Status Workflow Engine - report resolution state machine.

DESIGN PRINCIPLES:
- Pending -> On Going -> Pending Confirmation -> Resolved
- Rejected confirmations go back to On Going; Resolved is terminal
- Entering Pending Confirmation redacts PII, permanently
- Points are awarded only by a transition INTO Resolved
- apply() is pure: no I/O, the caller persists the outcome atomically
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional
import logging

from pydantic import BaseModel

from app.core.errors import StateConflictError, ValidationError
from app.models.report import Report, ReportStatus
from app.models.user import Actor
from app.services.authorization import Action, authorize
from app.services.pii_redaction import redact_pii

logger = logging.getLogger(__name__)


class TransitionEvent(BaseModel):
    """Base class for everything that can move a report through the workflow."""
    note: Optional[str] = None


class SetStatus(TransitionEvent):
    """Status change requested through PUT /reports/{id}/status."""
    status: ReportStatus
    resolution_photo_url: Optional[str] = None


class Confirm(TransitionEvent):
    """Reporter accepts the proposed resolution."""


class Reject(TransitionEvent):
    """Reporter refuses the proposed resolution."""
    reason: Optional[str] = None


class AutoResolve(TransitionEvent):
    """Scheduler resolves a report nobody confirmed in time."""


class TransitionOutcome(BaseModel):
    """Result of applying one event to one report."""
    report: Report
    previous_status: ReportStatus
    changed: bool = True
    points_awarded: int = 0
    notify_reporter: bool = False


class StatusWorkflowEngine:
    """
    State machine for report status transitions.

    Rules:
    - Only the edges in ALLOWED_TRANSITIONS are ever taken
    - Re-sending the current status is a no-op, except that Pending
      Confirmation cannot be entered twice
    - All transitions are logged in status_history
    """

    ALLOWED_TRANSITIONS: Dict[ReportStatus, List[ReportStatus]] = {
        ReportStatus.PENDING: [ReportStatus.ON_GOING, ReportStatus.PENDING_CONFIRMATION],
        ReportStatus.ON_GOING: [ReportStatus.PENDING_CONFIRMATION],
        ReportStatus.PENDING_CONFIRMATION: [ReportStatus.RESOLVED, ReportStatus.ON_GOING],
        ReportStatus.RESOLVED: [],  # Terminal state
    }

    def __init__(self, resolution_points: int = 10, auto_resolve_after: timedelta = timedelta(days=3)):
        self.resolution_points = resolution_points
        self.auto_resolve_after = auto_resolve_after

    @classmethod
    def is_valid_transition(cls, from_status: str, to_status: str) -> bool:
        """
        Check if a status transition is an edge of the state graph.

        Invalid status strings are never valid.
        """
        try:
            from_enum = ReportStatus(from_status)
            to_enum = ReportStatus(to_status)
        except ValueError:
            return False

        return to_enum in cls.ALLOWED_TRANSITIONS.get(from_enum, [])

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> List[str]:
        try:
            current_enum = ReportStatus(current_status)
        except ValueError:
            return []
        return [status.value for status in cls.ALLOWED_TRANSITIONS.get(current_enum, [])]

    @classmethod
    def create_status_history_entry(
        cls,
        from_status: Optional[ReportStatus],
        to_status: ReportStatus,
        changed_by: str,
        timestamp: datetime,
        note: Optional[str] = None
    ) -> Dict:
        """
        Create a status history entry for audit trail.

        Timestamps are explicit values, Firestore rejects server
        timestamps inside arrays.
        """
        return {
            "from": from_status.value if from_status else "",
            "to": to_status.value,
            "changed_by": changed_by,
            "timestamp": timestamp,
            "note": note or ""
        }

    def apply(self, report: Report, event: TransitionEvent, actor: Actor, now: datetime) -> TransitionOutcome:
        """
        Apply one event to a report on behalf of an actor.

        Returns:
            TransitionOutcome with the new report and its side effects

        Raises:
            ValidationError: event is missing required input
            ForbiddenError: actor may not perform this transition
            StateConflictError: current status does not allow it
        """
        if isinstance(event, SetStatus):
            return self._apply_set_status(report, event, actor, now)
        if isinstance(event, Confirm):
            authorize(Action.CONFIRM, actor, report.reporter_id, report.user_location)
            self._require_status(report, ReportStatus.PENDING_CONFIRMATION, "confirm")
            return self._resolve(report, actor, now, event.note or "Resolution confirmed by reporter")
        if isinstance(event, Reject):
            return self._apply_reject(report, event, actor, now)
        if isinstance(event, AutoResolve):
            return self._apply_auto_resolve(report, event, actor, now)
        raise ValidationError(f"Unsupported workflow event: {type(event).__name__}")

    def _apply_set_status(self, report: Report, event: SetStatus, actor: Actor, now: datetime) -> TransitionOutcome:
        target = event.status

        if target == ReportStatus.PENDING_CONFIRMATION:
            authorize(Action.MARK_PENDING_CONFIRMATION, actor, report.reporter_id, report.user_location)
            if report.status == ReportStatus.PENDING_CONFIRMATION:
                raise StateConflictError("Report is already awaiting confirmation")
            self._require_edge(report.status, target)

            updates = {"pending_confirmation_since": now}
            if event.resolution_photo_url:
                updates["resolution_photo_url"] = event.resolution_photo_url
            pending = self._transition(redact_pii(report), target, actor, now, event.note, **updates)
            return TransitionOutcome(report=pending, previous_status=report.status, notify_reporter=True)

        if target == ReportStatus.RESOLVED:
            authorize(Action.ADMIN_RESOLVE, actor, report.reporter_id, report.user_location)
            if report.status == ReportStatus.RESOLVED:
                return self._unchanged(report)
            self._require_edge(report.status, target)
            return self._resolve(report, actor, now, event.note or "Resolved by admin")

        # Pending / On Going: admins or the owner
        authorize(Action.SET_ON_GOING, actor, report.reporter_id, report.user_location)
        if report.status == target:
            return self._unchanged(report)
        if target == ReportStatus.ON_GOING and report.status == ReportStatus.PENDING_CONFIRMATION:
            # Only the reporter's rejection reopens a proposed resolution
            raise StateConflictError("Report is awaiting the reporter's confirmation")
        self._require_edge(report.status, target)
        updated = self._transition(report, target, actor, now, event.note)
        return TransitionOutcome(report=updated, previous_status=report.status)

    def _apply_reject(self, report: Report, event: Reject, actor: Actor, now: datetime) -> TransitionOutcome:
        reason = (event.reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required to reject a resolution")

        authorize(Action.REJECT, actor, report.reporter_id, report.user_location)
        self._require_status(report, ReportStatus.PENDING_CONFIRMATION, "reject")

        updated = self._transition(
            report,
            ReportStatus.ON_GOING,
            actor,
            now,
            reason,
            rejection_reason=reason,
            pending_confirmation_since=None,
        )
        return TransitionOutcome(report=updated, previous_status=report.status)

    def _apply_auto_resolve(self, report: Report, event: AutoResolve, actor: Actor, now: datetime) -> TransitionOutcome:
        authorize(Action.AUTO_RESOLVE, actor, report.reporter_id, report.user_location)
        self._require_status(report, ReportStatus.PENDING_CONFIRMATION, "auto-resolve")

        since = report.pending_confirmation_since
        if since is None or since > now - self.auto_resolve_after:
            raise StateConflictError("Report has not waited long enough to be auto-resolved")

        return self._resolve(report, actor, now, event.note or "Auto-resolved: no response from reporter")

    def _resolve(self, report: Report, actor: Actor, now: datetime, note: str) -> TransitionOutcome:
        resolved = self._transition(
            report,
            ReportStatus.RESOLVED,
            actor,
            now,
            note,
            pending_confirmation_since=None,
        )
        return TransitionOutcome(
            report=resolved,
            previous_status=report.status,
            points_awarded=self.resolution_points,
        )

    def _transition(
        self,
        report: Report,
        to_status: ReportStatus,
        actor: Actor,
        now: datetime,
        note: Optional[str] = None,
        **updates
    ) -> Report:
        history = list(report.status_history)
        history.append(self.create_status_history_entry(
            from_status=report.status,
            to_status=to_status,
            changed_by=actor.id,
            timestamp=now,
            note=note
        ))
        logger.info(f"Report {report.id}: {report.status.value} -> {to_status.value} by {actor.id}")
        return report.model_copy(update={
            **updates,
            "status": to_status,
            "status_history": history,
            "updated_at": now,
        })

    def _require_edge(self, from_status: ReportStatus, to_status: ReportStatus) -> None:
        if not self.is_valid_transition(from_status, to_status):
            allowed = self.get_allowed_transitions(from_status)
            raise StateConflictError(
                f"Invalid status transition: {from_status.value} -> {to_status.value}. "
                f"Allowed transitions from {from_status.value}: {allowed}"
            )

    @staticmethod
    def _require_status(report: Report, expected: ReportStatus, verb: str) -> None:
        if report.status != expected:
            raise StateConflictError(
                f"Cannot {verb} report {report.id}: status is {report.status.value}, "
                f"expected {expected.value}"
            )

    @staticmethod
    def _unchanged(report: Report) -> TransitionOutcome:
        return TransitionOutcome(report=report, previous_status=report.status, changed=False)
