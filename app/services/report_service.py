"""
Report service - business logic for the report resolution workflow.

DESIGN NOTE:
- Every status change goes through StatusWorkflowEngine.apply() inside
  ReportStore.apply_transition(), so the precondition check, PII redaction
  and point award commit together or not at all
- The reporter is notified only after the transition committed, and a
  notification failure never turns a committed transition into an error
- Reads are filtered by the caller's visibility scope
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional
import logging

from app.core.errors import ForbiddenError, NotFoundError, ValidationError, WorkflowError
from app.core.settings import settings
from app.models.report import Report, ReportCreate, ReportStatus
from app.models.user import Actor, Role
from app.services.authorization import Action, authorize, visibility_scope
from app.services.notifications import NotificationDispatcher, Recipient, get_notification_dispatcher
from app.services.pii_redaction import build_display_name
from app.services.report_store import ReportStore, get_report_store
from app.services.storage import PhotoUpload, delete_photo
from app.services.status_workflow import (
    AutoResolve,
    Confirm,
    Reject,
    SetStatus,
    StatusWorkflowEngine,
    TransitionEvent,
    TransitionOutcome,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReportWorkflowService:
    """
    Entry point for every report operation exposed over HTTP and used by the
    auto-resolve job.
    """

    def __init__(
        self,
        store: ReportStore,
        engine: Optional[StatusWorkflowEngine] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.store = store
        self.engine = engine or StatusWorkflowEngine(
            resolution_points=settings.RESOLUTION_POINTS,
            auto_resolve_after=timedelta(days=settings.AUTO_RESOLVE_AFTER_DAYS),
        )
        self.dispatcher = dispatcher or get_notification_dispatcher()
        self.clock = clock

    def create_report(
        self,
        actor: Actor,
        data: ReportCreate,
        photo_url: Optional[str] = None,
        photo: Optional[PhotoUpload] = None
    ) -> Report:
        """
        Store a new Pending report owned by the caller.

        The evidence is either an already stored photo_url or an in-memory
        upload, which is only stored once the caller has been accepted.
        user_location defaults to the reporter's profile location when the
        request does not supply one.

        Raises:
            ValidationError: no photo, or not an image
            ForbiddenError: deactivated or internal actor
        """
        if not photo_url and (photo is None or not photo.content):
            raise ValidationError("Photo is required")
        if not actor.is_active or actor.role == Role.SYSTEM:
            raise ForbiddenError("This account cannot submit reports")

        user_location = data.user_location
        if not user_location:
            profile = self.store.get_user(actor.id)
            user_location = profile.location if profile else actor.location

        uploaded_url = None
        if not photo_url:
            photo_url = uploaded_url = photo.save(prefix="report")

        try:
            return self._insert_report(actor, data, photo_url, user_location)
        except Exception:
            delete_photo(uploaded_url)
            raise

    def _insert_report(self, actor: Actor, data: ReportCreate, photo_url: str, user_location: Optional[str]) -> Report:
        now = self.clock()
        report = Report(
            id=self.store.new_report_id(),
            reporter_id=actor.id,
            status=ReportStatus.PENDING,
            first_name=data.first_name,
            middle_name=data.middle_name,
            last_name=data.last_name,
            name=data.name,
            display_name=build_display_name(data.first_name, data.middle_name, data.last_name, data.name),
            contact=data.contact,
            description=data.description,
            display_location=data.display_location,
            user_location=user_location,
            landmark=data.landmark,
            latitude=data.latitude,
            longitude=data.longitude,
            photo_url=photo_url,
            status_history=[self.engine.create_status_history_entry(
                from_status=None,
                to_status=ReportStatus.PENDING,
                changed_by=actor.id,
                timestamp=now,
                note="Report created"
            )],
            created_at=now,
            updated_at=now,
        )
        self.store.create_report(report)
        logger.info(f"✅ Report {report.id} created by {actor.id} (user_location={user_location})")
        return report

    def list_reports(self, actor: Actor) -> List[Report]:
        scope = visibility_scope(actor)
        reports = self.store.list_reports(reporter_id=scope.reporter_id, user_location=scope.user_location)
        logger.info(f"Listed {len(reports)} reports for {actor.id} (role={actor.role.value})")
        return reports

    def get_report(self, actor: Actor, report_id: str) -> Report:
        report = self.store.get_report(report_id)
        if report is None:
            raise NotFoundError(f"Report {report_id} not found")
        authorize(Action.VIEW, actor, report.reporter_id, report.user_location)
        return report

    def update_status(
        self,
        actor: Actor,
        report_id: str,
        status: str,
        resolution_photo_url: Optional[str] = None,
        note: Optional[str] = None,
        resolution_photo: Optional[PhotoUpload] = None
    ) -> Report:
        """
        Move a report to another status.

        A resolution_photo upload is only stored for a move to Pending
        Confirmation that the workflow has accepted; any other update ignores it.
        """
        try:
            target = ReportStatus(status)
        except ValueError:
            allowed = [s.value for s in ReportStatus]
            raise ValidationError(f"Invalid status value: {status!r}. Expected one of {allowed}")

        event = SetStatus(status=target, resolution_photo_url=resolution_photo_url, note=note)
        if resolution_photo is None or not resolution_photo.content:
            return self._run(report_id, event, actor).report
        if target != ReportStatus.PENDING_CONFIRMATION:
            logger.info(f"Ignoring resolution photo on {target.value} update of report {report_id}")
            return self._run(report_id, event, actor).report
        return self._run_with_photo(report_id, event, actor, resolution_photo).report

    def _run_with_photo(
        self,
        report_id: str,
        event: SetStatus,
        actor: Actor,
        photo: PhotoUpload
    ) -> TransitionOutcome:
        current = self.store.get_report(report_id)
        if current is None:
            raise NotFoundError(f"Report {report_id} not found")
        # Dry run against the current state; apply() writes nothing
        self.engine.apply(current, event, actor, self.clock())

        url = photo.save(prefix="resolution")
        try:
            return self._run(report_id, event.model_copy(update={"resolution_photo_url": url}), actor)
        except Exception:
            # Lost a race after the dry run; the photo belongs to nothing
            delete_photo(url)
            raise

    def confirm_resolution(self, actor: Actor, report_id: str) -> Report:
        return self._run(report_id, Confirm(), actor).report

    def reject_resolution(self, actor: Actor, report_id: str, reason: Optional[str]) -> Report:
        return self._run(report_id, Reject(reason=reason), actor).report

    def auto_resolve(self, report_id: str, actor: Actor) -> TransitionOutcome:
        """Force-resolve one stale report. Used by the auto-resolve job."""
        return self._run(report_id, AutoResolve(), actor)

    def _run(self, report_id: str, event: TransitionEvent, actor: Actor) -> TransitionOutcome:
        now = self.clock()
        outcome = self.store.apply_transition(
            report_id,
            lambda current: self.engine.apply(current, event, actor, now)
        )

        if outcome.points_awarded:
            logger.info(
                f"🎉 Report {report_id} resolved; {outcome.points_awarded} points "
                f"credited to {outcome.report.reporter_id}"
            )
        if outcome.notify_reporter:
            self._notify_reporter(outcome.report)
        return outcome

    def _notify_reporter(self, report: Report) -> None:
        """Best-effort; the transition has already committed."""
        try:
            profile = self.store.get_user(report.reporter_id)
            recipient = Recipient(
                user_id=report.reporter_id,
                email=profile.email if profile else None,
                phone=profile.contact_number if profile else None,
                display_name=profile.first_name if profile else None,
            )
            self.dispatcher.notify_resolution_pending(recipient, report)
        except WorkflowError as e:
            logger.warning(f"⚠️ Could not notify reporter of report {report.id}: {e.message}")
        except Exception as e:
            logger.warning(f"⚠️ Could not notify reporter of report {report.id}: {e}", exc_info=True)


# Global service instance (singleton pattern)
_report_service: Optional[ReportWorkflowService] = None


def get_report_service() -> ReportWorkflowService:
    """
    Get or create ReportWorkflowService singleton instance.
    """
    global _report_service
    if _report_service is None:
        _report_service = ReportWorkflowService(store=get_report_store())
    return _report_service
