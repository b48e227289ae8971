"""
Report Store - persistence for reports and the users they credit.

Two implementations share the ReportStore contract:
- FirestoreReportStore: production, conditional writes inside Firestore transactions
- InMemoryReportStore (app.config.mock_firestore): USE_MOCK_DB mode and tests

apply_transition() is the only way a report's status changes. It reads the
current document, hands it to the workflow, then writes the report and any
point award as one atomic unit. A concurrent writer either commits first
(and the loser sees the new status) or forces a retry.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional
import logging

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPICallError

from app.config.firebase import get_db
from app.core.errors import NotFoundError, PersistenceError, WorkflowError
from app.core.settings import settings
from app.models.report import Report, ReportStatus
from app.models.user import UserProfile
from app.services.status_workflow import TransitionOutcome
from app.utils.firestore_helpers import where_filter

logger = logging.getLogger(__name__)

REPORTS_COLLECTION = "reports"
USERS_COLLECTION = "users"

Mutation = Callable[[Report], TransitionOutcome]


class ReportStore(ABC):
    """Persistence contract consumed by the workflow service and the scheduler."""

    @abstractmethod
    def new_report_id(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def create_report(self, report: Report) -> Report:
        raise NotImplementedError

    @abstractmethod
    def get_report(self, report_id: str) -> Optional[Report]:
        raise NotImplementedError

    @abstractmethod
    def list_reports(self, reporter_id: Optional[str] = None, user_location: Optional[str] = None) -> List[Report]:
        """Reports matching every given filter, newest first."""
        raise NotImplementedError

    @abstractmethod
    def list_reports_by_status(self, status: ReportStatus) -> List[Report]:
        raise NotImplementedError

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserProfile]:
        raise NotImplementedError

    @abstractmethod
    def save_user(self, user: UserProfile) -> UserProfile:
        raise NotImplementedError

    @abstractmethod
    def apply_transition(self, report_id: str, mutate: Mutation) -> TransitionOutcome:
        """
        Atomically read a report, compute its next state and commit it.

        mutate may raise a WorkflowError to abort without writing. When the
        outcome carries points_awarded, the reporter's points are incremented
        in the same commit.
        """
        raise NotImplementedError

    def find_stale_pending_confirmations(self, cutoff: datetime) -> List[Report]:
        """Reports awaiting confirmation since at or before cutoff."""
        return [
            report for report in self.list_reports_by_status(ReportStatus.PENDING_CONFIRMATION)
            if report.pending_confirmation_since is not None and report.pending_confirmation_since <= cutoff
        ]


def _sort_newest_first(reports: List[Report]) -> List[Report]:
    return sorted(reports, key=lambda r: r.created_at.timestamp() if r.created_at else 0.0, reverse=True)


class FirestoreReportStore(ReportStore):
    """Firestore-backed store using the firebase_admin client."""

    def __init__(self, db=None):
        self.db = db or get_db()

    def _reports(self):
        return self.db.collection(REPORTS_COLLECTION)

    def _users(self):
        return self.db.collection(USERS_COLLECTION)

    def new_report_id(self) -> str:
        return self._reports().document().id

    def create_report(self, report: Report) -> Report:
        try:
            self._reports().document(report.id).set(report.to_document())
        except GoogleAPICallError as e:
            logger.error(f"Failed to save report to Firestore: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save report: {e}")
        logger.info(f"Report saved to Firestore: {report.id}")
        return report

    def get_report(self, report_id: str) -> Optional[Report]:
        try:
            doc = self._reports().document(report_id).get()
        except GoogleAPICallError as e:
            raise PersistenceError(f"Failed to load report {report_id}: {e}")
        if not doc.exists:
            return None
        return Report.from_document(doc.id, doc.to_dict())

    def list_reports(self, reporter_id: Optional[str] = None, user_location: Optional[str] = None) -> List[Report]:
        query = self._reports()
        if reporter_id:
            query = where_filter(query, "reporter_id", "==", reporter_id)
        if user_location:
            query = where_filter(query, "user_location", "==", user_location)
        return _sort_newest_first(self._stream(query))

    def list_reports_by_status(self, status: ReportStatus) -> List[Report]:
        return self._stream(where_filter(self._reports(), "status", "==", status.value))

    def _stream(self, query) -> List[Report]:
        try:
            return [Report.from_document(doc.id, doc.to_dict()) for doc in query.stream()]
        except GoogleAPICallError as e:
            logger.error(f"Report query failed: {e}", exc_info=True)
            raise PersistenceError(f"Failed to query reports: {e}")

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        try:
            doc = self._users().document(user_id).get()
        except GoogleAPICallError as e:
            raise PersistenceError(f"Failed to load user {user_id}: {e}")
        if not doc.exists:
            return None
        return UserProfile(**{**doc.to_dict(), "id": doc.id})

    def save_user(self, user: UserProfile) -> UserProfile:
        try:
            self._users().document(user.id).set(user.model_dump(exclude={"id"}, mode="json"))
        except GoogleAPICallError as e:
            raise PersistenceError(f"Failed to save user {user.id}: {e}")
        return user

    def apply_transition(self, report_id: str, mutate: Mutation) -> TransitionOutcome:
        report_ref = self._reports().document(report_id)

        @firestore.transactional
        def run(transaction):
            # Firestore transactions require every read before the first write
            snapshot = report_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError(f"Report {report_id} not found")
            current = Report.from_document(snapshot.id, snapshot.to_dict())

            outcome = mutate(current)
            if not outcome.changed:
                return outcome
            if outcome.report.reporter_id != current.reporter_id:
                raise PersistenceError(f"Refusing to change the owner of report {report_id}")

            user_ref = None
            if outcome.points_awarded:
                user_ref = self._users().document(current.reporter_id)
                if not user_ref.get(transaction=transaction).exists:
                    logger.warning(f"Reporter {current.reporter_id} of report {report_id} not found, no points credited")
                    user_ref = None

            transaction.set(report_ref, outcome.report.to_document())
            if user_ref is not None:
                transaction.update(user_ref, {"points": firestore.Increment(outcome.points_awarded)})
            return outcome

        try:
            return run(self.db.transaction())
        except WorkflowError:
            raise
        except (GoogleAPICallError, ValueError) as e:
            # ValueError: transaction retries exhausted by concurrent writers
            logger.error(f"Transaction on report {report_id} failed: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update report {report_id}: {e}")


_report_store: Optional[ReportStore] = None


def get_report_store() -> ReportStore:
    """
    Get or create the ReportStore singleton for the configured backend.
    """
    global _report_store
    if _report_store is None:
        if settings.USE_MOCK_DB:
            from app.config.mock_firestore import InMemoryReportStore
            _report_store = InMemoryReportStore(snapshot_path=settings.MOCK_DB_PATH)
            logger.info("[STORE] USING IN-MEMORY REPORT STORE")
        else:
            _report_store = FirestoreReportStore()
    return _report_store
