"""
In-memory stand-in for Firestore, used when USE_MOCK_DB=true and by the tests.

All mutations of reports and users run under one re-entrant lock, which gives
apply_transition the same all-or-nothing behaviour a Firestore transaction has.
When a snapshot path is configured the whole store is written to JSON on
every change, before the change becomes visible, and reloaded on start.
"""

from typing import Dict, List, Optional
import json
import logging
import os
import threading
import uuid

from app.core.errors import NotFoundError, PersistenceError
from app.models.report import Report, ReportStatus
from app.models.user import UserProfile
from app.services.report_store import Mutation, ReportStore, _sort_newest_first
from app.services.status_workflow import TransitionOutcome

logger = logging.getLogger(__name__)


class InMemoryReportStore(ReportStore):

    def __init__(self, snapshot_path: Optional[str] = None):
        self._lock = threading.RLock()
        self._reports: Dict[str, Report] = {}
        self._users: Dict[str, UserProfile] = {}
        self.snapshot_path = snapshot_path
        if snapshot_path and os.path.exists(snapshot_path):
            self._load()

    def new_report_id(self) -> str:
        return uuid.uuid4().hex[:20]

    def create_report(self, report: Report) -> Report:
        with self._lock:
            self._commit({**self._reports, report.id: report}, self._users)
        logger.info(f"Report saved to mock store: {report.id}")
        return report

    def get_report(self, report_id: str) -> Optional[Report]:
        with self._lock:
            return self._reports.get(report_id)

    def list_reports(self, reporter_id: Optional[str] = None, user_location: Optional[str] = None) -> List[Report]:
        with self._lock:
            reports = list(self._reports.values())
        if reporter_id:
            reports = [r for r in reports if r.reporter_id == reporter_id]
        if user_location:
            reports = [r for r in reports if r.user_location == user_location]
        return _sort_newest_first(reports)

    def list_reports_by_status(self, status: ReportStatus) -> List[Report]:
        with self._lock:
            return [r for r in self._reports.values() if r.status == status]

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            return self._users.get(user_id)

    def save_user(self, user: UserProfile) -> UserProfile:
        with self._lock:
            self._commit(self._reports, {**self._users, user.id: user})
        return user

    def apply_transition(self, report_id: str, mutate: Mutation) -> TransitionOutcome:
        with self._lock:
            current = self._reports.get(report_id)
            if current is None:
                raise NotFoundError(f"Report {report_id} not found")

            outcome = mutate(current)
            if not outcome.changed:
                return outcome
            if outcome.report.reporter_id != current.reporter_id:
                raise PersistenceError(f"Refusing to change the owner of report {report_id}")

            reports = {**self._reports, report_id: outcome.report}
            users = self._users
            if outcome.points_awarded:
                user = self._users.get(current.reporter_id)
                if user is None:
                    logger.warning(f"Reporter {current.reporter_id} of report {report_id} not found, no points credited")
                else:
                    credited = user.model_copy(update={"points": user.points + outcome.points_awarded})
                    users = {**self._users, user.id: credited}
            self._commit(reports, users)
            return outcome

    def _commit(self, reports: Dict[str, Report], users: Dict[str, UserProfile]) -> None:
        """Persist the new state, then publish it. A failed write changes nothing."""
        self._persist(reports, users)
        self._reports = reports
        self._users = users

    def _persist(self, reports: Dict[str, Report], users: Dict[str, UserProfile]) -> None:
        if not self.snapshot_path:
            return
        snapshot = {
            "reports": {rid: r.model_dump(mode="json") for rid, r in reports.items()},
            "users": {uid: u.model_dump(mode="json") for uid, u in users.items()},
        }
        try:
            with open(self.snapshot_path, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
        except OSError as e:
            raise PersistenceError(f"Failed to write mock DB snapshot: {e}")

    def _load(self) -> None:
        with open(self.snapshot_path, "r", encoding="utf-8") as f:
            snapshot = json.load(f)
        self._reports = {rid: Report(**data) for rid, data in snapshot.get("reports", {}).items()}
        self._users = {uid: UserProfile(**data) for uid, data in snapshot.get("users", {}).items()}
        logger.info(
            f"[MOCK DB] Loaded {len(self._reports)} reports and {len(self._users)} users "
            f"from {self.snapshot_path}"
        )


def seed_users(store: ReportStore, users: List[Dict]) -> None:
    """Insert user profiles (dicts with an "id" key) into a store."""
    for data in users:
        store.save_user(UserProfile(**data))
