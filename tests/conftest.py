import os
import tempfile

# Settings are read at import time; keep the suite off Firestore and the network
os.environ.setdefault("USE_MOCK_DB", "true")
os.environ.setdefault("AUTO_RESOLVE_ENABLED", "false")
os.environ.setdefault("FIREBASE_STORAGE_BUCKET", "")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="ecocheck-uploads-"))

from datetime import datetime, timedelta, timezone

import pytest

from app.config.mock_firestore import InMemoryReportStore, seed_users
from app.core.errors import NotifierError
from app.models.report import Report, ReportCreate
from app.models.user import Actor, Role
from app.services.notifications import DeliveryResult, NotificationDispatcher, NotificationProvider
from app.services.report_service import ReportWorkflowService
from app.services.status_workflow import StatusWorkflowEngine

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
PHOTO_URL = "https://cdn.example.com/uploads/report-1.jpg"

USERS = [
    {"id": "reporter", "first_name": "Maria", "last_name": "Santos", "email": "maria@example.com",
     "contact_number": "09171234567", "role": "user", "location": "Marikina"},
    {"id": "neighbor", "first_name": "Jose", "last_name": "Rizal", "role": "user", "location": "Marikina"},
    {"id": "pasig-reporter", "first_name": "Ana", "role": "user", "location": "Pasig"},
    {"id": "admin-marikina", "role": "admin", "location": "Marikina"},
    {"id": "admin-pasig", "role": "admin", "location": "Pasig"},
    {"id": "admin-nowhere", "role": "admin", "location": None},
    {"id": "root", "role": "superadmin"},
    {"id": "retired", "role": "user", "location": "Marikina", "is_active": False},
]


class FrozenClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class RecordingProvider(NotificationProvider):
    """Captures notifications instead of sending them; can be told to fail."""

    name = "recording"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def is_enabled(self, recipient) -> bool:
        return True

    def send_resolution_pending(self, recipient, report) -> DeliveryResult:
        self.sent.append((recipient, report))
        if self.fail:
            raise NotifierError("smtp relay unreachable")
        return DeliveryResult(provider=self.name, delivered=True, message_id=f"msg-{len(self.sent)}")


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store():
    store = InMemoryReportStore()
    seed_users(store, USERS)
    return store


@pytest.fixture
def notifier():
    return RecordingProvider()


@pytest.fixture
def service(store, notifier, clock):
    return ReportWorkflowService(
        store=store,
        engine=StatusWorkflowEngine(resolution_points=10, auto_resolve_after=timedelta(days=3)),
        dispatcher=NotificationDispatcher([notifier]),
        clock=clock,
    )


@pytest.fixture
def actor(store):
    def _actor(user_id: str) -> Actor:
        return store.get_user(user_id).to_actor()
    return _actor


@pytest.fixture
def make_report(service, actor):
    def _make(owner: str = "reporter", **fields) -> Report:
        data = {
            "first_name": "Maria",
            "middle_name": "L",
            "last_name": "Santos",
            "contact": "09171234567",
            "description": "Garbage piling up beside the creek",
            "display_location": "Brgy. San Roque, Marikina",
            "landmark": "Basketball court",
            "latitude": 14.6507,
            "longitude": 121.1029,
        }
        data.update(fields)
        return service.create_report(actor(owner), ReportCreate(**data), PHOTO_URL)
    return _make


def sample_report(**fields) -> Report:
    data = {
        "id": "r1",
        "reporter_id": "reporter",
        "first_name": "Maria",
        "middle_name": "L",
        "last_name": "Santos",
        "display_name": "Maria L Santos",
        "contact": "09171234567",
        "description": "Burning trash near the school",
        "display_location": "Concepcion Uno, Marikina",
        "user_location": "Marikina",
        "photo_url": PHOTO_URL,
        "created_at": START,
    }
    data.update(fields)
    return Report(**data)


REPORTER = Actor(id="reporter", role=Role.USER, location="Marikina")
NEIGHBOR = Actor(id="neighbor", role=Role.USER, location="Marikina")
ADMIN = Actor(id="admin-marikina", role=Role.ADMIN, location="Marikina")
OTHER_ADMIN = Actor(id="admin-pasig", role=Role.ADMIN, location="Pasig")
SUPERADMIN = Actor(id="root", role=Role.SUPERADMIN)
