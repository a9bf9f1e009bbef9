import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("TIMEZONE", "UTC")

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pytest
from sqlalchemy.orm import sessionmaker

from app.config.settings import Settings
from app.core.events import EventBroadcaster, SubscriberChannel
from app.db.init_db import drop_db, init_db
from app.db.session import build_engine
from app.models.base.enums import AssignmentStatus, UserRole
from app.models.event.event import Assignment, Event
from app.models.user.user import User
from app.services.attendance import AttendanceQueryService, AttendanceRegistry
from app.services.base.notification_dispatcher import Notification, NotificationDispatcher
from app.services.common.permissions import Principal
from app.services.tracking import FraudSignalService, MovementIntegrityMonitor, TrackingService

EVENT_DAY = date(2026, 3, 10)
EVENT_CENTER = (36.8, 10.18)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def __call__(self) -> datetime:
        return self.instant

    def set(self, hour: int, minute: int = 0, day: date = EVENT_DAY) -> datetime:
        self.instant = datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)
        return self.instant

    def advance(self, **kwargs) -> datetime:
        self.instant = self.instant + timedelta(**kwargs)
        return self.instant


class RecordingChannel(SubscriberChannel):
    """In-memory channel capturing every pushed message."""

    def __init__(self, user_id: str, alive: bool = True):
        super().__init__(user_id)
        self.alive = alive
        self.messages: List[Dict[str, Any]] = []

    def push(self, message: Dict[str, Any]) -> bool:
        if not self.alive or self.closed:
            return False
        self.messages.append(message)
        return True

    def events(self) -> List[str]:
        return [m.get("event") for m in self.messages if m.get("type") == "sync"]

    def of(self, event: str) -> List[Dict[str, Any]]:
        return [m for m in self.messages if m.get("event") == event]


class RecordingDispatcher(NotificationDispatcher):
    def __init__(self):
        self.sent: List[Tuple[Notification, List[str]]] = []

    def send(self, notification: Notification, recipients: Iterable[str]) -> int:
        recipients = list(recipients)
        self.sent.append((notification, recipients))
        return len(recipients)

    def recipients_of(self, event: str) -> List[str]:
        return [r for n, rs in self.sent if n.event == event for r in rs]


class Seeder:
    """Creates users, events and assignments directly through the ORM."""

    def __init__(self, session):
        self.session = session

    def user(self, role: UserRole = UserRole.AGENT, first_name: str = "Test",
             last_name: str = "User", supervisor_id: Optional[str] = None) -> User:
        user = User(first_name=first_name, last_name=last_name, role=role, supervisor_id=supervisor_id)
        self.session.add(user)
        self.session.commit()
        return user

    def event(self, **overrides) -> Event:
        values = dict(
            name="Casablanca Expo",
            start_date=EVENT_DAY,
            check_in_time=time(9, 0),
            check_out_time=time(18, 0),
            latitude=EVENT_CENTER[0],
            longitude=EVENT_CENTER[1],
            geofence_radius=100,
        )
        values.update(overrides)
        event = Event(**values)
        self.session.add(event)
        self.session.commit()
        return event

    def assign(self, agent: User, event: Event, status: AssignmentStatus = AssignmentStatus.CONFIRMED) -> Assignment:
        assignment = Assignment(agent_id=agent.id, event_id=event.id, status=status)
        self.session.add(assignment)
        self.session.commit()
        return assignment


class World:
    """A supervisor, an admin, an assigned agent and one geofenced event."""

    def __init__(self, seed: Seeder):
        self.admin = seed.user(UserRole.ADMIN, "Amina", "Admin")
        self.supervisor = seed.user(UserRole.SUPERVISOR, "Samir", "Bennani")
        self.agent = seed.user(UserRole.AGENT, "Yassine", "Alaoui", supervisor_id=self.supervisor.id)
        self.other_agent = seed.user(UserRole.AGENT, "Karim", "Idrissi", supervisor_id=self.supervisor.id)
        self.event = seed.event(supervisor_id=self.supervisor.id)
        seed.assign(self.agent, self.event)
        seed.assign(self.other_agent, self.event)

    @property
    def admin_principal(self) -> Principal:
        return Principal(self.admin.id, UserRole.ADMIN)

    @property
    def supervisor_principal(self) -> Principal:
        return Principal(self.supervisor.id, UserRole.SUPERVISOR)

    @property
    def agent_principal(self) -> Principal:
        return Principal(self.agent.id, UserRole.AGENT)

    @property
    def other_agent_principal(self) -> Principal:
        return Principal(self.other_agent.id, UserRole.AGENT)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'attendance.db'}",
        ENVIRONMENT="testing",
        TIMEZONE="UTC",
        LOG_TO_FILE=False,
        LOG_FORMAT="console",
        JWT_SECRET_KEY="test-secret",
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings.DATABASE_URL)
    init_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 10, 9, 5, tzinfo=timezone.utc))


@pytest.fixture
def broadcaster() -> EventBroadcaster:
    return EventBroadcaster()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def seed(db) -> Seeder:
    return Seeder(db)


@pytest.fixture
def world(seed) -> World:
    return World(seed)


@pytest.fixture
def make_registry(db, broadcaster, dispatcher, settings, clock):
    def factory(session=None, identity_verifier=None) -> AttendanceRegistry:
        return AttendanceRegistry(
            session or db,
            broadcaster,
            notification_dispatcher=dispatcher,
            identity_verifier=identity_verifier,
            settings=settings,
            clock=clock,
        )
    return factory


@pytest.fixture
def registry(make_registry) -> AttendanceRegistry:
    return make_registry()


@pytest.fixture
def monitor(db, broadcaster, dispatcher, settings, clock) -> MovementIntegrityMonitor:
    return MovementIntegrityMonitor(db, broadcaster, dispatcher, settings=settings, clock=clock)


@pytest.fixture
def queries(db, settings, clock) -> AttendanceQueryService:
    return AttendanceQueryService(db, settings, clock)


@pytest.fixture
def tracking(db, broadcaster, dispatcher, settings, clock) -> TrackingService:
    return TrackingService(db, broadcaster, dispatcher, settings=settings, clock=clock)


@pytest.fixture
def fraud_signals(db, broadcaster, settings, clock) -> FraudSignalService:
    return FraudSignalService(db, broadcaster, settings, clock)


@pytest.fixture
def staff_channel(broadcaster, world) -> RecordingChannel:
    """Supervisor console subscribed to staff traffic and the event room."""
    channel = RecordingChannel(world.supervisor.id)
    broadcaster.connect(channel, ["role:supervisor", f"event:{world.event.id}"])
    return channel
