"""
Pytest configuration and fixtures for Frontdesk tests.

Every test gets a fresh SQLite in-memory database. The API client never runs
the application lifespan: the session factory, dispatcher and an inline
notification queue are placed on app.state directly.
"""

from datetime import date, time, timedelta
from typing import Generator, Optional

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from frontdesk.auth import create_access_token
from frontdesk.database import Base, create_db_engine, create_session_factory
from frontdesk.domain.notifications.dispatcher import NotificationDispatcher
from frontdesk.domain.notifications.queue import InlineQueue
from frontdesk.exceptions import ChannelUnavailable
from frontdesk.models import (
    AvailabilitySchedule,
    Form,
    Integration,
    ServiceType,
    Workspace,
    WorkspaceStaff,
)

OWNER_ID = "owner-1"
STAFF_ID = "staff-1"
STRANGER_ID = "stranger-1"


def next_weekday(weekday: int, start: Optional[date] = None) -> date:
    """Next date strictly after `start` whose Python weekday() is `weekday` (Monday = 0)"""
    start = start or date.today()
    days_ahead = (weekday - start.weekday()) % 7 or 7
    return start + timedelta(days=days_ahead)


class FakeChannel:
    """Channel stand-in that records sends and can be told to fail"""

    def __init__(self, name: str, error: Optional[Exception] = None):
        self.name = name
        self.error = error
        self.sent = []

    async def send(self, settings, event) -> str:
        self.sent.append((settings, event))
        if self.error is not None:
            raise self.error
        return f"{self.name}-{len(self.sent)}"


# ============================================================================
# DATABASE
# ============================================================================


@pytest.fixture
def test_engine():
    engine = create_db_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return create_session_factory(test_engine)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# SEED DATA
# ============================================================================


def make_workspace(db: Session, **overrides) -> Workspace:
    data = {
        "owner_id": OWNER_ID,
        "business_name": "Bright Smiles Dental",
        "address": "12 High Street",
        "timezone": "UTC",
        "contact_email": "hello@brightsmiles.test",
        "is_active": True,
    }
    data.update(overrides)
    workspace = Workspace(**data)
    db.add(workspace)
    db.commit()
    return workspace


def make_service_type(db: Session, workspace: Workspace, **overrides) -> ServiceType:
    data = {"name": "Consultation", "duration_minutes": 30, "location": "Room 2", "is_active": True}
    data.update(overrides)
    service_type = ServiceType(workspace_id=workspace.id, **data)
    db.add(service_type)
    db.commit()
    return service_type


def make_schedule(
    db: Session, workspace: Workspace, day_of_week: int = 1, start=time(9, 0), end=time(10, 0), is_active=True
) -> AvailabilitySchedule:
    schedule = AvailabilitySchedule(
        workspace_id=workspace.id,
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        is_active=is_active,
    )
    db.add(schedule)
    db.commit()
    return schedule


def make_integration(db: Session, workspace: Workspace, type: str, provider: str, **overrides) -> Integration:
    data = {"config": {}, "is_active": True}
    data.update(overrides)
    integration = Integration(workspace_id=workspace.id, type=type, provider=provider, **data)
    db.add(integration)
    db.commit()
    return integration


def make_form(db: Session, workspace: Workspace, **overrides) -> Form:
    data = {"name": "Intake Form", "form_fields": [{"name": "allergies", "type": "text"}], "is_active": True}
    data.update(overrides)
    form = Form(workspace_id=workspace.id, **data)
    db.add(form)
    db.commit()
    return form


@pytest.fixture
def workspace(db) -> Workspace:
    return make_workspace(db)


@pytest.fixture
def service_type(db, workspace) -> ServiceType:
    return make_service_type(db, workspace)


@pytest.fixture
def monday_schedule(db, workspace) -> AvailabilitySchedule:
    # Sunday = 0, so Monday = 1
    return make_schedule(db, workspace, day_of_week=1)


@pytest.fixture
def staff_member(db, workspace) -> WorkspaceStaff:
    staff = WorkspaceStaff(workspace_id=workspace.id, user_id=STAFF_ID)
    db.add(staff)
    db.commit()
    return staff


@pytest.fixture
def next_monday() -> date:
    return next_weekday(0)


# ============================================================================
# NOTIFICATIONS
# ============================================================================


@pytest.fixture
def email_channel() -> FakeChannel:
    return FakeChannel("email")


@pytest.fixture
def sms_channel() -> FakeChannel:
    return FakeChannel("sms")


@pytest.fixture
def dispatcher(session_factory, email_channel, sms_channel) -> NotificationDispatcher:
    return NotificationDispatcher(session_factory, email_channel=email_channel, sms_channel=sms_channel)


@pytest.fixture
def notification_queue(dispatcher) -> InlineQueue:
    return InlineQueue(dispatcher)


@pytest.fixture
def unavailable_error() -> ChannelUnavailable:
    return ChannelUnavailable("Twilio integration is missing credentials")


# ============================================================================
# API
# ============================================================================


@pytest.fixture
def api_client(session_factory, dispatcher, notification_queue):
    """TestClient with state overrides; the lifespan is not entered"""
    from fastapi.testclient import TestClient

    from frontdesk.main import app

    app.state.session_factory = session_factory
    app.state.dispatcher = dispatcher
    app.state.notification_queue = notification_queue
    app.state.arq_pool = None

    client = TestClient(app)
    yield client

    for attr in ("session_factory", "dispatcher", "notification_queue", "arq_pool"):
        if hasattr(app.state, attr):
            delattr(app.state, attr)


def auth_headers(user_id: str = OWNER_ID) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}
