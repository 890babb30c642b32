import os

# Must be set before frontdesk.config is imported
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PAYMENT_WEBHOOK_SECRET"] = ""
os.environ["PAYMENT_FAILURE_POLICY"] = "keep"

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from frontdesk.config import settings
from frontdesk.db import Base, get_db
from frontdesk.main import app
from frontdesk.models import Guest, Room, RoomStatus, RoomType, User, UserRole
from frontdesk.repositories import SqlAlchemyBookingStore
from frontdesk.routers.bookings import get_today
from frontdesk.security import issue_session_token
from frontdesk.services.lifecycle import BookingLifecycleManager

TODAY = date(2024, 5, 20)


class Clock:
    """Callable stand-in for date.today that tests can move."""

    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return Clock(TODAY)


@pytest.fixture
def manager(db, clock):
    return BookingLifecycleManager(SqlAlchemyBookingStore(db), today=clock)


@pytest.fixture
def staff(db):
    user = User(email="frontdesk@hotel.local", full_name="Front Desk", role=UserRole.STAFF)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def double_type(db):
    room_type = RoomType(name="Double Room", base_price=Decimal("100.00"), max_occupancy=2)
    room_type.amenities = ["WiFi", "TV"]
    db.add(room_type)
    db.commit()
    return room_type


@pytest.fixture
def room(db, double_type):
    room = Room(room_number="101", room_type_id=double_type.id, floor=1, status=RoomStatus.AVAILABLE)
    db.add(room)
    db.commit()
    return room


@pytest.fixture
def other_room(db, double_type):
    room = Room(room_number="102", room_type_id=double_type.id, floor=1, status=RoomStatus.AVAILABLE)
    db.add(room)
    db.commit()
    return room


@pytest.fixture
def guest(db):
    guest = Guest(first_name="Ada", last_name="Lovelace", email="ada@example.com")
    db.add(guest)
    db.commit()
    return guest


@pytest.fixture
def client(session_factory, clock, staff):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_today] = lambda: clock
    test_client = TestClient(app)
    test_client.cookies.set(settings.SESSION_COOKIE_NAME, issue_session_token(staff.id))
    yield test_client
    app.dependency_overrides.clear()
