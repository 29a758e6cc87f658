from __future__ import annotations

from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from booking_service import models  # noqa: F401  registers the bookings table
from booking_service.actors import Actor
from booking_service.catalog import ClubRecord, ServiceDefinition
from booking_service.clock import OperatingClock
from booking_service.db import Base
from booking_service.schemas import CreateBookingRequest
from booking_service.service import BookingService

TZ_NAME = "Asia/Kolkata"

# Sunday noon; the next day is a Monday
SUNDAY_NOON = (2030, 1, 6, 12, 0)
MONDAY = "2030-01-07"
TUESDAY = "2030-01-08"
SATURDAY = "2030-01-12"

WEEKDAYS = frozenset({"Mon", "Tue", "Wed", "Thu", "Fri"})


class FixedClock(OperatingClock):
    def __init__(self, now: datetime | None = None) -> None:
        super().__init__(TZ_NAME)
        self.current = now or datetime(*SUNDAY_NOON, tzinfo=self.tz)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class FakeCatalog:
    def __init__(self, *services: ServiceDefinition) -> None:
        self.services = {s.id: s for s in services}
        self.calls: list[str] = []

    async def get_service(self, service_id: str):
        self.calls.append(service_id)
        return self.services.get(service_id)


class FakeClubs:
    def __init__(self, *clubs: ClubRecord) -> None:
        self.clubs = {c.id: c for c in clubs}

    async def find_club(self, club_id: str):
        return self.clubs.get(club_id)


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[dict] = []

    def emit(self, event: dict) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[dict]:
        return [e for e in self.events if e["event_type"] == event_type]


def make_service(**overrides) -> ServiceDefinition:
    fields = dict(
        id="svc-1",
        club_id="club-1",
        name="Badminton Court 1",
        hourly_price=100.0,
        is_active=True,
        available_days=WEEKDAYS,
        opening_time="09:00",
        closing_time="17:00",
        slot_duration_minutes=60,
    )
    fields.update(overrides)
    return ServiceDefinition(**fields)


def booking_request(
    start: str = "09:00",
    end: str = "10:00",
    day: str = MONDAY,
    service_id: str = "svc-1",
    **extra,
) -> CreateBookingRequest:
    return CreateBookingRequest(
        service_id=service_id, booking_date=day, start_time=start, end_time=end, **extra
    )


CUSTOMER = Actor(id="cust-1", roles=("user",))
OTHER_CUSTOMER = Actor(id="cust-2", roles=("user",))
OWNER = Actor(id="owner-1", roles=("owner",))
OTHER_OWNER = Actor(id="owner-2", roles=("owner",))
ADMIN = Actor(id="admin-1", roles=("admin",))


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog(
        make_service(),
        make_service(id="svc-half", name="Table Tennis", hourly_price=80.0, slot_duration_minutes=30),
        make_service(id="svc-off", is_active=False),
        make_service(id="svc-orphan", club_id=None),
        make_service(id="svc-lost-club", club_id="club-missing"),
    )


@pytest.fixture
def clubs() -> FakeClubs:
    return FakeClubs(
        ClubRecord(id="club-1", owner_id="owner-1", name="Smash Club"),
        ClubRecord(id="club-2", owner_id="owner-2", name="Other Club"),
    )


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def service(db, catalog, clubs, sink, clock) -> BookingService:
    return BookingService(db, catalog=catalog, clubs=clubs, event_sink=sink, clock=clock)
