"""Shared test fixtures."""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.database import engine
from app.core.dependencies import get_booking_repository, get_engine_config, get_now
from app.main import app
from app.models.booking import BookingStatus
from app.services.booking_repository import InMemoryBookingRepository
from app.services.engine_config import EngineConfig
from app.services.snapshots import BookingSnapshot

# Monday 2 March 2026, 10:15 in the parish timezone.
# Earliest bookable wedding date is 2026-05-31, latest 2027-03-02.
NOW = datetime(2026, 3, 2, 10, 15, tzinfo=ZoneInfo("America/Sao_Paulo"))
TODAY = NOW.date()

WEDNESDAY = date(2026, 6, 10)
SATURDAY = date(2026, 6, 13)

LOCATIONS = {1: "Igreja Matriz São José", 2: "Capela Santo Antônio"}
CELEBRANTS = {1: "Pe. João Batista", 2: "Pe. Marcos Lima"}


@pytest.fixture(autouse=True)
async def _dispose_engine_pool():
    """Dispose stale engine pool connections before each test.

    The global engine is created at import time. When pytest-asyncio creates a new
    event loop for tests, any existing pooled connections are bound to the old loop
    and will fail with 'Future attached to a different loop'. Disposing before each
    test forces fresh connections in the current loop.
    """
    await engine.dispose()
    yield


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def repo():
    return InMemoryBookingRepository(locations=LOCATIONS, celebrants=CELEBRANTS)


@pytest.fixture
def make_booking(repo):
    """Factory that stores an existing booking in the in-memory repository."""
    counter = iter(range(1000, 2000))

    def _make(
        wedding_date: date = WEDNESDAY,
        start_time: time = time(14, 0),
        location_id: int = 1,
        celebrant_id: int = 1,
        bride_name: str = "",
        groom_name: str = "",
        status: BookingStatus = BookingStatus.ACTIVE,
    ) -> BookingSnapshot:
        booking_id = next(counter)
        booking = BookingSnapshot(
            id=booking_id,
            wedding_date=wedding_date,
            start_time=start_time,
            location_id=location_id,
            celebrant_id=celebrant_id,
            bride_name=bride_name or f"Bride {booking_id}",
            groom_name=groom_name or f"Groom {booking_id}",
            status=status,
            location_name=LOCATIONS.get(location_id),
            celebrant_name=CELEBRANTS.get(celebrant_id),
        )
        repo.put(booking)
        return booking

    return _make


@pytest.fixture
async def client(repo, config):
    """API client wired to the in-memory repository, default engine settings and a pinned clock."""
    app.dependency_overrides[get_booking_repository] = lambda: repo
    app.dependency_overrides[get_engine_config] = lambda: config
    app.dependency_overrides[get_now] = lambda: NOW
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
