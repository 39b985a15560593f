"""PostgreSQL integration tests: SQL repository, locked save path, DB-backed routes.

Skipped when the database at PB_DATABASE_URL is unreachable.
"""

import asyncio
import uuid
from datetime import time

import pytest
from conftest import NOW, SATURDAY, TODAY, WEDNESDAY
from httpx import ASGITransport, AsyncClient
from sqlalchemy import delete, select
from sqlalchemy.exc import DBAPIError

from app.core.database import async_session_factory, engine
from app.core.dependencies import get_engine_config, get_now
from app.main import app
from app.models import Base, Celebrant, Location, SettingType, SystemSetting, WeddingBooking
from app.services.booking_repository import SqlBookingRepository
from app.services.booking_service import BookingRejected, save_booking
from app.services.engine_config import EngineConfig, load_engine_config
from app.services.snapshots import BookingCandidate, BookingSnapshot, ResourceType


@pytest.fixture
async def parish():
    """A fresh location and celebrant for each test. Cleans their bookings afterwards."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except (OSError, TimeoutError, DBAPIError) as exc:
        pytest.skip(f"PostgreSQL unavailable: {exc}")

    suffix = uuid.uuid4().hex[:8]
    async with async_session_factory() as db:
        location = Location(name=f"Capela Teste {suffix}")
        celebrant = Celebrant(full_name=f"Pe. Teste {suffix}")
        db.add_all([location, celebrant])
        await db.commit()
        ids = {"location_id": location.id, "celebrant_id": celebrant.id, "suffix": suffix}

    yield ids

    async with async_session_factory() as db:
        await db.execute(delete(WeddingBooking).where(WeddingBooking.location_id == ids["location_id"]))
        await db.execute(delete(WeddingBooking).where(WeddingBooking.celebrant_id == ids["celebrant_id"]))
        await db.execute(delete(Location).where(Location.id == ids["location_id"]))
        await db.execute(delete(Celebrant).where(Celebrant.id == ids["celebrant_id"]))
        await db.commit()


def _candidate(parish, **overrides) -> BookingCandidate:
    fields = {
        "wedding_date": WEDNESDAY,
        "start_time": time(14, 0),
        "location_id": parish["location_id"],
        "celebrant_id": parish["celebrant_id"],
        "bride_name": f"Noiva {parish['suffix']}",
        "groom_name": f"Noivo {parish['suffix']}",
    }
    fields.update(overrides)
    return BookingCandidate(**fields)


async def _save_in_own_transaction(candidate: BookingCandidate) -> BookingSnapshot:
    async with async_session_factory() as db, db.begin():
        return await save_booking(SqlBookingRepository(db), candidate, NOW, EngineConfig())


@pytest.mark.asyncio
async def test_sql_repository_queries(parish):
    saved = await _save_in_own_transaction(_candidate(parish))
    assert saved.location_name == f"Capela Teste {parish['suffix']}"

    async with async_session_factory() as db:
        repo = SqlBookingRepository(db)
        found = await repo.find_active_bookings(WEDNESDAY, location_id=parish["location_id"])
        assert [b.id for b in found] == [saved.id]
        assert await repo.find_active_bookings(WEDNESDAY, location_id=parish["location_id"], exclude_id=saved.id) == []
        assert await repo.count_active_bookings(WEDNESDAY, celebrant_id=parish["celebrant_id"]) == 1

        by_name = await repo.find_active_bookings_for_person(f"  noiva {parish['suffix'].upper()} ", TODAY)
        assert [b.id for b in by_name] == [saved.id]

        assert await repo.resource_exists(ResourceType.LOCATION, parish["location_id"])
        assert not await repo.resource_exists(ResourceType.CELEBRANT, -1)


@pytest.mark.asyncio
async def test_concurrent_saves_same_slot_yield_one_booking(parish):
    a = _candidate(parish, bride_name=f"Ana {parish['suffix']}", groom_name=f"Bruno {parish['suffix']}")
    b = _candidate(
        parish, start_time=time(14, 30), bride_name=f"Carla {parish['suffix']}", groom_name=f"Diego {parish['suffix']}"
    )

    results = await asyncio.gather(_save_in_own_transaction(a), _save_in_own_transaction(b), return_exceptions=True)

    assert len([r for r in results if isinstance(r, BookingSnapshot)]) == 1
    assert len([r for r in results if isinstance(r, BookingRejected)]) == 1
    async with async_session_factory() as db:
        rows = await db.execute(select(WeddingBooking).where(WeddingBooking.location_id == parish["location_id"]))
        assert len(rows.scalars().all()) == 1


@pytest.mark.asyncio
async def test_load_engine_config_from_settings_table(parish):
    async with async_session_factory() as db:
        await db.merge(SystemSetting(key="ceremony_duration_minutes", value="75", value_type=SettingType.INTEGER))
        await db.merge(SystemSetting(key="day_end", value="19:00", value_type=SettingType.STRING))
        await db.flush()

        config = await load_engine_config(db)
        assert config.ceremony_duration_minutes == 75
        assert config.day_end == time(19, 0)
        await db.rollback()


@pytest.fixture
async def db_client():
    app.dependency_overrides[get_now] = lambda: NOW
    app.dependency_overrides[get_engine_config] = lambda: EngineConfig()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def _create_body(parish, **overrides):
    body = {
        "wedding_date": SATURDAY.isoformat(),
        "start_time": "10:00",
        "location_id": parish["location_id"],
        "celebrant_id": parish["celebrant_id"],
        "bride_name": f"Helena {parish['suffix']}",
        "groom_name": f"Igor {parish['suffix']}",
        "bride_phone": "21987654321",
        "groom_phone": "2134567890",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_booking_lifecycle_over_http(db_client, parish):
    resp = await db_client.post("/api/v1/bookings", json=_create_body(parish))
    assert resp.status_code == 201
    booking_id = resp.json()["id"]

    resp = await db_client.post("/api/v1/bookings", json=_create_body(parish, start_time="10:30"))
    assert resp.status_code == 409

    resp = await db_client.get(f"/api/v1/bookings/{booking_id}")
    assert resp.status_code == 200
    detail = resp.json()
    assert detail["bride_phone"] == "(21) 98765-4321"
    assert detail["groom_phone"] == "(21) 3456-7890"
    assert detail["celebrant_name"] == f"Pe. Teste {parish['suffix']}"

    resp = await db_client.get("/api/v1/bookings", params={"year": 2026, "month": 6, "day": 13})
    assert booking_id in [b["id"] for b in resp.json()]

    resp = await db_client.get("/api/v1/bookings/statistics")
    assert resp.status_code == 200
    assert resp.json()["upcoming_bookings"] >= 1

    resp = await db_client.delete(f"/api/v1/bookings/{booking_id}")
    assert resp.status_code == 204
    resp = await db_client.delete(f"/api/v1/bookings/{booking_id}")
    assert resp.status_code == 400

    resp = await db_client.get("/api/v1/bookings", params={"year": 2026, "month": 6, "status": "cancelled"})
    assert booking_id in [b["id"] for b in resp.json()]

    # the cancelled booking no longer blocks the slot
    resp = await db_client.post("/api/v1/bookings", json=_create_body(parish, start_time="10:30"))
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_unknown_booking(db_client, parish):
    resp = await db_client.get("/api/v1/bookings/0")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_resources(db_client, parish):
    resp = await db_client.get("/api/v1/locations")
    assert parish["location_id"] in [loc["id"] for loc in resp.json()]
    resp = await db_client.get("/api/v1/celebrants")
    celebrant = next(c for c in resp.json() if c["id"] == parish["celebrant_id"])
    assert celebrant["kind"] == "priest"


@pytest.mark.asyncio
async def test_person_match_ignores_stored_padding(parish):
    async with async_session_factory() as db:
        db.add(
            WeddingBooking(
                location_id=parish["location_id"],
                celebrant_id=parish["celebrant_id"],
                wedding_date=WEDNESDAY,
                start_time=time(9, 0),
                bride_name=f"  Noiva {parish['suffix']}  ",
                groom_name=f"Noivo {parish['suffix']} ",
            )
        )
        await db.commit()

    async with async_session_factory() as db:
        repo = SqlBookingRepository(db)
        assert len(await repo.find_active_bookings_for_person(f"noiva {parish['suffix']}", TODAY)) == 1
        assert len(await repo.find_active_bookings_for_person(f"NOIVO {parish['suffix']}", TODAY)) == 1


@pytest.mark.asyncio
async def test_upcoming_bookings(db_client, parish):
    first = await db_client.post("/api/v1/bookings", json=_create_body(parish))
    later = await db_client.post(
        "/api/v1/bookings",
        json=_create_body(
            parish,
            wedding_date="2026-06-20",
            bride_name=f"Julia {parish['suffix']}",
            groom_name=f"Lucas {parish['suffix']}",
        ),
    )
    assert first.status_code == later.status_code == 201

    resp = await db_client.get("/api/v1/bookings/upcoming", params={"limit": 100})
    assert resp.status_code == 200
    mine = [b for b in resp.json() if b["location_id"] == parish["location_id"]]
    assert [b["id"] for b in mine] == [first.json()["id"], later.json()["id"]]
    assert [b["days_remaining"] for b in mine] == [103, 110]

    resp = await db_client.get("/api/v1/bookings/upcoming", params={"limit": 0})
    assert resp.status_code == 422


@pytest.fixture
async def cleanup_names():
    """Names of resources a test creates through the API; deleted afterwards."""
    names: list[str] = []
    yield names
    async with async_session_factory() as db:
        await db.execute(delete(Location).where(Location.name.in_(names)))
        await db.execute(delete(Celebrant).where(Celebrant.full_name.in_(names)))
        await db.commit()


@pytest.mark.asyncio
async def test_location_management(db_client, parish, cleanup_names):
    name = f"Capela Nova {parish['suffix']}"
    cleanup_names.append(name)

    resp = await db_client.post("/api/v1/locations", json={"name": f"  {name} ", "seating_capacity": 120})
    assert resp.status_code == 201
    location = resp.json()
    assert location["name"] == name
    assert location["seating_capacity"] == 120

    resp = await db_client.post("/api/v1/locations", json={"name": name.upper()})
    assert resp.status_code == 409

    # renaming onto another location's name is refused too
    resp = await db_client.put(f"/api/v1/locations/{location['id']}", json={"name": f"capela teste {parish['suffix']}"})
    assert resp.status_code == 409

    changes = {"address": "Rua das Flores, 10", "name": None}
    resp = await db_client.put(f"/api/v1/locations/{location['id']}", json=changes)
    assert resp.status_code == 200
    assert resp.json()["address"] == "Rua das Flores, 10"
    assert resp.json()["name"] == name

    resp = await db_client.delete(f"/api/v1/locations/{location['id']}")
    assert resp.status_code == 204
    resp = await db_client.get("/api/v1/locations")
    assert location["id"] not in [loc["id"] for loc in resp.json()]

    resp = await db_client.put(f"/api/v1/locations/{location['id']}", json={"is_active": True})
    assert resp.status_code == 200
    resp = await db_client.get("/api/v1/locations")
    assert location["id"] in [loc["id"] for loc in resp.json()]


@pytest.mark.asyncio
async def test_location_with_upcoming_bookings_cannot_be_removed(db_client, parish):
    resp = await db_client.post("/api/v1/bookings", json=_create_body(parish))
    assert resp.status_code == 201

    resp = await db_client.delete(f"/api/v1/locations/{parish['location_id']}")
    assert resp.status_code == 409
    resp = await db_client.delete(f"/api/v1/celebrants/{parish['celebrant_id']}")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_celebrant_management(db_client, parish, cleanup_names):
    name = f"Diác. Novo {parish['suffix']}"
    cleanup_names.append(name)

    body = {"full_name": name, "kind": "deacon", "phone": "21987654321"}
    resp = await db_client.post("/api/v1/celebrants", json=body)
    assert resp.status_code == 201
    celebrant = resp.json()
    assert celebrant["kind"] == "deacon"

    resp = await db_client.post("/api/v1/celebrants", json={"full_name": f" {name.lower()} "})
    assert resp.status_code == 409

    resp = await db_client.put(f"/api/v1/celebrants/{celebrant['id']}", json={"kind": "priest"})
    assert resp.status_code == 200
    assert resp.json()["kind"] == "priest"
    assert resp.json()["full_name"] == name

    resp = await db_client.delete(f"/api/v1/celebrants/{celebrant['id']}")
    assert resp.status_code == 204
    resp = await db_client.get("/api/v1/celebrants")
    assert celebrant["id"] not in [c["id"] for c in resp.json()]


@pytest.mark.asyncio
async def test_unknown_resource_management(db_client, parish):
    assert (await db_client.put("/api/v1/locations/0", json={"notes": "x"})).status_code == 404
    assert (await db_client.delete("/api/v1/celebrants/0")).status_code == 404
