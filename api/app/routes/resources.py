"""Location and celebrant routes: listing, management and per-day availability.

Removing a resource only deactivates it, and is refused while it still has
upcoming active bookings.
"""

import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_booking_repository, get_engine_config, get_now
from app.models.booking import BookingStatus, WeddingBooking
from app.models.resources import Celebrant, Location
from app.schemas import (
    CelebrantCreate,
    CelebrantOut,
    CelebrantUpdate,
    LocationCreate,
    LocationOut,
    LocationUpdate,
    ResourceAvailabilityOut,
)
from app.services.availability import occupancy
from app.services.booking_repository import BookingRepository
from app.services.engine_config import EngineConfig
from app.services.slots import generate_slot_grid
from app.services.snapshots import ResourceType

logger = logging.getLogger(__name__)

router = APIRouter(tags=["resources"])


async def _name_taken(db: AsyncSession, model, column, name: str, exclude_id: int | None = None) -> bool:
    """Names are unique after trimming and upper-casing, active or not."""
    stmt = select(model.id).where(func.upper(func.trim(column)) == name.strip().upper())
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


def _apply_changes(resource, body, required: tuple[str, ...]) -> None:
    """Copy the fields the client sent. An explicit null never clears a required column."""
    for key, value in body.model_dump(exclude_unset=True).items():
        if value is None and key in required:
            continue
        setattr(resource, key, value)


async def _has_upcoming_bookings(db: AsyncSession, column, resource_id: int, today: date) -> bool:
    result = await db.execute(
        select(func.count(WeddingBooking.id)).where(
            column == resource_id,
            WeddingBooking.status == BookingStatus.ACTIVE,
            WeddingBooking.wedding_date >= today,
        )
    )
    return result.scalar_one() > 0


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------


@router.get("/locations", response_model=list[LocationOut])
async def list_locations(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Location).where(Location.is_active.is_(True)).order_by(Location.name))
    return result.scalars().all()


async def _get_location(db: AsyncSession, location_id: int) -> Location:
    location = await db.get(Location, location_id)
    if location is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    return location


@router.post("/locations", response_model=LocationOut, status_code=status.HTTP_201_CREATED)
async def create_location(body: LocationCreate, db: AsyncSession = Depends(get_db)):
    if await _name_taken(db, Location, Location.name, body.name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="A location with this name already exists"
        )

    location = Location(**body.model_dump())
    db.add(location)
    await db.flush()
    logger.info("Location %s created: %s", location.id, location.name)
    return location


@router.put("/locations/{location_id}", response_model=LocationOut)
async def update_location(location_id: int, body: LocationUpdate, db: AsyncSession = Depends(get_db)):
    location = await _get_location(db, location_id)
    if body.name and await _name_taken(db, Location, Location.name, body.name, exclude_id=location_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="A location with this name already exists"
        )

    _apply_changes(location, body, required=("name", "is_active"))
    await db.flush()
    return location


@router.delete("/locations/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_location(
    location_id: int,
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Deactivate a location. Past bookings keep pointing at it."""
    location = await _get_location(db, location_id)
    if await _has_upcoming_bookings(db, WeddingBooking.location_id, location_id, now.date()):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Location has upcoming bookings")

    location.is_active = False
    logger.info("Location %s deactivated", location_id)


# ---------------------------------------------------------------------------
# Celebrants
# ---------------------------------------------------------------------------


@router.get("/celebrants", response_model=list[CelebrantOut])
async def list_celebrants(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Celebrant).where(Celebrant.is_active.is_(True)).order_by(Celebrant.full_name))
    return result.scalars().all()


async def _get_celebrant(db: AsyncSession, celebrant_id: int) -> Celebrant:
    celebrant = await db.get(Celebrant, celebrant_id)
    if celebrant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Celebrant not found")
    return celebrant


@router.post("/celebrants", response_model=CelebrantOut, status_code=status.HTTP_201_CREATED)
async def create_celebrant(body: CelebrantCreate, db: AsyncSession = Depends(get_db)):
    if await _name_taken(db, Celebrant, Celebrant.full_name, body.full_name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="A celebrant with this name already exists"
        )

    celebrant = Celebrant(**body.model_dump())
    db.add(celebrant)
    await db.flush()
    logger.info("Celebrant %s created: %s", celebrant.id, celebrant.full_name)
    return celebrant


@router.put("/celebrants/{celebrant_id}", response_model=CelebrantOut)
async def update_celebrant(celebrant_id: int, body: CelebrantUpdate, db: AsyncSession = Depends(get_db)):
    celebrant = await _get_celebrant(db, celebrant_id)
    taken = body.full_name and await _name_taken(
        db, Celebrant, Celebrant.full_name, body.full_name, exclude_id=celebrant_id
    )
    if taken:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="A celebrant with this name already exists"
        )

    _apply_changes(celebrant, body, required=("full_name", "kind", "is_active"))
    await db.flush()
    return celebrant


@router.delete("/celebrants/{celebrant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_celebrant(
    celebrant_id: int,
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Deactivate a celebrant. Past bookings keep pointing at them."""
    celebrant = await _get_celebrant(db, celebrant_id)
    if await _has_upcoming_bookings(db, WeddingBooking.celebrant_id, celebrant_id, now.date()):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Celebrant has upcoming bookings")

    celebrant.is_active = False
    logger.info("Celebrant %s deactivated", celebrant_id)


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


async def _availability(
    repo: BookingRepository,
    resource_type: ResourceType,
    resource_id: int,
    query_date: date,
    now: datetime,
    config: EngineConfig,
) -> ResourceAvailabilityOut:
    if not await repo.resource_exists(resource_type, resource_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{resource_type.value.title()} not found")

    slots = await generate_slot_grid(repo, query_date, resource_type, resource_id, now, config)
    if resource_type is ResourceType.LOCATION:
        booked = await repo.count_active_bookings(query_date, location_id=resource_id)
    else:
        booked = await repo.count_active_bookings(query_date, celebrant_id=resource_id)

    return ResourceAvailabilityOut.build(
        resource_type.value,
        resource_id,
        query_date,
        slots,
        occupancy(booked, config.capacity_for(resource_type)),
    )


@router.get("/locations/{location_id}/availability", response_model=ResourceAvailabilityOut)
async def location_availability(
    location_id: int,
    query_date: date = Query(..., alias="date"),
    repo: BookingRepository = Depends(get_booking_repository),
    config: EngineConfig = Depends(get_engine_config),
    now: datetime = Depends(get_now),
):
    return await _availability(repo, ResourceType.LOCATION, location_id, query_date, now, config)


@router.get("/celebrants/{celebrant_id}/availability", response_model=ResourceAvailabilityOut)
async def celebrant_availability(
    celebrant_id: int,
    query_date: date = Query(..., alias="date"),
    repo: BookingRepository = Depends(get_booking_repository),
    config: EngineConfig = Depends(get_engine_config),
    now: datetime = Depends(get_now),
):
    return await _availability(repo, ResourceType.CELEBRANT, celebrant_id, query_date, now, config)
