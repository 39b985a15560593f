"""Booking routes: conflict check, create, list, upcoming, statistics, cancel.

Creation goes through save_booking, which re-runs the conflict check under the
repository's booking guard before inserting.
"""

import logging
from datetime import UTC, date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import get_db
from app.core.dependencies import get_booking_repository, get_engine_config, get_now, get_weekday_locale
from app.models.booking import BookingStatus, WeddingBooking
from app.schemas import (
    AvailabilityAnalysisOut,
    BookingCheckRequest,
    BookingCreate,
    BookingDetailOut,
    BookingOut,
    ConflictCheckOut,
    ConflictsOut,
    StatisticsOut,
    SuggestionsOut,
    UpcomingBookingOut,
    ViolationOut,
)
from app.services.availability import month_occupancy_rate
from app.services.booking_repository import BookingRepository
from app.services.booking_service import BookingRejected, check_booking, save_booking
from app.services.engine_config import EngineConfig
from app.services.snapshots import BookingCandidate, ResourceType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


async def _require_resources(repo: BookingRepository, location_id: int, celebrant_id: int) -> None:
    if not await repo.resource_exists(ResourceType.LOCATION, location_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    if not await repo.resource_exists(ResourceType.CELEBRANT, celebrant_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Celebrant not found")


@router.post("/check", response_model=ConflictCheckOut)
async def check(
    body: BookingCheckRequest,
    repo: BookingRepository = Depends(get_booking_repository),
    config: EngineConfig = Depends(get_engine_config),
    now: datetime = Depends(get_now),
    locale: str = Depends(get_weekday_locale),
):
    await _require_resources(repo, body.location_id, body.celebrant_id)

    result = await check_booking(
        repo,
        body.date,
        body.time,
        body.location_id,
        body.celebrant_id,
        now,
        config,
        bride_name=body.bride_name or "",
        groom_name=body.groom_name or "",
        booking_id=body.booking_id,
        locale=locale,
    )
    return ConflictCheckOut(
        has_conflicts=result.has_conflicts,
        validation_errors=[ViolationOut.from_violation(v) for v in result.violations],
        conflicts=ConflictsOut.from_report(result.report) if result.report else None,
        warnings=result.warnings,
        suggestions=SuggestionsOut.from_suggestions(result.suggestions) if result.suggestions else None,
        availability_analysis=AvailabilityAnalysisOut.from_analysis(result.availability)
        if result.availability
        else None,
    )


@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def create_booking(
    body: BookingCreate,
    repo: BookingRepository = Depends(get_booking_repository),
    config: EngineConfig = Depends(get_engine_config),
    now: datetime = Depends(get_now),
    locale: str = Depends(get_weekday_locale),
):
    await _require_resources(repo, body.location_id, body.celebrant_id)

    candidate = BookingCandidate(
        wedding_date=body.wedding_date,
        start_time=body.start_time,
        location_id=body.location_id,
        celebrant_id=body.celebrant_id,
        bride_name=body.bride_name,
        groom_name=body.groom_name,
        bride_phone=body.bride_phone,
        groom_phone=body.groom_phone,
        notes=body.notes,
    )
    try:
        booking = await save_booking(repo, candidate, now, config, locale)
    except BookingRejected as exc:
        if exc.violations:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=[ViolationOut.from_violation(v).model_dump() for v in exc.violations],
            ) from exc
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "The requested slot conflicts with existing bookings",
                "conflicts": ConflictsOut.from_report(exc.report).model_dump(mode="json"),
                "suggestions": SuggestionsOut.from_suggestions(exc.suggestions).model_dump(mode="json")
                if exc.suggestions
                else None,
            },
        ) from exc

    return BookingOut(
        id=booking.id,
        wedding_date=booking.wedding_date,
        start_time=booking.start_time,
        location_id=booking.location_id,
        celebrant_id=booking.celebrant_id,
        location_name=booking.location_name,
        celebrant_name=booking.celebrant_name,
        bride_name=booking.bride_name,
        groom_name=booking.groom_name,
        status=booking.status,
    )


@router.get("", response_model=list[BookingOut])
async def list_bookings(
    year: int = Query(..., ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
    day: int | None = Query(None, ge=1, le=31),
    booking_status: BookingStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    stmt = (
        select(WeddingBooking)
        .options(selectinload(WeddingBooking.location), selectinload(WeddingBooking.celebrant))
        .where(extract("year", WeddingBooking.wedding_date) == year)
    )
    if month is not None:
        stmt = stmt.where(extract("month", WeddingBooking.wedding_date) == month)
    if day is not None:
        stmt = stmt.where(extract("day", WeddingBooking.wedding_date) == day)
    if booking_status is not None:
        stmt = stmt.where(WeddingBooking.status == booking_status)

    result = await db.execute(stmt.order_by(WeddingBooking.wedding_date, WeddingBooking.start_time))
    return result.scalars().all()


@router.get("/statistics", response_model=StatisticsOut)
async def statistics(
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    today = now.date()

    async def _count(*criteria) -> int:
        result = await db.execute(select(func.count(WeddingBooking.id)).where(*criteria))
        return result.scalar_one()

    active = WeddingBooking.status == BookingStatus.ACTIVE
    month_start = today.replace(day=1)
    next_month = date(today.year + today.month // 12, today.month % 12 + 1, 1)

    this_month = await _count(
        active, WeddingBooking.wedding_date >= month_start, WeddingBooking.wedding_date < next_month
    )
    return StatisticsOut(
        active_bookings=await _count(active),
        upcoming_bookings=await _count(active, WeddingBooking.wedding_date >= today),
        total_couples=await _count(WeddingBooking.status.in_([BookingStatus.ACTIVE, BookingStatus.COMPLETED])),
        month_occupancy_rate=month_occupancy_rate(this_month),
    )


@router.get("/upcoming", response_model=list[UpcomingBookingOut])
async def upcoming_bookings(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Next active weddings from today on, soonest first."""
    today = now.date()
    result = await db.execute(
        select(WeddingBooking)
        .options(selectinload(WeddingBooking.location), selectinload(WeddingBooking.celebrant))
        .where(WeddingBooking.status == BookingStatus.ACTIVE, WeddingBooking.wedding_date >= today)
        .order_by(WeddingBooking.wedding_date, WeddingBooking.start_time)
        .limit(limit)
    )
    return [UpcomingBookingOut.from_booking(b, today) for b in result.scalars().all()]


async def _get_booking(db: AsyncSession, booking_id: int) -> WeddingBooking:
    result = await db.execute(
        select(WeddingBooking)
        .options(selectinload(WeddingBooking.location), selectinload(WeddingBooking.celebrant))
        .where(WeddingBooking.id == booking_id)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking


@router.get("/{booking_id}", response_model=BookingDetailOut)
async def get_booking(booking_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_booking(db, booking_id)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_booking(booking_id: int, db: AsyncSession = Depends(get_db)):
    booking = await _get_booking(db, booking_id)
    if booking.status != BookingStatus.ACTIVE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Booking cannot be cancelled")

    booking.status = BookingStatus.CANCELLED
    booking.cancelled_at = datetime.now(UTC)
    logger.info("Booking %s cancelled (%s %s)", booking.id, booking.wedding_date, booking.start_time.strftime("%H:%M"))
