"""Slot generation for ceremony locations and celebrants.

build_slots() is a pure calculation: no database, no async. The async
wrappers fetch the day's active bookings for one resource and hand their start
times to it. Slot availability uses the same collision predicate as the
conflict detector, so a free slot never produces a conflict for that resource.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from app.services.booking_repository import BookingRepository
from app.services.engine_config import EngineConfig
from app.services.intervals import MINUTES_PER_DAY, from_minutes, starts_collide, to_minutes
from app.services.snapshots import ResourceType


@dataclass(frozen=True)
class Slot:
    start_time: time
    end_time: time
    is_available: bool


def candidate_starts(config: EngineConfig) -> list[time]:
    """Every granularity step from day_start up to, but not including, day_end."""
    first, last = to_minutes(config.day_start), to_minutes(config.day_end)
    return [from_minutes(m) for m in range(first, last, config.slot_granularity_minutes)]


def earliest_bookable_minute(query_date: date, now: datetime, config: EngineConfig) -> int:
    """Minute of query_date before which nothing may be booked.

    Future dates: 0. Past dates: MINUTES_PER_DAY (nothing). Today: now plus the
    same-day notice, rounded up to the whole minute; slots sit on the
    granularity grid, so the first slot offered is the next boundary.
    """
    today = now.date()
    if query_date > today:
        return 0
    if query_date < today:
        return MINUTES_PER_DAY

    cutoff = now + timedelta(minutes=config.same_day_notice_minutes)
    if cutoff.date() > query_date:
        return MINUTES_PER_DAY
    minute = cutoff.hour * 60 + cutoff.minute
    if cutoff.second or cutoff.microsecond:
        minute += 1
    return minute


def build_slots(
    query_date: date,
    booked_starts: list[time],
    duration_minutes: int,
    buffer_minutes: int,
    now: datetime,
    config: EngineConfig,
) -> list[Slot]:
    """All candidate slots on query_date, marking those too soon or colliding as unavailable."""
    earliest = earliest_bookable_minute(query_date, now, config)

    slots: list[Slot] = []
    for start in candidate_starts(config):
        too_soon = to_minutes(start) < earliest
        taken = any(starts_collide(start, booked, duration_minutes, buffer_minutes) for booked in booked_starts)
        end = from_minutes((to_minutes(start) + duration_minutes) % MINUTES_PER_DAY)
        slots.append(Slot(start_time=start, end_time=end, is_available=not too_soon and not taken))
    return slots


async def generate_slot_grid(
    repo: BookingRepository,
    query_date: date,
    resource_type: ResourceType,
    resource_id: int,
    now: datetime,
    config: EngineConfig,
    exclude_id: int | None = None,
) -> list[Slot]:
    if resource_type is ResourceType.LOCATION:
        existing = await repo.find_active_bookings(query_date, location_id=resource_id, exclude_id=exclude_id)
    else:
        existing = await repo.find_active_bookings(query_date, celebrant_id=resource_id, exclude_id=exclude_id)

    return build_slots(
        query_date,
        [b.start_time for b in existing],
        config.ceremony_duration_minutes,
        config.buffer_for(resource_type),
        now,
        config,
    )


async def generate_free_slots(
    repo: BookingRepository,
    query_date: date,
    resource_type: ResourceType,
    resource_id: int,
    now: datetime,
    config: EngineConfig,
    exclude_id: int | None = None,
) -> list[time]:
    """Chronological start times at which the resource can take a ceremony on query_date."""
    slots = await generate_slot_grid(repo, query_date, resource_type, resource_id, now, config, exclude_id)
    return [s.start_time for s in slots if s.is_available]
