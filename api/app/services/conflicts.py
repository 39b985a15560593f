"""Conflict detection for a proposed wedding booking.

Three independent checks, all of which always run so the caller gets the
complete picture in one round trip:

- location: another active ceremony at the same place too close in time
- celebrant: the priest/deacon has another ceremony too close in time,
  padded by the displacement (travel) buffer, at any location
- person: the bride or groom already holds a future active booking, at any
  date or time

Conflicts are returned as data, never raised.
"""

import enum
from dataclasses import dataclass, field, replace
from datetime import date, time

from app.services.booking_repository import BookingRepository, person_key
from app.services.engine_config import EngineConfig
from app.services.intervals import starts_collide, to_minutes
from app.services.snapshots import BookingCandidate, BookingSnapshot


class PersonRole(str, enum.Enum):
    BRIDE = "bride"
    GROOM = "groom"


@dataclass(frozen=True)
class LocationConflict:
    booking: BookingSnapshot


@dataclass(frozen=True)
class CelebrantConflict:
    booking: BookingSnapshot
    time_difference_minutes: int


@dataclass(frozen=True)
class PersonAlreadyBooked:
    person: str
    role: PersonRole
    booking: BookingSnapshot


@dataclass(frozen=True)
class ConflictReport:
    location_conflicts: list[LocationConflict] = field(default_factory=list)
    celebrant_conflicts: list[CelebrantConflict] = field(default_factory=list)
    person_conflicts: list[PersonAlreadyBooked] = field(default_factory=list)

    @property
    def has_resource_conflicts(self) -> bool:
        return bool(self.location_conflicts or self.celebrant_conflicts)

    @property
    def has_conflicts(self) -> bool:
        return self.has_resource_conflicts or bool(self.person_conflicts)


def find_colliding(
    start_time: time,
    existing: list[BookingSnapshot],
    duration_minutes: int,
    buffer_minutes: int,
) -> list[BookingSnapshot]:
    """Return the bookings whose padded interval overlaps the candidate's padded interval."""
    return [b for b in existing if starts_collide(start_time, b.start_time, duration_minutes, buffer_minutes)]


def minutes_apart(a: time, b: time) -> int:
    return abs(to_minutes(a) - to_minutes(b))


async def check_location_conflicts(
    repo: BookingRepository,
    candidate: BookingCandidate,
    config: EngineConfig,
) -> list[LocationConflict]:
    existing = await repo.find_active_bookings(
        candidate.wedding_date, location_id=candidate.location_id, exclude_id=candidate.booking_id
    )
    colliding = find_colliding(
        candidate.start_time, existing, config.ceremony_duration_minutes, config.location_buffer_minutes
    )
    return [LocationConflict(b) for b in colliding]


async def check_celebrant_conflicts(
    repo: BookingRepository,
    candidate: BookingCandidate,
    config: EngineConfig,
) -> list[CelebrantConflict]:
    existing = await repo.find_active_bookings(
        candidate.wedding_date, celebrant_id=candidate.celebrant_id, exclude_id=candidate.booking_id
    )
    colliding = find_colliding(
        candidate.start_time, existing, config.ceremony_duration_minutes, config.celebrant_buffer_minutes
    )
    return [CelebrantConflict(b, minutes_apart(candidate.start_time, b.start_time)) for b in colliding]


async def check_person_conflicts(
    repo: BookingRepository,
    candidate: BookingCandidate,
    today: date,
) -> list[PersonAlreadyBooked]:
    """A person may hold at most one future active booking, as bride or groom."""
    conflicts: list[PersonAlreadyBooked] = []
    for name, role in ((candidate.bride_name, PersonRole.BRIDE), (candidate.groom_name, PersonRole.GROOM)):
        if not person_key(name):
            continue
        for booking in await repo.find_active_bookings_for_person(name, today):
            if booking.id == candidate.booking_id:
                continue
            conflicts.append(PersonAlreadyBooked(person=name.strip(), role=role, booking=booking))
    return conflicts


async def detect_conflicts(
    repo: BookingRepository,
    candidate: BookingCandidate,
    today: date,
    config: EngineConfig,
) -> ConflictReport:
    """Run the location, celebrant and person checks and report all of them.

    The checks run one after another; an AsyncSession does not allow
    concurrent queries.
    """
    return ConflictReport(
        location_conflicts=await check_location_conflicts(repo, candidate, config),
        celebrant_conflicts=await check_celebrant_conflicts(repo, candidate, config),
        person_conflicts=await check_person_conflicts(repo, candidate, today),
    )


async def resources_free_at(
    repo: BookingRepository,
    candidate: BookingCandidate,
    booking_date: date,
    config: EngineConfig,
) -> bool:
    """Whether the candidate's location and celebrant are both free at its time on booking_date."""
    moved = replace(candidate, wedding_date=booking_date)
    if await check_location_conflicts(repo, moved, config):
        return False
    return not await check_celebrant_conflicts(repo, moved, config)
