"""Booking check and save orchestration.

check_booking() produces the full report shown to staff before saving:
temporal violations, conflicts, proximity warnings, suggestions and the load
analysis. save_booking() is the only write path. It repeats validation and
conflict detection inside the repository's booking guard, so two concurrent
saves for overlapping slots cannot both pass the check and both insert.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time

from app.services.availability import AvailabilityAnalysis, analyze_availability, proximity_warnings
from app.services.booking_repository import BookingRepository
from app.services.conflicts import ConflictReport, detect_conflicts
from app.services.engine_config import EngineConfig
from app.services.snapshots import BookingCandidate, BookingSnapshot
from app.services.suggestions import DEFAULT_LOCALE, Suggestions, suggest_alternatives
from app.services.temporal import BookingViolation, validate_temporal

logger = logging.getLogger(__name__)


class BookingRejected(Exception):
    """Raised by save_booking when validation fails or a conflict is found."""

    def __init__(
        self,
        violations: list[BookingViolation] | None = None,
        report: ConflictReport | None = None,
        suggestions: Suggestions | None = None,
    ):
        self.violations = violations or []
        self.report = report
        self.suggestions = suggestions
        reason = "validation failed" if self.violations else "conflicting bookings"
        super().__init__(f"Booking rejected: {reason}")


@dataclass(frozen=True)
class ConflictCheck:
    violations: list[BookingViolation] = field(default_factory=list)
    report: ConflictReport | None = None
    warnings: list[str] = field(default_factory=list)
    suggestions: Suggestions | None = None
    availability: AvailabilityAnalysis | None = None

    @property
    def has_conflicts(self) -> bool:
        return bool(self.violations) or (self.report is not None and self.report.has_conflicts)


async def check_booking(
    repo: BookingRepository,
    booking_date: date | str,
    start_time: time | str,
    location_id: int,
    celebrant_id: int,
    now: datetime,
    config: EngineConfig,
    bride_name: str = "",
    groom_name: str = "",
    booking_id: int | None = None,
    locale: str = DEFAULT_LOCALE,
) -> ConflictCheck:
    """Full conflict report for a proposed booking. Stops after validation if the date/time is invalid."""
    today = now.date()
    validation = validate_temporal(booking_date, start_time, today, config)
    if not validation.is_valid:
        return ConflictCheck(violations=validation.violations)

    candidate = BookingCandidate(
        wedding_date=validation.booking_date,
        start_time=validation.start_time,
        location_id=location_id,
        celebrant_id=celebrant_id,
        bride_name=bride_name or "",
        groom_name=groom_name or "",
        booking_id=booking_id,
    )
    report = await detect_conflicts(repo, candidate, today, config)

    location_bookings = await repo.count_active_bookings(candidate.wedding_date, location_id=location_id)
    warnings = proximity_warnings(candidate.wedding_date, candidate.start_time, location_bookings, config, locale)

    suggestions = None
    if report.has_conflicts:
        suggestions = await suggest_alternatives(repo, candidate, now, config, locale)

    availability = await analyze_availability(
        repo, candidate.wedding_date, location_id, celebrant_id, config, locale
    )
    return ConflictCheck(report=report, warnings=warnings, suggestions=suggestions, availability=availability)


async def save_booking(
    repo: BookingRepository,
    candidate: BookingCandidate,
    now: datetime,
    config: EngineConfig,
    locale: str = DEFAULT_LOCALE,
) -> BookingSnapshot:
    """Validate, re-check conflicts under the booking guard, then insert.

    Raises BookingRejected with the violations, or with the conflict report
    and suggestions. The caller's transaction must commit after this returns
    (or roll back on error) for the guard's locks to be released.
    """
    today = now.date()
    validation = validate_temporal(candidate.wedding_date, candidate.start_time, today, config)
    if not validation.is_valid:
        raise BookingRejected(violations=validation.violations)
    candidate = replace(candidate, wedding_date=validation.booking_date, start_time=validation.start_time)

    async with repo.booking_guard(candidate):
        report = await detect_conflicts(repo, candidate, today, config)
        if report.has_conflicts:
            suggestions = await suggest_alternatives(repo, candidate, now, config, locale)
            logger.info(
                "Booking rejected for %s %s: %d location, %d celebrant, %d person conflicts",
                candidate.wedding_date,
                candidate.start_time,
                len(report.location_conflicts),
                len(report.celebrant_conflicts),
                len(report.person_conflicts),
            )
            raise BookingRejected(report=report, suggestions=suggestions)

        booking = await repo.add(candidate)

    logger.info(
        "Booking %s saved: %s at location %s on %s %s",
        booking.id,
        booking.couple,
        booking.location_id,
        booking.wedding_date,
        booking.start_time.strftime("%H:%M"),
    )
    return booking
