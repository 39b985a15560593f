"""Temporal booking rules: date format, lead time and business hours.

Each rule returns a violation or None if the rule passes. Violations are
returned as values, never raised, so a caller can show every problem with a
proposed date/time at once. validate_temporal() runs the rules in order and
either collects all violations or stops at the first one.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from app.services.engine_config import EngineConfig

_TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


class BookingViolation(Exception):
    """A broken booking rule, carrying the configured threshold for display."""

    rule = "booking"

    def __init__(self, message: str, threshold: int | str | None = None):
        self.message = message
        self.threshold = threshold
        super().__init__(message)


class InvalidDateFormatError(BookingViolation):
    rule = "invalid_date_format"


class PastDateError(BookingViolation):
    rule = "past_date"


class InsufficientLeadTimeError(BookingViolation):
    rule = "insufficient_lead_time"


class ExcessiveLeadTimeError(BookingViolation):
    rule = "excessive_lead_time"


class InvalidTimeFormatError(BookingViolation):
    rule = "invalid_time_format"


class OutsideBusinessHoursError(BookingViolation):
    rule = "outside_business_hours"


@dataclass(frozen=True)
class ValidationResult:
    violations: list[BookingViolation] = field(default_factory=list)
    booking_date: date | None = None
    start_time: time | None = None

    @property
    def is_valid(self) -> bool:
        return not self.violations


def parse_date(value: date | str) -> date | None:
    """Accept a date or a YYYY-MM-DD string. Returns None if it is not a real calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_time(value: time | str) -> time | None:
    """Accept a time or an HH:MM string (00:00 to 23:59). Seconds are dropped."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    match = _TIME_RE.match(str(value).strip())
    if not match:
        return None
    return time(int(match.group(1)), int(match.group(2)))


def check_not_in_past(booking_date: date, today: date) -> BookingViolation | None:
    if booking_date < today:
        return PastDateError("Bookings cannot be made for past dates.", today.isoformat())
    return None


def check_min_advance(booking_date: date, today: date, config: EngineConfig) -> BookingViolation | None:
    """The ceremony must be at least min_advance_days away. Exactly on the boundary is allowed."""
    earliest = today + timedelta(days=config.min_advance_days)
    if booking_date < earliest:
        return InsufficientLeadTimeError(
            f"Weddings must be booked at least {config.min_advance_days} days in advance "
            f"(earliest date: {earliest.isoformat()}).",
            config.min_advance_days,
        )
    return None


def check_max_advance(booking_date: date, today: date, config: EngineConfig) -> BookingViolation | None:
    latest = today + timedelta(days=config.max_advance_days)
    if booking_date > latest:
        return ExcessiveLeadTimeError(
            f"Weddings cannot be booked more than {config.max_advance_days} days in advance "
            f"(latest date: {latest.isoformat()}).",
            config.max_advance_days,
        )
    return None


def check_business_hours(start_time: time, config: EngineConfig) -> BookingViolation | None:
    """Start time must fall inside [day_start, day_end], both ends inclusive."""
    if not config.day_start <= start_time <= config.day_end:
        opens, closes = config.day_start.strftime("%H:%M"), config.day_end.strftime("%H:%M")
        return OutsideBusinessHoursError(f"Ceremonies must start between {opens} and {closes}.", f"{opens}-{closes}")
    return None


def _iter_violations(
    booking_date: date | None,
    start_time: time | None,
    today: date,
    config: EngineConfig,
) -> Iterator[BookingViolation]:
    # 1. Date format
    if booking_date is None:
        yield InvalidDateFormatError("Date must be a valid calendar date in YYYY-MM-DD format.")
    else:
        # 2-4. Not in the past, lead time window
        for v in (
            check_not_in_past(booking_date, today),
            check_min_advance(booking_date, today, config),
            check_max_advance(booking_date, today, config),
        ):
            if v:
                yield v

    # 5. Time format
    if start_time is None:
        yield InvalidTimeFormatError("Time must be in HH:MM format (00:00 to 23:59).")
        return

    # 6. Business hours
    v = check_business_hours(start_time, config)
    if v:
        yield v


def validate_temporal(
    booking_date: date | str,
    start_time: time | str,
    today: date,
    config: EngineConfig,
    short_circuit: bool = False,
) -> ValidationResult:
    """Validate a proposed date/time against lead-time and operating-hours rules.

    `today` is injected by the caller. With short_circuit=True only the first
    failing rule is reported.
    """
    parsed_date = parse_date(booking_date)
    parsed_time = parse_time(start_time)

    violations = _iter_violations(parsed_date, parsed_time, today, config)
    if short_circuit:
        first = next(violations, None)
        found = [first] if first else []
    else:
        found = list(violations)

    return ValidationResult(violations=found, booking_date=parsed_date, start_time=parsed_time)
