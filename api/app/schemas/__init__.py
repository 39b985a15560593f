"""Pydantic schemas for API serialisation."""

import re
from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.booking import BookingStatus
from app.models.resources import CelebrantKind
from app.services.availability import AvailabilityAnalysis, Occupancy
from app.services.conflicts import CelebrantConflict, ConflictReport, LocationConflict, PersonAlreadyBooked
from app.services.slots import Slot
from app.services.snapshots import BookingSnapshot
from app.services.suggestions import AlternativeDay, Suggestions
from app.services.temporal import BookingViolation


def _hhmm(t: time) -> str:
    return t.strftime("%H:%M")


def format_phone(raw: str) -> str:
    """Normalise a Brazilian WhatsApp number: (DD) NNNN-NNNN or (DD) NNNNN-NNNN.

    Raises ValueError unless the number has 10 or 11 digits (area code included).
    """
    digits = re.sub(r"\D", "", raw)
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    raise ValueError("Phone must have area code + number (10 or 11 digits).")


# --- Resources ---


class LocationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: str | None
    seating_capacity: int | None


class LocationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    address: str | None = None
    seating_capacity: int | None = Field(None, gt=0)
    notes: str | None = None

    @field_validator("name")
    @classmethod
    def _not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not v.strip():
            raise ValueError("Name cannot be blank.")
        return v.strip()


class LocationUpdate(LocationCreate):
    """Partial update; only the fields sent are changed."""

    name: str | None = Field(None, min_length=1, max_length=200)
    is_active: bool | None = None


class CelebrantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    kind: CelebrantKind


class CelebrantCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=200)
    kind: CelebrantKind = CelebrantKind.PRIEST
    phone: str | None = None
    email: str | None = Field(None, max_length=254)

    @field_validator("full_name")
    @classmethod
    def _not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not v.strip():
            raise ValueError("Name cannot be blank.")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        return format_phone(v) if v else None


class CelebrantUpdate(CelebrantCreate):
    """Partial update; only the fields sent are changed."""

    full_name: str | None = Field(None, min_length=1, max_length=200)
    kind: CelebrantKind | None = None
    is_active: bool | None = None


# --- Booking ---


class BookingCheckRequest(BaseModel):
    """Date and time stay strings so format problems come back as rule violations."""

    date: str
    time: str
    location_id: int
    celebrant_id: int
    bride_name: str | None = None
    groom_name: str | None = None
    booking_id: int | None = None


class BookingCreate(BaseModel):
    wedding_date: date
    start_time: time
    location_id: int
    celebrant_id: int
    bride_name: str = Field(min_length=1, max_length=200)
    groom_name: str = Field(min_length=1, max_length=200)
    bride_phone: str
    groom_phone: str
    notes: str | None = None

    @field_validator("bride_name", "groom_name")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be blank.")
        return v.strip()

    @field_validator("bride_phone", "groom_phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        return format_phone(v)


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    wedding_date: date
    start_time: time
    location_id: int
    celebrant_id: int
    location_name: str | None = None
    celebrant_name: str | None = None
    bride_name: str
    groom_name: str
    status: BookingStatus


class BookingDetailOut(BookingOut):
    bride_phone: str | None
    groom_phone: str | None
    notes: str | None
    cancelled_at: datetime | None
    created_at: datetime


class UpcomingBookingOut(BookingOut):
    days_remaining: int

    @classmethod
    def from_booking(cls, booking, today: date) -> "UpcomingBookingOut":
        return cls(
            **BookingOut.model_validate(booking).model_dump(),
            days_remaining=(booking.wedding_date - today).days,
        )


class StatisticsOut(BaseModel):
    active_bookings: int
    upcoming_bookings: int
    total_couples: int
    month_occupancy_rate: float


# --- Conflict report ---


class ViolationOut(BaseModel):
    rule: str
    message: str
    threshold: int | str | None = None

    @classmethod
    def from_violation(cls, v: BookingViolation) -> "ViolationOut":
        return cls(rule=v.rule, message=v.message, threshold=v.threshold)


class ConflictingBookingOut(BaseModel):
    id: int
    couple: str
    date: date
    time: str
    location: str | None
    celebrant: str | None

    @classmethod
    def from_snapshot(cls, b: BookingSnapshot) -> "ConflictingBookingOut":
        return cls(
            id=b.id,
            couple=b.couple,
            date=b.wedding_date,
            time=_hhmm(b.start_time),
            location=b.location_name,
            celebrant=b.celebrant_name,
        )


class LocationConflictOut(BaseModel):
    booking: ConflictingBookingOut

    @classmethod
    def from_conflict(cls, c: LocationConflict) -> "LocationConflictOut":
        return cls(booking=ConflictingBookingOut.from_snapshot(c.booking))


class CelebrantConflictOut(BaseModel):
    booking: ConflictingBookingOut
    time_difference_minutes: int

    @classmethod
    def from_conflict(cls, c: CelebrantConflict) -> "CelebrantConflictOut":
        return cls(
            booking=ConflictingBookingOut.from_snapshot(c.booking),
            time_difference_minutes=c.time_difference_minutes,
        )


class PersonConflictOut(BaseModel):
    person: str
    role: str
    booking: ConflictingBookingOut

    @classmethod
    def from_conflict(cls, c: PersonAlreadyBooked) -> "PersonConflictOut":
        return cls(person=c.person, role=c.role.value, booking=ConflictingBookingOut.from_snapshot(c.booking))


class ConflictsOut(BaseModel):
    location: list[LocationConflictOut]
    celebrant: list[CelebrantConflictOut]
    people: list[PersonConflictOut]

    @classmethod
    def from_report(cls, report: ConflictReport) -> "ConflictsOut":
        return cls(
            location=[LocationConflictOut.from_conflict(c) for c in report.location_conflicts],
            celebrant=[CelebrantConflictOut.from_conflict(c) for c in report.celebrant_conflicts],
            people=[PersonConflictOut.from_conflict(c) for c in report.person_conflicts],
        )


class AlternativeDayOut(BaseModel):
    date: date
    time: str
    weekday_label: str
    description: str

    @classmethod
    def from_alternative(cls, a: AlternativeDay) -> "AlternativeDayOut":
        return cls(
            date=a.wedding_date,
            time=_hhmm(a.start_time),
            weekday_label=a.weekday_label,
            description=a.description,
        )


class SuggestionsOut(BaseModel):
    same_day: list[str]
    other_days: list[AlternativeDayOut]

    @classmethod
    def from_suggestions(cls, s: Suggestions) -> "SuggestionsOut":
        return cls(
            same_day=[_hhmm(t) for t in s.same_day],
            other_days=[AlternativeDayOut.from_alternative(a) for a in s.other_days],
        )


class OccupancyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bookings: int
    capacity: int
    rate: float


class AvailabilityAnalysisOut(BaseModel):
    location_occupancy: OccupancyOut
    celebrant_workload: OccupancyOut
    status: str
    recommendation: str

    @classmethod
    def from_analysis(cls, a: AvailabilityAnalysis) -> "AvailabilityAnalysisOut":
        return cls(
            location_occupancy=OccupancyOut.model_validate(a.location),
            celebrant_workload=OccupancyOut.model_validate(a.celebrant),
            status=a.classification.value,
            recommendation=a.recommendation,
        )


class ConflictCheckOut(BaseModel):
    has_conflicts: bool
    validation_errors: list[ViolationOut] = []
    conflicts: ConflictsOut | None = None
    warnings: list[str] = []
    suggestions: SuggestionsOut | None = None
    availability_analysis: AvailabilityAnalysisOut | None = None


# --- Availability ---


class SlotOut(BaseModel):
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"
    is_available: bool

    @classmethod
    def from_slot(cls, s: Slot) -> "SlotOut":
        return cls(start_time=_hhmm(s.start_time), end_time=_hhmm(s.end_time), is_available=s.is_available)


class ResourceAvailabilityOut(BaseModel):
    resource_type: str
    resource_id: int
    date: date
    free_slots: list[str]
    slots: list[SlotOut]
    occupancy: OccupancyOut

    @classmethod
    def build(
        cls, resource_type: str, resource_id: int, query_date: date, slots: list[Slot], occ: Occupancy
    ) -> "ResourceAvailabilityOut":
        return cls(
            resource_type=resource_type,
            resource_id=resource_id,
            date=query_date,
            free_slots=[_hhmm(s.start_time) for s in slots if s.is_available],
            slots=[SlotOut.from_slot(s) for s in slots],
            occupancy=OccupancyOut.model_validate(occ),
        )


# --- Settings ---


class EngineConfigOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ceremony_duration_minutes: int
    location_buffer_minutes: int
    celebrant_buffer_minutes: int
    day_start: time
    day_end: time
    min_advance_days: int
    max_advance_days: int
    slot_granularity_minutes: int
    same_day_notice_minutes: int
    location_daily_capacity: int
    celebrant_daily_capacity: int
    max_suggestions: int
    alternative_day_window: int
    busy_threshold_percent: float
    moderate_threshold_percent: float
    proximity_warning_bookings: int
