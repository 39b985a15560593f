"""Immutable booking values passed through the conflict & availability engine.

The engine never touches ORM objects directly; repositories convert rows into
BookingSnapshot and callers describe a proposed booking as a BookingCandidate.
"""

import enum
from dataclasses import dataclass
from datetime import date, time

from app.models.booking import BookingStatus, WeddingBooking


class ResourceType(str, enum.Enum):
    LOCATION = "location"
    CELEBRANT = "celebrant"


@dataclass(frozen=True)
class BookingSnapshot:
    id: int
    wedding_date: date
    start_time: time
    location_id: int
    celebrant_id: int
    bride_name: str
    groom_name: str
    status: BookingStatus = BookingStatus.ACTIVE
    location_name: str | None = None
    celebrant_name: str | None = None

    @property
    def couple(self) -> str:
        return f"{self.bride_name} & {self.groom_name}"

    @classmethod
    def from_model(cls, booking: WeddingBooking) -> "BookingSnapshot":
        """Build a snapshot from an ORM row. location/celebrant must already be loaded."""
        return cls(
            id=booking.id,
            wedding_date=booking.wedding_date,
            start_time=booking.start_time,
            location_id=booking.location_id,
            celebrant_id=booking.celebrant_id,
            bride_name=booking.bride_name,
            groom_name=booking.groom_name,
            status=booking.status,
            location_name=booking.location.name if booking.location else None,
            celebrant_name=booking.celebrant.full_name if booking.celebrant else None,
        )


@dataclass(frozen=True)
class BookingCandidate:
    """A proposed booking. booking_id is set when re-checking an existing booking."""

    wedding_date: date
    start_time: time
    location_id: int
    celebrant_id: int
    bride_name: str = ""
    groom_name: str = ""
    booking_id: int | None = None
    bride_phone: str | None = None
    groom_phone: str | None = None
    notes: str | None = None

    def resource_id(self, resource_type: ResourceType) -> int:
        if resource_type is ResourceType.LOCATION:
            return self.location_id
        return self.celebrant_id
