"""Wedding booking model.

A booking reserves a ceremony location and a celebrant for a couple at a
specific date/time. Only ACTIVE bookings take part in conflict checks.
"""

import enum
from datetime import date, datetime, time

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, String, Text, Time, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class WeddingBooking(TimestampMixin, Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True)
    location_id: Mapped[int] = mapped_column(ForeignKey("locations.id"), nullable=False)
    celebrant_id: Mapped[int] = mapped_column(ForeignKey("celebrants.id"), nullable=False)

    # When
    wedding_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)

    # Who
    bride_name: Mapped[str] = mapped_column(String(200), nullable=False)
    groom_name: Mapped[str] = mapped_column(String(200), nullable=False)
    bride_phone: Mapped[str | None] = mapped_column(String(20))
    groom_phone: Mapped[str | None] = mapped_column(String(20))

    # Status
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status", values_callable=lambda e: [x.value for x in e]),
        default=BookingStatus.ACTIVE,
        nullable=False,
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(Text)

    # Relationships
    location: Mapped["Location"] = relationship()
    celebrant: Mapped["Celebrant"] = relationship()

    __table_args__ = (
        # Same start at the same location twice is never valid; overlap with buffers
        # is enforced by the conflict check under row locks.
        Index(
            "ix_bookings_location_start",
            "location_id",
            "wedding_date",
            "start_time",
            unique=True,
            postgresql_where=text("status = 'active'"),
        ),
        Index("ix_bookings_location_date", "location_id", "wedding_date"),
        Index("ix_bookings_celebrant_date", "celebrant_id", "wedding_date"),
    )

    @property
    def location_name(self) -> str | None:
        return self.location.name if self.location else None

    @property
    def celebrant_name(self) -> str | None:
        return self.celebrant.full_name if self.celebrant else None

    def __repr__(self) -> str:
        return f"<WeddingBooking {self.wedding_date} {self.start_time} location={self.location_id}>"


# Person lookups, trimmed and case-insensitive
Index("ix_bookings_bride_upper", func.upper(func.trim(WeddingBooking.bride_name)))
Index("ix_bookings_groom_upper", func.upper(func.trim(WeddingBooking.groom_name)))


# Import for type hints
from app.models.resources import Celebrant, Location  # noqa: E402
