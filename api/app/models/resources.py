"""Bookable resources.

Location = a church or chapel where ceremonies take place.
Celebrant = a priest or deacon who officiates.

Neither carries scheduling state; availability is always derived from the
active bookings that reference them.
"""

import enum

from sqlalchemy import Boolean, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class CelebrantKind(str, enum.Enum):
    PRIEST = "priest"
    DEACON = "deacon"


class Location(TimestampMixin, Base):
    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    address: Mapped[str | None] = mapped_column(Text)
    seating_capacity: Mapped[int | None] = mapped_column(Integer)
    notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (Index("ix_locations_name", "name", unique=True),)

    def __repr__(self) -> str:
        return f"<Location {self.name}>"


class Celebrant(TimestampMixin, Base):
    __tablename__ = "celebrants"

    id: Mapped[int] = mapped_column(primary_key=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    kind: Mapped[CelebrantKind] = mapped_column(
        Enum(CelebrantKind, name="celebrant_kind", values_callable=lambda e: [x.value for x in e]),
        default=CelebrantKind.PRIEST,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    phone: Mapped[str | None] = mapped_column(String(20))
    email: Mapped[str | None] = mapped_column(String(254))

    def __repr__(self) -> str:
        return f"<Celebrant {self.kind.value} {self.full_name}>"
