"""Read surface over existing bookings, plus the save boundary.

The engine only reads through BookingRepository. The two write-side members
(booking_guard and add) exist for the save path: a conflict check is only
authoritative if it runs inside the same guard as the insert that follows.
"""

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import date
from typing import Protocol

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.booking import BookingStatus, WeddingBooking
from app.models.resources import Celebrant, Location
from app.services.snapshots import BookingCandidate, BookingSnapshot, ResourceType


def person_key(name: str) -> str:
    """Normalised identity used for case-insensitive person matching."""
    return name.strip().upper()


class BookingRepository(Protocol):
    async def find_active_bookings(
        self,
        booking_date: date,
        location_id: int | None = None,
        celebrant_id: int | None = None,
        exclude_id: int | None = None,
    ) -> list[BookingSnapshot]: ...

    async def find_active_bookings_for_person(self, name: str, from_date: date) -> list[BookingSnapshot]: ...

    async def count_active_bookings(
        self,
        booking_date: date,
        location_id: int | None = None,
        celebrant_id: int | None = None,
    ) -> int: ...

    async def resource_exists(self, resource_type: ResourceType, resource_id: int) -> bool: ...

    def booking_guard(self, candidate: BookingCandidate) -> AbstractAsyncContextManager[None]: ...

    async def add(self, candidate: BookingCandidate) -> BookingSnapshot: ...


class SqlBookingRepository:
    """BookingRepository over the request's AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _active(self):
        return (
            select(WeddingBooking)
            .options(selectinload(WeddingBooking.location), selectinload(WeddingBooking.celebrant))
            .where(WeddingBooking.status == BookingStatus.ACTIVE)
        )

    async def find_active_bookings(
        self,
        booking_date: date,
        location_id: int | None = None,
        celebrant_id: int | None = None,
        exclude_id: int | None = None,
    ) -> list[BookingSnapshot]:
        stmt = self._active().where(WeddingBooking.wedding_date == booking_date)
        if location_id is not None:
            stmt = stmt.where(WeddingBooking.location_id == location_id)
        if celebrant_id is not None:
            stmt = stmt.where(WeddingBooking.celebrant_id == celebrant_id)
        if exclude_id is not None:
            stmt = stmt.where(WeddingBooking.id != exclude_id)

        result = await self.db.execute(stmt.order_by(WeddingBooking.start_time))
        return [BookingSnapshot.from_model(b) for b in result.scalars().all()]

    async def find_active_bookings_for_person(self, name: str, from_date: date) -> list[BookingSnapshot]:
        """Active bookings on or after from_date where name appears as bride or groom."""
        key = func.upper(name.strip())
        result = await self.db.execute(
            self._active()
            .where(
                or_(
                    func.upper(func.trim(WeddingBooking.bride_name)) == key,
                    func.upper(func.trim(WeddingBooking.groom_name)) == key,
                ),
                WeddingBooking.wedding_date >= from_date,
            )
            .order_by(WeddingBooking.wedding_date, WeddingBooking.start_time)
        )
        return [BookingSnapshot.from_model(b) for b in result.scalars().all()]

    async def count_active_bookings(
        self,
        booking_date: date,
        location_id: int | None = None,
        celebrant_id: int | None = None,
    ) -> int:
        stmt = select(func.count(WeddingBooking.id)).where(
            WeddingBooking.wedding_date == booking_date,
            WeddingBooking.status == BookingStatus.ACTIVE,
        )
        if location_id is not None:
            stmt = stmt.where(WeddingBooking.location_id == location_id)
        if celebrant_id is not None:
            stmt = stmt.where(WeddingBooking.celebrant_id == celebrant_id)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def resource_exists(self, resource_type: ResourceType, resource_id: int) -> bool:
        model = Location if resource_type is ResourceType.LOCATION else Celebrant
        result = await self.db.execute(select(model.id).where(model.id == resource_id, model.is_active.is_(True)))
        return result.scalar_one_or_none() is not None

    @asynccontextmanager
    async def booking_guard(self, candidate: BookingCandidate) -> AsyncIterator[None]:
        """Serialise saves that touch the same location, celebrant or person.

        Uses SELECT ... FOR UPDATE on the location and celebrant rows (always in
        that order) and transaction-scoped advisory locks on the upper-cased
        names (sorted), so concurrent saves cannot deadlock. All locks are held
        until the request's transaction commits or rolls back.
        """
        await self.db.execute(select(Location.id).where(Location.id == candidate.location_id).with_for_update())
        await self.db.execute(select(Celebrant.id).where(Celebrant.id == candidate.celebrant_id).with_for_update())
        for key in sorted({person_key(n) for n in (candidate.bride_name, candidate.groom_name) if n.strip()}):
            await self.db.execute(select(func.pg_advisory_xact_lock(func.hashtext(key))))
        yield

    async def add(self, candidate: BookingCandidate) -> BookingSnapshot:
        booking = WeddingBooking(
            wedding_date=candidate.wedding_date,
            start_time=candidate.start_time,
            location_id=candidate.location_id,
            celebrant_id=candidate.celebrant_id,
            bride_name=candidate.bride_name.strip(),
            groom_name=candidate.groom_name.strip(),
            bride_phone=candidate.bride_phone,
            groom_phone=candidate.groom_phone,
            notes=candidate.notes,
        )
        self.db.add(booking)
        await self.db.flush()
        await self.db.refresh(booking, attribute_names=["location", "celebrant"])
        return BookingSnapshot.from_model(booking)


class InMemoryBookingRepository:
    """Dict-backed BookingRepository for tests and local experiments.

    A single asyncio.Lock stands in for the database locks of the SQL guard.
    """

    def __init__(
        self,
        bookings: Iterable[BookingSnapshot] = (),
        locations: dict[int, str] | None = None,
        celebrants: dict[int, str] | None = None,
    ) -> None:
        self._store: dict[int, BookingSnapshot] = {}
        self._locations = dict(locations or {})
        self._celebrants = dict(celebrants or {})
        self._lock = asyncio.Lock()
        self._next_id = 1
        for booking in bookings:
            self.put(booking)

    def put(self, booking: BookingSnapshot) -> None:
        self._store[booking.id] = booking
        self._next_id = max(self._next_id, booking.id + 1)

    def list_all(self) -> list[BookingSnapshot]:
        return list(self._store.values())

    def _active(self) -> list[BookingSnapshot]:
        return [b for b in self._store.values() if b.status == BookingStatus.ACTIVE]

    async def find_active_bookings(
        self,
        booking_date: date,
        location_id: int | None = None,
        celebrant_id: int | None = None,
        exclude_id: int | None = None,
    ) -> list[BookingSnapshot]:
        found = [
            b
            for b in self._active()
            if b.wedding_date == booking_date
            and (location_id is None or b.location_id == location_id)
            and (celebrant_id is None or b.celebrant_id == celebrant_id)
            and (exclude_id is None or b.id != exclude_id)
        ]
        return sorted(found, key=lambda b: b.start_time)

    async def find_active_bookings_for_person(self, name: str, from_date: date) -> list[BookingSnapshot]:
        key = person_key(name)
        found = [
            b
            for b in self._active()
            if b.wedding_date >= from_date and key in (person_key(b.bride_name), person_key(b.groom_name))
        ]
        return sorted(found, key=lambda b: (b.wedding_date, b.start_time))

    async def count_active_bookings(
        self,
        booking_date: date,
        location_id: int | None = None,
        celebrant_id: int | None = None,
    ) -> int:
        return len(await self.find_active_bookings(booking_date, location_id, celebrant_id))

    async def resource_exists(self, resource_type: ResourceType, resource_id: int) -> bool:
        known = self._locations if resource_type is ResourceType.LOCATION else self._celebrants
        return resource_id in known

    @asynccontextmanager
    async def booking_guard(self, candidate: BookingCandidate) -> AsyncIterator[None]:
        async with self._lock:
            yield

    async def add(self, candidate: BookingCandidate) -> BookingSnapshot:
        booking = BookingSnapshot(
            id=self._next_id,
            wedding_date=candidate.wedding_date,
            start_time=candidate.start_time,
            location_id=candidate.location_id,
            celebrant_id=candidate.celebrant_id,
            bride_name=candidate.bride_name.strip(),
            groom_name=candidate.groom_name.strip(),
            location_name=self._locations.get(candidate.location_id),
            celebrant_name=self._celebrants.get(candidate.celebrant_id),
        )
        self.put(booking)
        return booking
