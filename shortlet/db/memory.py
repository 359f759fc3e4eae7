# shortlet/db/memory.py
"""
In-process property store and booking repository.

Same contracts as the SQL versions; a single asyncio.Lock stands in for the
database's write serialization, so compare-and-set and confirm are atomic
with respect to other coroutines on the same loop.
"""
import asyncio
import itertools
from datetime import date, datetime
from typing import Dict, List, Optional

from shortlet.core.errors import Conflict, InvalidTransition, NotFound
from shortlet.db.models import (
    BOOKING_CONFIRMED,
    BOOKING_PENDING,
    Booking,
    Property,
)
from shortlet.services.availability import DateRange, has_conflict
from shortlet.services.repositories import BookingListItem, NewBooking


class InMemoryPropertyStore:
    def __init__(self):
        self._properties: Dict[int, Property] = {}
        self._owner_names: Dict[int, str] = {}
        self._ids = itertools.count(1)

    def add(self, *, owner_id: int, price, is_active: bool = True, title: str = "", owner_name: str = "") -> Property:
        now = datetime.utcnow()
        prop = Property(
            id=next(self._ids),
            owner_id=owner_id,
            title=title,
            description="",
            price=price,
            images=[],
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        self._properties[prop.id] = prop
        if owner_name:
            self._owner_names[owner_id] = owner_name
        return prop

    def owner_name(self, owner_id: int) -> str:
        return self._owner_names.get(owner_id, "")

    def owned_by(self, owner_id: int) -> List[int]:
        return [p.id for p in self._properties.values() if p.owner_id == owner_id]

    async def get_property(self, property_id: int) -> Optional[Property]:
        return self._properties.get(property_id)


class InMemoryBookingRepository:
    def __init__(self, properties: InMemoryPropertyStore, guest_names: Optional[Dict[int, str]] = None):
        self._properties = properties
        self._guest_names = guest_names or {}
        self._bookings: Dict[int, Booking] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def find_confirmed_overlapping(self, property_id: int, start: date, end: date) -> List[Booking]:
        window = DateRange(start, end)
        return [
            b
            for b in self._bookings.values()
            if b.property_id == property_id
            and b.status == BOOKING_CONFIRMED
            and window.overlaps(DateRange(b.check_in_date, b.check_out_date))
        ]

    async def create(self, new_booking: NewBooking) -> Booking:
        async with self._lock:
            now = datetime.utcnow()
            booking = Booking(
                id=next(self._ids),
                property_id=new_booking.property_id,
                guest_id=new_booking.guest_id,
                check_in_date=new_booking.check_in_date,
                check_out_date=new_booking.check_out_date,
                total_price=new_booking.total_price,
                status=BOOKING_PENDING,
                created_at=now,
                updated_at=now,
            )
            self._bookings[booking.id] = booking
            return booking

    async def find_by_id(self, booking_id: int) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    async def update_status(self, booking_id: int, new_status: str, *, expected: str) -> Booking:
        async with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                raise NotFound("Booking not found")
            # yield so concurrent callers really interleave here
            await asyncio.sleep(0)
            if booking.status != expected:
                raise InvalidTransition(f"Booking is {booking.status}, not {expected}")
            booking.status = new_status
            booking.updated_at = datetime.utcnow()
            return booking

    async def confirm(self, booking_id: int) -> Booking:
        async with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                raise NotFound("Booking not found")
            await asyncio.sleep(0)
            if booking.status != BOOKING_PENDING:
                raise InvalidTransition(f"Booking is {booking.status}, not {BOOKING_PENDING}")
            others = [
                DateRange(b.check_in_date, b.check_out_date)
                for b in await self.find_confirmed_overlapping(
                    booking.property_id, booking.check_in_date, booking.check_out_date
                )
                if b.id != booking.id
            ]
            if has_conflict(DateRange(booking.check_in_date, booking.check_out_date), others):
                raise Conflict("Property is not available for these dates")
            booking.status = BOOKING_CONFIRMED
            booking.updated_at = datetime.utcnow()
            return booking

    def _newest_first(self, bookings) -> List[Booking]:
        return sorted(bookings, key=lambda b: (b.created_at, b.id), reverse=True)

    async def list_for_guest(self, guest_id: int) -> List[BookingListItem]:
        items = []
        for b in self._newest_first(b for b in self._bookings.values() if b.guest_id == guest_id):
            prop = await self._properties.get_property(b.property_id)
            items.append(BookingListItem(b, prop.title, self._properties.owner_name(prop.owner_id)))
        return items

    async def list_for_owner(self, owner_id: int) -> List[BookingListItem]:
        owned = set(self._properties.owned_by(owner_id))
        items = []
        for b in self._newest_first(b for b in self._bookings.values() if b.property_id in owned):
            prop = await self._properties.get_property(b.property_id)
            items.append(BookingListItem(b, prop.title, self._guest_names.get(b.guest_id, "")))
        return items
