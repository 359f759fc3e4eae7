# shortlet/services/repositories.py
"""
Storage contracts the booking lifecycle depends on.

``shortlet.db.crud_bookings`` / ``shortlet.db.crud_properties`` provide the
SQLAlchemy implementations, ``shortlet.db.memory`` the in-process ones.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Protocol

from shortlet.db.models import Booking, Property


@dataclass(frozen=True)
class NewBooking:
    property_id: int
    guest_id: int
    check_in_date: date
    check_out_date: date
    total_price: Decimal


@dataclass(frozen=True)
class BookingListItem:
    """A booking plus the names the dashboards show next to it."""

    booking: Booking
    property_title: str
    # owner name for guests, guest name for owners
    counterpart_name: str


class PropertyStore(Protocol):
    async def get_property(self, property_id: int) -> Optional[Property]: ...


class BookingRepository(Protocol):
    async def find_confirmed_overlapping(
        self, property_id: int, start: date, end: date
    ) -> List[Booking]: ...

    async def create(self, new_booking: NewBooking) -> Booking: ...

    async def find_by_id(self, booking_id: int) -> Optional[Booking]: ...

    async def update_status(
        self, booking_id: int, new_status: str, *, expected: str
    ) -> Booking:
        """Compare-and-set; raises InvalidTransition if the status moved on."""
        ...

    async def confirm(self, booking_id: int) -> Booking:
        """
        pending -> confirmed in one atomic step that re-checks confirmed
        overlap for the property; raises Conflict if another booking won.
        """
        ...

    async def list_for_guest(self, guest_id: int) -> List[BookingListItem]: ...

    async def list_for_owner(self, owner_id: int) -> List[BookingListItem]: ...
