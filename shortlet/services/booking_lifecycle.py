# shortlet/services/booking_lifecycle.py
"""
Booking creation and status transitions.

A booking starts ``pending``. The property owner may confirm it; the guest or
the owner may cancel it, whether pending or confirmed. ``cancelled`` is final
and nothing ever returns to ``pending``.

Overlapping pending bookings are allowed to coexist. Only confirmed bookings
block a date range, and the overlap check is repeated atomically at confirm
time by the repository, so two overlapping bookings can never both end up
confirmed.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, FrozenSet, List, Tuple

from shortlet.core.errors import (
    Conflict,
    Forbidden,
    InvalidArgument,
    InvalidState,
    InvalidTransition,
    NotFound,
)
from shortlet.core.security import Identity
from shortlet.db.models import (
    BOOKING_CANCELLED,
    BOOKING_CONFIRMED,
    BOOKING_PENDING,
    Booking,
    Property,
)
from shortlet.services.availability import DateRange, has_conflict
from shortlet.services.notifier import Notifier
from shortlet.services.repositories import (
    BookingListItem,
    BookingRepository,
    NewBooking,
    PropertyStore,
)

logger = logging.getLogger(__name__)

GUEST = "guest"
OWNER = "owner"

# (from, to) -> who may take the edge
TRANSITIONS: Dict[Tuple[str, str], FrozenSet[str]] = {
    (BOOKING_PENDING, BOOKING_CONFIRMED): frozenset({OWNER}),
    (BOOKING_PENDING, BOOKING_CANCELLED): frozenset({GUEST, OWNER}),
    (BOOKING_CONFIRMED, BOOKING_CANCELLED): frozenset({GUEST, OWNER}),
}


class BookingLifecycleManager:
    def __init__(
        self,
        properties: PropertyStore,
        bookings: BookingRepository,
        notifier: Notifier,
        today: Callable[[], date] = date.today,
    ):
        self.properties = properties
        self.bookings = bookings
        self.notifier = notifier
        self.today = today

    async def create_booking(
        self,
        caller: Identity,
        property_id: int,
        check_in: date,
        check_out: date,
        total_price: Decimal,
    ) -> Booking:
        prop = await self.properties.get_property(property_id)
        if prop is None:
            raise NotFound("Property not found")
        if not prop.is_active:
            raise InvalidState("Property is not accepting bookings")

        if check_in < self.today():
            raise InvalidArgument("Check-in date cannot be in the past")
        if check_out <= check_in:
            raise InvalidArgument("Check-out date must be after check-in date")
        if total_price is None or total_price <= 0:
            raise InvalidArgument("Total price must be positive")

        stay = DateRange(check_in, check_out)
        confirmed = await self.bookings.find_confirmed_overlapping(property_id, check_in, check_out)
        if has_conflict(stay, [DateRange(b.check_in_date, b.check_out_date) for b in confirmed]):
            logger.info(
                "booking rejected: property %s taken for %s..%s", property_id, check_in, check_out
            )
            raise Conflict("Property is not available for these dates")

        booking = await self.bookings.create(
            NewBooking(
                property_id=property_id,
                guest_id=caller.subject_id,
                check_in_date=check_in,
                check_out_date=check_out,
                total_price=total_price,
            )
        )
        logger.info(
            "booking %s created: property %s, guest %s, %s nights",
            booking.id, property_id, caller.subject_id, stay.nights,
        )
        return booking

    def _parties(self, caller: Identity, booking: Booking, prop: Property) -> FrozenSet[str]:
        parties = set()
        if booking.guest_id == caller.subject_id:
            parties.add(GUEST)
        # guests never act as owners, even on a property they somehow own
        if prop.owner_id == caller.subject_id and not caller.is_guest:
            parties.add(OWNER)
        return frozenset(parties)

    async def _load(self, booking_id: int) -> Booking:
        booking = await self.bookings.find_by_id(booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        return booking

    async def _property_of(self, booking: Booking) -> Property:
        prop = await self.properties.get_property(booking.property_id)
        if prop is None:
            raise NotFound("Property not found")
        return prop

    async def transition(self, caller: Identity, booking_id: int, target_status: str) -> Booking:
        booking = await self._load(booking_id)

        current = booking.status
        allowed = TRANSITIONS.get((current, target_status))
        if allowed is None:
            raise InvalidTransition(f"Cannot change a {current} booking to {target_status}")

        prop = await self._property_of(booking)
        if not allowed & self._parties(caller, booking, prop):
            logger.warning(
                "user %s (%s) may not move booking %s to %s",
                caller.subject_id, caller.role, booking_id, target_status,
            )
            raise Forbidden("Not authorized")

        if target_status == BOOKING_CONFIRMED:
            updated = await self.bookings.confirm(booking_id)
        else:
            updated = await self.bookings.update_status(booking_id, target_status, expected=current)
        logger.info("booking %s: %s -> %s by user %s", booking_id, current, target_status, caller.subject_id)

        await self._notify(updated, target_status)
        return updated

    async def _notify(self, booking: Booking, new_status: str) -> None:
        try:
            await self.notifier.notify(booking, new_status)
        except Exception:
            # the transition is already committed
            logger.exception("notification for booking %s (%s) failed", booking.id, new_status)

    async def confirm_booking(self, caller: Identity, booking_id: int) -> Booking:
        return await self.transition(caller, booking_id, BOOKING_CONFIRMED)

    async def cancel_booking(self, caller: Identity, booking_id: int) -> Booking:
        return await self.transition(caller, booking_id, BOOKING_CANCELLED)

    async def get_booking_for(self, caller: Identity, booking_id: int) -> Booking:
        """
        A single booking, visible to its guest and to the property owner.
        """
        booking = await self._load(booking_id)
        prop = await self._property_of(booking)
        if not self._parties(caller, booking, prop):
            raise Forbidden("Not authorized")
        return booking

    async def list_bookings_for(self, caller: Identity) -> List[BookingListItem]:
        if caller.is_guest:
            return await self.bookings.list_for_guest(caller.subject_id)
        return await self.bookings.list_for_owner(caller.subject_id)
