# shortlet/db/crud_bookings.py

from datetime import date, datetime
from decimal import Decimal
from typing import List

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from shortlet.core.errors import Conflict, InvalidTransition, NotFound
from shortlet.db.models import (
    BOOKING_CONFIRMED,
    BOOKING_PENDING,
    Booking,
    Property,
    User,
)
from shortlet.services.repositories import BookingListItem, NewBooking


async def get_booking(db: AsyncSession, booking_id: int) -> Booking | None:
    # populate_existing: status may have been changed by a bulk UPDATE
    res = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


async def find_confirmed_overlapping(
    db: AsyncSession,
    property_id: int,
    start: date,
    end: date,
) -> List[Booking]:
    """
    Confirmed bookings of the property intersecting [start, end).
    """
    stmt = select(Booking).where(
        Booking.property_id == property_id,
        Booking.status == BOOKING_CONFIRMED,
        Booking.check_in_date < end,
        Booking.check_out_date > start,
    )
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def create_booking(
    db: AsyncSession,
    *,
    guest_id: int,
    property_id: int,
    check_in_date: date,
    check_out_date: date,
    total_price: Decimal,
) -> Booking:
    now = datetime.utcnow()
    booking = Booking(
        guest_id=guest_id,
        property_id=property_id,
        check_in_date=check_in_date,
        check_out_date=check_out_date,
        total_price=total_price,
        status=BOOKING_PENDING,
        created_at=now,
        updated_at=now,
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    return booking


async def update_booking_status(
    db: AsyncSession,
    booking_id: int,
    new_status: str,
    *,
    expected: str,
) -> Booking:
    """
    Set the status only if it is still ``expected``.
    """
    res = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == expected)
        .values(status=new_status, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        # nothing written; commit just ends the transaction without expiring loaded rows
        await db.commit()
        current = await get_booking(db, booking_id)
        if current is None:
            raise NotFound("Booking not found")
        raise InvalidTransition(f"Booking is {current.status}, not {expected}")

    await db.commit()
    return await get_booking(db, booking_id)


async def _lock_property_row(db: AsyncSession, property_id: int) -> None:
    # Serializes confirmations per property. SQLite already serializes writers.
    stmt = select(Property.id).where(Property.id == property_id)
    if db.get_bind().dialect.name == "postgresql":
        stmt = stmt.with_for_update()
    await db.execute(stmt)


async def confirm_booking(db: AsyncSession, booking_id: int) -> Booking:
    """
    pending -> confirmed, guarded by a NOT EXISTS over the property's other
    confirmed bookings, in a single UPDATE statement.
    """
    booking = await get_booking(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found")

    await _lock_property_row(db, booking.property_id)

    other = aliased(Booking)
    overlap = (
        select(other.id)
        .where(
            other.property_id == booking.property_id,
            other.status == BOOKING_CONFIRMED,
            other.id != booking.id,
            other.check_in_date < booking.check_out_date,
            other.check_out_date > booking.check_in_date,
        )
        .exists()
    )
    res = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking_id,
            Booking.status == BOOKING_PENDING,
            ~overlap,
        )
        .values(status=BOOKING_CONFIRMED, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        # nothing written; commit just ends the transaction without expiring loaded rows
        await db.commit()
        current = await get_booking(db, booking_id)
        if current is None:
            raise NotFound("Booking not found")
        if current.status != BOOKING_PENDING:
            raise InvalidTransition(f"Booking is {current.status}, not {BOOKING_PENDING}")
        raise Conflict("Property is not available for these dates")

    await db.commit()
    return await get_booking(db, booking_id)


async def list_bookings_for_guest(db: AsyncSession, guest_id: int) -> List[BookingListItem]:
    stmt = (
        select(Booking, Property.title, User.name)
        .join(Property, Booking.property_id == Property.id)
        .join(User, Property.owner_id == User.id)
        .where(Booking.guest_id == guest_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    res = await db.execute(stmt)
    return [BookingListItem(b, title, name) for b, title, name in res.all()]


async def list_bookings_for_owner(db: AsyncSession, owner_id: int) -> List[BookingListItem]:
    """
    All bookings for properties owned by owner_id
    """
    stmt = (
        select(Booking, Property.title, User.name)
        .join(Property, Booking.property_id == Property.id)
        .join(User, Booking.guest_id == User.id)
        .where(Property.owner_id == owner_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    res = await db.execute(stmt)
    return [BookingListItem(b, title, name) for b, title, name in res.all()]


async def count_bookings(db: AsyncSession) -> int:
    res = await db.execute(select(func.count(Booking.id)))
    return int(res.scalar_one())


class SqlBookingRepository:
    """BookingRepository over one request's AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_confirmed_overlapping(self, property_id: int, start: date, end: date) -> List[Booking]:
        return await find_confirmed_overlapping(self.db, property_id, start, end)

    async def create(self, new_booking: NewBooking) -> Booking:
        return await create_booking(
            self.db,
            guest_id=new_booking.guest_id,
            property_id=new_booking.property_id,
            check_in_date=new_booking.check_in_date,
            check_out_date=new_booking.check_out_date,
            total_price=new_booking.total_price,
        )

    async def find_by_id(self, booking_id: int) -> Booking | None:
        return await get_booking(self.db, booking_id)

    async def update_status(self, booking_id: int, new_status: str, *, expected: str) -> Booking:
        return await update_booking_status(self.db, booking_id, new_status, expected=expected)

    async def confirm(self, booking_id: int) -> Booking:
        return await confirm_booking(self.db, booking_id)

    async def list_for_guest(self, guest_id: int) -> List[BookingListItem]:
        return await list_bookings_for_guest(self.db, guest_id)

    async def list_for_owner(self, owner_id: int) -> List[BookingListItem]:
        return await list_bookings_for_owner(self.db, owner_id)
