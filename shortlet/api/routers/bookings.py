from typing import List

from fastapi import APIRouter, status

from shortlet.api.dependencies import CurrentIdentity, LifecycleManager
from shortlet.schemas.booking import BookingCreate, BookingListOut, BookingOut

router = APIRouter()


@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def create_booking(
    body: BookingCreate,
    caller: CurrentIdentity,
    manager: LifecycleManager,
):
    booking = await manager.create_booking(
        caller,
        property_id=body.property_id,
        check_in=body.check_in_date,
        check_out=body.check_out_date,
        total_price=body.total_price,
    )
    return BookingOut.model_validate(booking)


@router.get("", response_model=List[BookingListOut])
async def list_bookings(caller: CurrentIdentity, manager: LifecycleManager):
    """
    Guests see their own bookings; agents see bookings on their properties.
    """
    items = await manager.list_bookings_for(caller)
    return [BookingListOut.from_item(i) for i in items]


@router.get("/{booking_id}", response_model=BookingOut)
async def get_booking(booking_id: int, caller: CurrentIdentity, manager: LifecycleManager):
    booking = await manager.get_booking_for(caller, booking_id)
    return BookingOut.model_validate(booking)


@router.post("/{booking_id}/confirm", response_model=BookingOut)
async def confirm_booking(booking_id: int, caller: CurrentIdentity, manager: LifecycleManager):
    """
    Property owner only. Fails with 409 if the dates were confirmed for
    someone else in the meantime.
    """
    booking = await manager.confirm_booking(caller, booking_id)
    return BookingOut.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingOut)
async def cancel_booking(booking_id: int, caller: CurrentIdentity, manager: LifecycleManager):
    booking = await manager.cancel_booking(caller, booking_id)
    return BookingOut.model_validate(booking)
