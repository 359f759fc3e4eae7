# shortlet/schemas/booking.py
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_serializer

from shortlet.services.repositories import BookingListItem


class BookingCreate(BaseModel):
    property_id: int = Field(gt=0)
    check_in_date: date
    check_out_date: date
    total_price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)


class BookingOut(BaseModel):
    id: int
    property_id: int
    guest_id: int
    check_in_date: date
    check_out_date: date
    total_price: Decimal
    status: str
    created_at: datetime
    updated_at: datetime

    # Pydantic v2 style – replaces orm_mode=True
    model_config = {"from_attributes": True}

    @field_serializer("total_price", when_used="json")
    def _two_places(self, value: Decimal) -> str:
        return f"{value:.2f}"


class BookingListOut(BookingOut):
    property_title: str
    # owner name when a guest lists, guest name when an owner lists
    counterpart_name: str

    @classmethod
    def from_item(cls, item: BookingListItem) -> "BookingListOut":
        base = BookingOut.model_validate(item.booking).model_dump()
        return cls(**base, property_title=item.property_title, counterpart_name=item.counterpart_name)
