# shortlet/schemas/property.py
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, Field, field_serializer

from shortlet.schemas.user import PublicAgent


class PropertyOut(BaseModel):
    id: int
    owner_id: int
    title: str
    description: str
    price: Decimal
    images: List[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("price", when_used="json")
    def _two_places(self, value: Decimal) -> str:
        return f"{value:.2f}"


class PropertyDetail(PropertyOut):
    owner: PublicAgent


class PropertyCreate(BaseModel):
    title: str = Field(min_length=3, max_length=255)
    description: str = Field(min_length=10)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    images: List[str] = []


class PropertyUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=255)
    description: Optional[str] = Field(default=None, min_length=10)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    images: Optional[List[str]] = None
    is_active: Optional[bool] = None


class PropertiesPage(BaseModel):
    items: list[PropertyOut]
    total: int
    page: int
    per_page: int


class AdminPropertiesPage(BaseModel):
    items: list[PropertyDetail]
    total: int
    page: int
    per_page: int
