# shortlet/api/routers/properties.py
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Query

from shortlet.api.dependencies import DbSession
from shortlet.core.errors import NotFound
from shortlet.db import crud_properties
from shortlet.schemas.property import PropertiesPage, PropertyDetail, PropertyOut
from shortlet.schemas.user import PublicAgent

router = APIRouter()


@router.get("", response_model=PropertiesPage)
async def list_properties(
    db: DbSession,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    sort: Optional[str] = Query(None, pattern="^price_(asc|desc)$"),
):
    """
    Public listings – active properties only.
    """
    filters = {
        "search": search,
        "min_price": min_price,
        "max_price": max_price,
        "sort": sort,
    }
    items, total = await crud_properties.list_properties(
        db,
        filters=filters,
        page=page,
        per_page=per_page,
    )
    return PropertiesPage(
        items=[PropertyOut.model_validate(p) for p in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{prop_id}", response_model=PropertyDetail)
async def get_property_detail(prop_id: int, db: DbSession):
    found = await crud_properties.get_property_with_owner(db, prop_id)
    if not found:
        raise NotFound("Property not found")

    prop, owner = found
    base = PropertyOut.model_validate(prop).model_dump()
    return PropertyDetail(**base, owner=PublicAgent.model_validate(owner))
