from typing import List

from fastapi import APIRouter, Depends, status

from shortlet.api.dependencies import DbSession, require_role
from shortlet.core.errors import Forbidden, NotFound
from shortlet.core.security import ROLE_AGENT
from shortlet.db import crud_properties
from shortlet.db.models import Property, User
from shortlet.schemas.property import PropertyCreate, PropertyOut, PropertyUpdate

router = APIRouter()

AgentUser = Depends(require_role(ROLE_AGENT))


async def _owned_property(db, prop_id: int, user: User) -> Property:
    prop = await crud_properties.get_property(db, prop_id)
    if not prop:
        raise NotFound("Property not found")
    if prop.owner_id != user.id:
        raise Forbidden("Not authorized to manage this property")
    return prop


@router.get("/properties", response_model=List[PropertyOut])
async def agent_properties(db: DbSession, current_user: User = AgentUser):
    """
    All properties of the current agent, deactivated ones included.
    """
    items = await crud_properties.list_properties_for_owner(db, owner_id=current_user.id)
    return [PropertyOut.model_validate(p) for p in items]


@router.post("/properties", response_model=PropertyOut, status_code=status.HTTP_201_CREATED)
async def create_property(body: PropertyCreate, db: DbSession, current_user: User = AgentUser):
    prop = await crud_properties.create_property(
        db,
        owner_id=current_user.id,
        title=body.title,
        description=body.description,
        price=body.price,
        images=body.images,
        is_active=True,
    )
    return PropertyOut.model_validate(prop)


@router.put("/properties/{prop_id}", response_model=PropertyOut)
async def update_property(
    prop_id: int,
    body: PropertyUpdate,
    db: DbSession,
    current_user: User = AgentUser,
):
    """
    Owner only; admins manage users, not listings.
    """
    prop = await _owned_property(db, prop_id, current_user)
    prop = await crud_properties.update_property(db, prop, body.model_dump(exclude_unset=True))
    return PropertyOut.model_validate(prop)


@router.delete("/properties/{prop_id}", response_model=PropertyOut)
async def delete_property(prop_id: int, db: DbSession, current_user: User = AgentUser):
    """
    Deactivates the listing. Existing bookings are kept; new ones are refused.
    """
    prop = await _owned_property(db, prop_id, current_user)
    prop = await crud_properties.deactivate_property(db, prop)
    return PropertyOut.model_validate(prop)
