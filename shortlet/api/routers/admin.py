import logging

from fastapi import APIRouter, Depends, Query

from shortlet.api.dependencies import DbSession, require_role
from shortlet.core.errors import NotFound
from shortlet.core.security import ROLE_ADMIN, ROLE_AGENT, ROLE_USER
from shortlet.db import crud_bookings, crud_properties, crud_users
from shortlet.schemas.property import AdminPropertiesPage, PropertyDetail, PropertyOut
from shortlet.schemas.user import PublicAgent, UserBase, UserRoleUpdate, UsersPage

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_role(ROLE_ADMIN))])


@router.get("/overview")
async def admin_overview(db: DbSession):
    return {
        "users": await crud_users.count_users_by_role(db, ROLE_USER),
        "agents": await crud_users.count_users_by_role(db, ROLE_AGENT),
        "properties": await crud_properties.count_properties(db),
        "bookings": await crud_bookings.count_bookings(db),
    }


@router.get("/users", response_model=UsersPage)
async def admin_users(
    db: DbSession,
    role: str | None = Query(None, pattern="^(user|agent|admin)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
):
    users, total = await crud_users.list_users(db, role=role, page=page, per_page=per_page)
    return UsersPage(
        items=[UserBase.model_validate(u) for u in users],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.put("/users/{user_id}/role", response_model=UserBase)
async def set_role(user_id: int, body: UserRoleUpdate, db: DbSession):
    user = await crud_users.get_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    user = await crud_users.update_user_role(db, user, body.role)
    return UserBase.model_validate(user)


@router.put("/users/{user_id}/deactivate", response_model=UserBase)
async def deactivate_user(user_id: int, db: DbSession):
    user = await crud_users.get_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    user = await crud_users.deactivate_user(db, user)
    return UserBase.model_validate(user)


@router.get("/properties", response_model=AdminPropertiesPage)
async def admin_properties(
    db: DbSession,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
):
    rows, total = await crud_properties.list_properties_with_owners(db, page=page, per_page=per_page)
    items = [
        PropertyDetail(**PropertyOut.model_validate(prop).model_dump(), owner=PublicAgent.model_validate(owner))
        for prop, owner in rows
    ]
    return AdminPropertiesPage(items=items, total=total, page=page, per_page=per_page)


@router.put("/properties/{prop_id}/deactivate", response_model=PropertyOut)
async def deactivate_property(prop_id: int, db: DbSession):
    prop = await crud_properties.get_property(db, prop_id)
    if not prop:
        raise NotFound("Property not found")
    prop = await crud_properties.deactivate_property(db, prop)
    logger.info("admin deactivated property %s", prop.id)
    return PropertyOut.model_validate(prop)
