# shortlet/db/crud_properties.py
from datetime import datetime
from typing import Tuple, List, Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from shortlet.db.models import Property, User


async def get_property(db: AsyncSession, prop_id: int) -> Property | None:
    res = await db.execute(select(Property).where(Property.id == prop_id))
    return res.scalars().first()


async def get_property_with_owner(db: AsyncSession, prop_id: int) -> Optional[Tuple[Property, User]]:
    stmt = (
        select(Property, User)
        .join(User, Property.owner_id == User.id)
        .where(Property.id == prop_id)
    )
    res = await db.execute(stmt)
    row = res.first()
    return (row[0], row[1]) if row else None


async def list_properties(
    db: AsyncSession,
    filters: dict = None,
    page: int = 1,
    per_page: int = 20,
) -> Tuple[List[Property], int]:
    """
    Public listing: ALWAYS only active properties.
    """
    filters = filters or {}
    stmt = select(Property).where(Property.is_active.is_(True))

    if filters.get("search"):
        pattern = f"%{filters['search']}%"
        stmt = stmt.where(or_(Property.title.ilike(pattern), Property.description.ilike(pattern)))
    if filters.get("min_price") is not None:
        stmt = stmt.where(Property.price >= filters["min_price"])
    if filters.get("max_price") is not None:
        stmt = stmt.where(Property.price <= filters["max_price"])

    sort = filters.get("sort")
    if sort == "price_asc":
        stmt = stmt.order_by(Property.price.asc())
    elif sort == "price_desc":
        stmt = stmt.order_by(Property.price.desc())
    else:
        # default: recent first
        stmt = stmt.order_by(Property.id.desc())

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total_res = await db.execute(count_stmt)
    total = total_res.scalar_one()

    offset = (page - 1) * per_page
    stmt = stmt.offset(offset).limit(per_page)
    res = await db.execute(stmt)
    items = list(res.scalars().all())
    return items, int(total)


async def list_properties_for_owner(db: AsyncSession, owner_id: int) -> List[Property]:
    """
    Agent dashboard: ALL their properties, including deactivated ones.
    """
    res = await db.execute(
        select(Property)
        .where(Property.owner_id == owner_id)
        .order_by(Property.id.desc())
    )
    return list(res.scalars().all())


async def list_properties_with_owners(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 10,
) -> Tuple[List[Tuple[Property, User]], int]:
    """
    Admin moderation view: every property, inactive ones included, newest first.
    """
    total_res = await db.execute(select(func.count(Property.id)))
    total = total_res.scalar_one()

    stmt = (
        select(Property, User)
        .join(User, Property.owner_id == User.id)
        .order_by(Property.created_at.desc(), Property.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    res = await db.execute(stmt)
    return [(prop, owner) for prop, owner in res.all()], int(total)


async def create_property(db: AsyncSession, **kwargs) -> Property:
    prop = Property(**kwargs)
    db.add(prop)
    await db.commit()
    await db.refresh(prop)
    return prop


async def update_property(db: AsyncSession, prop: Property, data: dict) -> Property:
    for k, v in data.items():
        if v is not None:
            setattr(prop, k, v)
    prop.updated_at = datetime.utcnow()
    db.add(prop)
    await db.commit()
    await db.refresh(prop)
    return prop


async def deactivate_property(db: AsyncSession, prop: Property) -> Property:
    """
    Properties are never removed; bookings keep pointing at them.
    """
    return await update_property(db, prop, {"is_active": False})


async def count_properties(db: AsyncSession) -> int:
    res = await db.execute(select(func.count(Property.id)))
    return int(res.scalar_one())


class SqlPropertyStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_property(self, property_id: int) -> Property | None:
        return await get_property(self.db, property_id)
