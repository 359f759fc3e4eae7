# shortlet/db/crud_users.py

from datetime import datetime
from typing import Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from shortlet.db.models import User
from shortlet.core.security import get_password_hash, ROLE_USER


async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    res = await db.execute(select(User).where(User.id == user_id))
    return res.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.email == email))
    return res.scalar_one_or_none()


async def list_users(
    db: AsyncSession,
    role: Optional[str] = None,
    page: int = 1,
    per_page: int = 10,
) -> Tuple[List[User], int]:
    stmt = select(User)
    if role:
        stmt = stmt.where(User.role == role)

    total_res = await db.execute(select(func.count()).select_from(stmt.subquery()))
    total = total_res.scalar_one()

    stmt = stmt.order_by(User.created_at.desc(), User.id.desc())
    stmt = stmt.offset((page - 1) * per_page).limit(per_page)
    res = await db.execute(stmt)
    return list(res.scalars().all()), int(total)


async def create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    phone: Optional[str] = None,
    role: str = ROLE_USER,
) -> User:
    """
    Create a user with hashed password.
    """
    hashed = get_password_hash(password)
    user = User(
        name=name,
        email=email,
        phone=phone,
        hashed_password=hashed,
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def _save(db: AsyncSession, user: User) -> User:
    user.updated_at = datetime.utcnow()
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def update_user_role(db: AsyncSession, user: User, role: str) -> User:
    user.role = role
    return await _save(db, user)


async def deactivate_user(db: AsyncSession, user: User) -> User:
    user.is_active = False
    return await _save(db, user)


async def count_users_by_role(db: AsyncSession, role: str) -> int:
    res = await db.execute(select(func.count(User.id)).where(User.role == role))
    return int(res.scalar_one())

