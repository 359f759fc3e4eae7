# scripts/seed.py
import asyncio
from decimal import Decimal

from shortlet.core.security import ROLE_ADMIN, ROLE_AGENT, ROLE_USER
from shortlet.db.base import Base
from shortlet.db.crud_properties import create_property, list_properties_for_owner
from shortlet.db.crud_users import create_user, get_user_by_email
from shortlet.db.session import AsyncSessionLocal, engine


async def _ensure_user(db, email, name, role):
    user = await get_user_by_email(db, email)
    if not user:
        user = await create_user(db, name=name, email=email, password="password123", role=role)
    return user


async def seed(session_factory=AsyncSessionLocal, bind=engine):
    # create tables (if migrations not run)
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as db:
        await _ensure_user(db, "admin@example.com", "Admin", ROLE_ADMIN)
        for i in range(3):
            await _ensure_user(db, f"guest{i}@example.com", f"Guest {i}", ROLE_USER)

        for i in range(2):
            agent = await _ensure_user(db, f"agent{i}@example.com", f"Agent {i}", ROLE_AGENT)
            if await list_properties_for_owner(db, agent.id):
                continue
            for j in range(3):
                await create_property(
                    db,
                    owner_id=agent.id,
                    title=f"Apartment {i}-{j}",
                    description="Bright two-bedroom flat close to the city centre.",
                    price=Decimal("80.00") + 15 * j,
                    images=[],
                    is_active=True,
                )
    print("Seed complete")


if __name__ == "__main__":
    asyncio.run(seed())
