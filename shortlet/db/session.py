# shortlet/db/session.py
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from shortlet.core.config import Settings, settings  # NOTE: instance import, NOT class


def _connect_args(config: Settings) -> dict:
    # sqlite waits this long for a competing writer before raising "database is locked"
    if config.DATABASE_URL.startswith("sqlite"):
        return {"timeout": config.DB_TIMEOUT_SECONDS}
    if config.DATABASE_URL.startswith("postgresql+asyncpg"):
        return {"timeout": config.DB_TIMEOUT_SECONDS, "command_timeout": config.DB_TIMEOUT_SECONDS}
    return {}


def build_engine(config: Settings):
    kwargs = {"echo": False, "connect_args": _connect_args(config)}
    if not config.DATABASE_URL.startswith("sqlite"):
        kwargs["pool_timeout"] = config.DB_TIMEOUT_SECONDS
    return create_async_engine(config.DATABASE_URL, **kwargs)


engine = build_engine(settings)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# FastAPI dependency
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
