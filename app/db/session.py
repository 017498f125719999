# app/db/session.py
import os

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.config import get_settings
from app.db.base import Base
import app.models  # noqa: F401  (registers tables on Base.metadata)

settings = get_settings()

# pytest runs each test on its own event loop; pooled connections would leak across them
IS_TEST = "PYTEST_CURRENT_TEST" in os.environ

engine = create_async_engine(
    settings.DB_URL,
    echo=False,
    poolclass=NullPool if IS_TEST else None,
)

# The statistics repository opens one session per query so that a single
# request can run several queries concurrently.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def init_db_for_startup() -> None:
    """
    Create the users, meetings and assignment tables if they are missing.

    Existing tables and rows are never altered.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close pooled connections on application shutdown."""
    await engine.dispose()
