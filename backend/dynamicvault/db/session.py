"""Session Factory & Schema Helpers — DB access outside the FastAPI request cycle.

Invariants:
    - create_schema imports every model before create_all (metadata must be complete)
    - Meant for scripts, local SQLite dev, and test fixtures; production schema
      changes go through alembic

Design Decisions:
    - Separate from infrastructure/database.py: non-request contexts need the raw
      engine/session factory without the singleton manager
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from dynamicvault.db.base import Base


def create_session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine."""
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    import dynamicvault.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
