"""Database Session Manager — pooled async engine, per-request sessions, readiness check.

Invariants:
    - Every session rolls back on any exception before it propagates
    - SQLAlchemy exceptions surface as DatabaseError (503); domain errors pass
      through unchanged so routes keep their 4xx status
    - Sessions never expire attributes on commit (built via db/session.py)

Design Decisions:
    - Module-level db_manager set by the FastAPI lifespan, never at import time
    - SQLite URLs skip pool sizing arguments (local dev and tests run on aiosqlite)
    - Exception mapping is an ordered table: IntegrityError and OperationalError
      are DBAPIError subclasses, so they must be checked first
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from dynamicvault.core.errors import DatabaseError, DynamicVaultError
from dynamicvault.db.session import create_session_factory

logger = logging.getLogger(__name__)

_ERROR_MAP: list[tuple[type[SQLAlchemyError], str, str]] = [
    (IntegrityError, "Integrity constraint violated", "commit"),
    (OperationalError, "Connection or operational error", "execute"),
    (DBAPIError, "Database driver error", "query"),
    (SQLAlchemyError, "Database operation failed", "unknown"),
]


def _engine_kwargs(database_url: str, pool_size: int, max_overflow: int) -> dict:
    if database_url.startswith("sqlite"):
        return {}
    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


def _to_database_error(exc: SQLAlchemyError) -> DatabaseError:
    for exc_type, message, operation in _ERROR_MAP:
        if isinstance(exc, exc_type):
            logger.error(
                f"{exc_type.__name__} during {operation}: {exc}",
                extra={"error_code": "DATABASE_ERROR"},
            )
            return DatabaseError(message, operation)
    return DatabaseError("Database operation failed", "unknown")


class DatabaseSessionManager:
    """Owns the engine and hands out sessions that roll back on failure."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self.engine = create_async_engine(
            database_url,
            **_engine_kwargs(database_url, pool_size, max_overflow),
        )
        self._session_factory = create_session_factory(self.engine)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except DynamicVaultError:
            await session.rollback()
            raise
        except SQLAlchemyError as e:
            await session.rollback()
            raise _to_database_error(e) from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """True when a trivial query round-trips (readiness check)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
        except (DatabaseError, OSError) as e:
            logger.error(f"DB health check failed: {e}")
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> None:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)


async def close_db() -> None:
    global db_manager
    if db_manager:
        await db_manager.dispose()
        db_manager = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    if not db_manager:
        raise DatabaseError("Database not initialized", "connect")
    async with db_manager.session() as session:
        yield session
