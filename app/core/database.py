"""
Database configuration with SQLAlchemy async support.
Uses SQLite for development, easily switchable to PostgreSQL for production.

The PersistenceGateway is the only way resource managers reach the database:
it hands out sessions inside a transaction and turns driver failures into
StorageError.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import DB_DIR
from app.core.errors import StorageError

logger = logging.getLogger(__name__)

# Database URL - use SQLite for dev, PostgreSQL for prod
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{DB_DIR / 'auditdesk.db'}"
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def create_engine_for(url: str, echo: bool = False):
    """Create an async engine, enabling foreign keys when the backend is SQLite."""
    engine = create_async_engine(url, echo=echo, future=True)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            # audit_assets relies on ON DELETE CASCADE
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine_for(
    DATABASE_URL,
    echo=os.getenv("SQL_DEBUG", "false").lower() == "true",
)

# Session factory
async_session_maker = create_session_maker(engine)


class PersistenceGateway:
    """
    Executes queries against the relational store and owns transaction
    boundaries.

    Usage:
        async with gateway.transaction("create audit") as session:
            session.add(audit)

    The block commits when it exits normally and rolls back on any
    exception. SQLAlchemy errors are re-raised as StorageError with a
    message built from ``action``; the driver detail is only logged.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    @asynccontextmanager
    async def transaction(self, action: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            logger.error("Database error while trying to %s: %s", action, exc)
            raise StorageError(f"Failed to {action}") from exc

    async def ping(self) -> bool:
        """Check that the database answers a trivial query."""
        from sqlalchemy import text

        try:
            async with self._session_maker() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("Database health check failed: %s", exc)
            return False
        return True


# One gateway for the lifetime of the process
gateway = PersistenceGateway(async_session_maker)


def get_gateway() -> PersistenceGateway:
    """Dependency for getting the process-wide persistence gateway."""
    return gateway


async def init_db(bind=None):
    """Initialize the database tables."""
    # Register every table on Base.metadata
    import app.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections."""
    await engine.dispose()
