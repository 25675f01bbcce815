"""
Database connection management.
Handles async SQLAlchemy engine and session creation.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from taskflow.config import Settings
from taskflow.db.models import Base
from taskflow.exceptions import StoreError

logger = logging.getLogger(__name__)


def _apply_sqlite_pragmas(dbapi_connection: Any, busy_timeout_ms: int) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode = WAL")
    cursor.execute(f"PRAGMA busy_timeout = {max(1, busy_timeout_ms)}")
    cursor.close()


def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine for the configured database URL.

    PostgreSQL gets a sized connection pool. SQLite (used for local runs and
    tests) gets one connection per session and a busy timeout so that
    concurrent writers wait instead of failing.

    Args:
        settings: Application settings.

    Returns:
        AsyncEngine: The SQLAlchemy async engine instance.
    """
    url = make_url(settings.database_url)
    echo = settings.log_level.upper() == "DEBUG"

    if url.get_backend_name() == "sqlite":
        engine = create_async_engine(url, poolclass=NullPool, echo=echo)
        event.listen(
            engine.sync_engine,
            "connect",
            lambda dbapi_connection, _: _apply_sqlite_pragmas(
                dbapi_connection,
                settings.database_busy_timeout_ms,
            ),
        )
        return engine

    return create_async_engine(
        url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        echo=echo,
        pool_pre_ping=True,
    )


class Database:
    """
    Owns the engine and session factory for one process.

    Created once at startup from the process settings and handed to the
    producer loop or the consumer app.
    """

    def __init__(self, settings: Settings, engine: AsyncEngine | None = None):
        self._settings = settings
        self._engine = engine or build_engine(settings)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def create_schema(self) -> None:
        """Create the tasks table and its indexes if they do not exist."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully")

    async def close(self) -> None:
        """
        Close the database connection.
        Should be called on shutdown.
        """
        await self._engine.dispose()
        logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """
        Context manager for a single unit of work.

        Commits on normal exit and rolls back if the body raises. Database
        errors, including a failed commit, surface as StoreError.

        Yields:
            AsyncSession: An async database session.
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StoreError(f"Database session failed: {e}") from e
            except Exception:
                await session.rollback()
                raise
