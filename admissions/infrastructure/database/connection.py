# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

Uses SQLAlchemy 2.0 async API. Production deployments use the asyncpg
driver; tests run against aiosqlite.

Example:
    from admissions.infrastructure.database.connection import (
        init_database,
        get_sessionmaker,
    )

    await init_database(settings)
    repository = SqlAlchemyAdmissionsRepository(get_sessionmaker())
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from admissions.core.exceptions import PersistenceError
from admissions.infrastructure.database.tables import Base

if TYPE_CHECKING:
    from admissions.core.config.settings import Settings

# Module-level state for the shared connection
_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used by the repository.

    Args:
        engine: Async engine to bind.

    Returns:
        Async sessionmaker with expire_on_commit disabled.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_database(settings: "Settings", **engine_kwargs: Any) -> None:
    """Initialize the shared engine and sessionmaker.

    Args:
        settings: Application settings containing database configuration.
        **engine_kwargs: Extra create_async_engine arguments.

    Raises:
        PersistenceError: If engine creation fails.
    """
    global _engine, _sessionmaker

    try:
        _engine = create_async_engine(
            settings.database.url,
            echo=settings.database.echo,
            pool_pre_ping=True,
            **engine_kwargs,
        )
        _sessionmaker = build_sessionmaker(_engine)
    except SQLAlchemyError as e:
        raise PersistenceError("Failed to initialize database connection", e) from e


async def close_database() -> None:
    """Dispose the shared engine."""
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_engine() -> AsyncEngine:
    """Get the shared engine.

    Raises:
        PersistenceError: If the database has not been initialized.
    """
    if _engine is None:
        raise PersistenceError("Database not initialized. Call init_database() first.")
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the shared sessionmaker.

    Raises:
        PersistenceError: If the database has not been initialized.
    """
    if _sessionmaker is None:
        raise PersistenceError("Database not initialized. Call init_database() first.")
    return _sessionmaker


async def create_schema(engine: AsyncEngine) -> None:
    """Create all admissions tables that do not exist yet.

    Args:
        engine: Async engine to run DDL on.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def session_scope(
    sessionmaker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Open a session that commits on success and rolls back on error.

    Yields:
        AsyncSession for database operations.

    Raises:
        PersistenceError: If a database operation fails.
    """
    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise PersistenceError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


async def check_database_connection(engine: AsyncEngine) -> bool:
    """Check if the database is reachable.

    Returns:
        True if the database is reachable, False otherwise.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
