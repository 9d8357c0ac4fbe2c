# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for database integration tests.

Tests run against an in-memory SQLite database unless TEST_DATABASE_URL
points at another async driver.
"""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from admissions.infrastructure.database import (
    SqlAlchemyAdmissionsRepository,
    build_sessionmaker,
    create_schema,
)
from admissions.infrastructure.database.tables import Base


@pytest.fixture(scope="session")
def database_url() -> str:
    """Get database URL for tests."""
    return os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")


@pytest_asyncio.fixture(scope="function")
async def db_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine with a fresh schema."""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(database_url, echo=False, poolclass=StaticPool)
    else:
        engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await create_schema(engine)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def db_sessionmaker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_sessionmaker(db_engine)


@pytest.fixture
def db_repository(
    db_sessionmaker: async_sessionmaker[AsyncSession],
) -> SqlAlchemyAdmissionsRepository:
    return SqlAlchemyAdmissionsRepository(db_sessionmaker)
