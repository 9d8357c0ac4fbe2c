# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Relational persistence adapter using SQLAlchemy async.

Example:
    from admissions.infrastructure.database import (
        init_database,
        get_sessionmaker,
        SqlAlchemyAdmissionsRepository,
    )

    await init_database(settings)
    repository = SqlAlchemyAdmissionsRepository(get_sessionmaker())
    applicants = await repository.list_applicants()
"""

from admissions.infrastructure.database.connection import (
    build_sessionmaker,
    check_database_connection,
    close_database,
    create_schema,
    get_engine,
    get_sessionmaker,
    init_database,
    session_scope,
)
from admissions.infrastructure.database.repository import SqlAlchemyAdmissionsRepository

__all__ = [
    "SqlAlchemyAdmissionsRepository",
    "build_sessionmaker",
    "check_database_connection",
    "close_database",
    "create_schema",
    "get_engine",
    "get_sessionmaker",
    "init_database",
    "session_scope",
]
