# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Persistence collaborator interface and the in-memory adapter.

The SQLAlchemy adapter lives in admissions.infrastructure.database.
"""

from admissions.infrastructure.persistence.base import AdmissionsRepository
from admissions.infrastructure.persistence.memory import InMemoryAdmissionsRepository

__all__ = [
    "AdmissionsRepository",
    "InMemoryAdmissionsRepository",
]
