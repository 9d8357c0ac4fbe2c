# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit log service.

Every mutating operation appends exactly one immutable AuditEntry through
the persistence collaborator. Entries are never updated or deleted.
"""

from __future__ import annotations

import logging

from admissions.core.config.settings import get_settings
from admissions.infrastructure.persistence.base import AdmissionsRepository
from admissions.models import SYSTEM_APPLICANT_ID, AuditEntry
from admissions.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)


class AuditLog:
    """Append-only history of applicant changes.

    Attributes:
        repository: Persistence collaborator.
        clock: Source of entry timestamps.
        actor: Operator recorded on every entry.
    """

    def __init__(
        self,
        repository: AdmissionsRepository,
        clock: Clock = utc_now,
        actor: str | None = None,
    ) -> None:
        self.repository = repository
        self.clock = clock
        self.actor = actor or get_settings().operator

    async def record(self, applicant_id: str, action: str, detail: str) -> AuditEntry:
        """Append an entry for one applicant.

        Args:
            applicant_id: Applicant affected.
            action: Short action label.
            detail: Human-readable description.

        Returns:
            The stored entry.

        Raises:
            PersistenceError: If the collaborator fails.
        """
        entry = AuditEntry(
            applicant_id=applicant_id,
            action=action,
            detail=detail,
            actor=self.actor,
            created_at=self.clock(),
        )
        await self.repository.append_audit(entry)
        logger.debug("Audit %s for %s by %s", action, applicant_id, self.actor)
        return entry

    async def record_system(self, action: str, detail: str) -> AuditEntry:
        """Append an entry for a bulk action under the system sentinel id."""
        return await self.record(SYSTEM_APPLICANT_ID, action, detail)

    async def history(self, applicant_id: str | None = None) -> list[AuditEntry]:
        """List entries newest first, optionally for one applicant."""
        return await self.repository.list_audit(applicant_id)
