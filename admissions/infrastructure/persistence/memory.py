# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory persistence collaborator for tests and local runs."""

import logging
from typing import Iterable, Sequence

from admissions.core.exceptions import ApplicantNotFoundError
from admissions.infrastructure.persistence.base import AdmissionsRepository
from admissions.models import Applicant, ApplicantState, AuditEntry, Seat

logger = logging.getLogger(__name__)


class InMemoryAdmissionsRepository(AdmissionsRepository):
    """Dictionary-backed repository.

    Seat occupancy is not recomputed on updates; callers that need it seed
    seats with the occupancy they expect.
    """

    def __init__(
        self,
        applicants: Iterable[Applicant] = (),
        seats: Iterable[Seat] = (),
        audit: Iterable[AuditEntry] = (),
    ) -> None:
        self._applicants: dict[str, Applicant] = {a.id: a for a in applicants}
        self._seats: list[Seat] = list(seats)
        self._audit: list[AuditEntry] = list(audit)

    async def list_applicants(self) -> list[Applicant]:
        return sorted(self._applicants.values(), key=lambda a: a.registered_at)

    async def get_applicant(self, applicant_id: str) -> Applicant:
        try:
            return self._applicants[applicant_id]
        except KeyError:
            raise ApplicantNotFoundError(f"Applicant {applicant_id} not found") from None

    async def update_applicant(self, applicant_id: str, state: ApplicantState) -> Applicant:
        applicant = await self.get_applicant(applicant_id)
        updated = applicant.with_state(state)
        self._applicants[applicant_id] = updated
        logger.debug("Updated applicant %s to %s", applicant_id, updated.status.value)
        return updated

    async def bulk_update_applicants(
        self,
        applicant_ids: Sequence[str],
        state: ApplicantState,
    ) -> int:
        missing = [i for i in applicant_ids if i not in self._applicants]
        if missing:
            raise ApplicantNotFoundError(f"Applicants not found: {', '.join(missing)}")
        for applicant_id in applicant_ids:
            self._applicants[applicant_id] = self._applicants[applicant_id].with_state(state)
        return len(applicant_ids)

    async def append_audit(self, entry: AuditEntry) -> None:
        self._audit.append(entry)

    async def list_audit(self, applicant_id: str | None = None) -> list[AuditEntry]:
        entries = [
            e for e in self._audit
            if applicant_id is None or e.applicant_id == applicant_id
        ]
        return sorted(entries, key=lambda e: e.created_at, reverse=True)

    async def list_seats(self, facility_id: str | None = None) -> list[Seat]:
        return [
            s for s in self._seats
            if facility_id is None or s.facility_id == facility_id
        ]
