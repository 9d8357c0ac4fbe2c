# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Persistence collaborator interface.

The persistence collaborator is the source of truth for applicants, seats
and audit history. Every status or seat change goes through
update_applicant() or bulk_update_applicants() with the complete new state
variant, so the stored record never mixes fields of two statuses.

Implementations must report transport failures as PersistenceError.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from admissions.models import Applicant, ApplicantState, AuditEntry, Seat


class AdmissionsRepository(ABC):
    """Async access to applicants, seats and audit history."""

    @abstractmethod
    async def list_applicants(self) -> list[Applicant]:
        """List every applicant, oldest registration first."""

    @abstractmethod
    async def get_applicant(self, applicant_id: str) -> Applicant:
        """Get one applicant.

        Raises:
            ApplicantNotFoundError: If the id is unknown.
        """

    @abstractmethod
    async def update_applicant(self, applicant_id: str, state: ApplicantState) -> Applicant:
        """Replace an applicant's state.

        Args:
            applicant_id: Applicant identifier.
            state: New state variant.

        Returns:
            The updated applicant.

        Raises:
            ApplicantNotFoundError: If the id is unknown.
        """

    @abstractmethod
    async def bulk_update_applicants(
        self,
        applicant_ids: Sequence[str],
        state: ApplicantState,
    ) -> int:
        """Apply the same state to several applicants.

        Returns:
            Number of applicants updated.
        """

    @abstractmethod
    async def append_audit(self, entry: AuditEntry) -> None:
        """Append an audit entry."""

    @abstractmethod
    async def list_audit(self, applicant_id: str | None = None) -> list[AuditEntry]:
        """List audit entries, newest first, optionally for one applicant."""

    @abstractmethod
    async def list_seats(self, facility_id: str | None = None) -> list[Seat]:
        """List seats, optionally restricted to one facility."""
