# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Seat lookup service.

This module provides the SeatService class for:
- Classrooms compatible with an applicant's age, full ones included
- Classrooms with free places
"""

from __future__ import annotations

import logging

from admissions.domains.eligibility.calculator import AgeEligibilityCalculator
from admissions.infrastructure.persistence.base import AdmissionsRepository
from admissions.models import Applicant, Seat

logger = logging.getLogger(__name__)


def _display_order(seat: Seat) -> tuple[str, str]:
    return (seat.facility_name, seat.classroom_name)


class SeatService:
    """Seat queries used when calling up or reallocating applicants.

    Attributes:
        repository: Persistence collaborator.
        eligibility: Calculator providing the age at the cutoff date.
    """

    def __init__(
        self,
        repository: AdmissionsRepository,
        eligibility: AgeEligibilityCalculator | None = None,
    ) -> None:
        self.repository = repository
        self.eligibility = eligibility or AgeEligibilityCalculator()

    async def compatible_seats(
        self,
        applicant: Applicant,
        facility_id: str | None = None,
        cutoff_year: int | None = None,
    ) -> list[Seat]:
        """Seats whose classroom template accepts the applicant's age.

        Full classrooms are included so operators can over-allocate
        deliberately; check Seat.vacancies before offering.

        Args:
            applicant: Applicant to place.
            facility_id: Restrict to one facility.
            cutoff_year: Year whose cutoff date the age is measured at.

        Returns:
            Compatible seats by facility then classroom name; empty when the
            birth date is missing.
        """
        if applicant.birth_date is None:
            logger.info("No compatible seats for %s: missing birth date", applicant.id)
            return []

        age_months = self.eligibility.age_at_cutoff_months(applicant.birth_date, cutoff_year)
        seats = await self.repository.list_seats(facility_id)
        compatible = [
            seat for seat in seats
            if seat.template is not None and seat.template.accepts(age_months)
        ]
        return sorted(compatible, key=_display_order)

    async def seats_with_vacancies(self, facility_id: str | None = None) -> list[Seat]:
        """Seats with at least one free place, by facility then classroom name."""
        seats = await self.repository.list_seats(facility_id)
        return sorted((s for s in seats if s.vacancies > 0), key=_display_order)
