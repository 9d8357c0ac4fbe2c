# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Planning session models for the annual transition."""

from pydantic import BaseModel, ConfigDict

from admissions.models.applicant import Applicant
from admissions.models.common import (
    EXIT_STATUSES,
    AgeCohort,
    ApplicantStatus,
    SeatRef,
    TransitionCohort,
)


class PlanningEntry(BaseModel):
    """Applicant as seen by the planning session, plus the operator's plan.

    Planned fields left as None mean "no change planned yet".

    Attributes:
        applicant: Snapshot of the applicant at session load.
        transition_cohort: Group derived from the current status.
        age_cohort: Age band at the cutoff date, for display.
        planned_status: Status the operator wants to move to.
        planned_seat: Seat the operator wants to assign.
        planned_justification: Operator justification for the change.
    """

    model_config = ConfigDict(frozen=True)

    applicant: Applicant
    transition_cohort: TransitionCohort
    age_cohort: AgeCohort = AgeCohort.INELIGIBLE
    planned_status: ApplicantStatus | None = None
    planned_seat: SeatRef | None = None
    planned_justification: str | None = None

    @property
    def id(self) -> str:
        return self.applicant.id

    @property
    def final_status(self) -> ApplicantStatus:
        """Planned status when set, otherwise the current one."""
        return self.planned_status or self.applicant.status

    @property
    def is_exit(self) -> bool:
        return self.final_status in EXIT_STATUSES

    def plan_key(self) -> tuple:
        """Fields compared to detect unsaved changes."""
        seat = self.planned_seat
        return (
            self.applicant.id,
            self.planned_status,
            seat.facility_id if seat else None,
            seat.classroom_id if seat else None,
            self.planned_justification,
        )
