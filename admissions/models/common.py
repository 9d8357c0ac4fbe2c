# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enums and value types for the admissions models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

SYSTEM_APPLICANT_ID = "system"


class ApplicantStatus(str, Enum):
    """Lifecycle status of an applicant."""

    WAITLISTED = "waitlisted"
    CALLED_UP = "called_up"
    ENROLLED = "enrolled"
    WITHDRAWN = "withdrawn"
    REFUSED = "refused"
    TRANSFER_REQUESTED = "transfer_requested"


# Planned statuses that take the applicant out of any seat
EXIT_STATUSES = frozenset(
    {ApplicantStatus.WITHDRAWN, ApplicantStatus.REFUSED, ApplicantStatus.WAITLISTED}
)


class TransitionCohort(str, Enum):
    """Group an applicant falls into for the annual transition.

    - INTERNAL_TRANSFER: currently enrolled, needs a decision for next cycle
    - REQUEUE_RECLASSIFIED: waitlisted or called up, reclassified by age
    - FINAL_EXIT: withdrawn or refused, candidates for reactivation
    """

    INTERNAL_TRANSFER = "internal_transfer"
    REQUEUE_RECLASSIFIED = "requeue_reclassified"
    FINAL_EXIT = "final_exit"


class AgeCohort(str, Enum):
    """Classroom age band derived from age at the yearly cutoff date."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    INELIGIBLE = "ineligible"


class SeatRef(BaseModel):
    """Reference to a classroom seat at a facility.

    Names are carried for display and audit text only; identity comparisons
    go through same_place().

    Attributes:
        facility_id: Facility identifier.
        classroom_id: Classroom identifier.
        facility_name: Facility display name.
        classroom_name: Classroom display name.
    """

    model_config = ConfigDict(frozen=True)

    facility_id: str = Field(min_length=1)
    classroom_id: str = Field(min_length=1)
    facility_name: str | None = None
    classroom_name: str | None = None

    @property
    def is_complete(self) -> bool:
        """Whether ids and display names are all present."""
        return bool(self.facility_name) and bool(self.classroom_name)

    @property
    def label(self) -> str:
        """Display label, falling back to ids when names are missing."""
        facility = self.facility_name or self.facility_id
        classroom = self.classroom_name or self.classroom_id
        return f"{facility} - {classroom}"

    def same_place(self, other: "SeatRef | None") -> bool:
        """Compare facility and classroom ids, ignoring display names."""
        if other is None:
            return False
        return (self.facility_id, self.classroom_id) == (
            other.facility_id,
            other.classroom_id,
        )
