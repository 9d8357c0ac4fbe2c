# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic models shared across the admissions domains."""

from admissions.models.applicant import (
    Address,
    Applicant,
    ApplicantState,
    CalledUpState,
    EnrolledState,
    GuardianContact,
    RankedApplicant,
    RefusedState,
    TransferRequestedState,
    WaitlistedState,
    WithdrawnState,
)
from admissions.models.audit import AuditEntry
from admissions.models.common import (
    EXIT_STATUSES,
    SYSTEM_APPLICANT_ID,
    AgeCohort,
    ApplicantStatus,
    SeatRef,
    TransitionCohort,
)
from admissions.models.planning import PlanningEntry
from admissions.models.seat import ClassroomTemplate, Seat

__all__ = [
    "Address",
    "AgeCohort",
    "Applicant",
    "ApplicantState",
    "ApplicantStatus",
    "AuditEntry",
    "CalledUpState",
    "ClassroomTemplate",
    "EXIT_STATUSES",
    "EnrolledState",
    "GuardianContact",
    "PlanningEntry",
    "RankedApplicant",
    "RefusedState",
    "SYSTEM_APPLICANT_ID",
    "Seat",
    "SeatRef",
    "TransferRequestedState",
    "TransitionCohort",
    "WaitlistedState",
    "WithdrawnState",
]
