# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Applicant data models.

An applicant's status is a tagged union: each state variant carries only
the fields that are valid while the applicant is in that status, so a
waitlisted applicant can never hold a seat and only a called-up applicant
has a response deadline.

Queue positions are not part of the stored record. They are produced by
the queue ranker as RankedApplicant views on every read.
"""

from datetime import date, datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from admissions.models.common import ApplicantStatus, SeatRef
from admissions.utils.datetime import ensure_aware


class WaitlistedState(BaseModel):
    """Waiting in the ranked queue.

    Attributes:
        penalty_timestamp: Replaces the registration date for ranking after a
            missed call-up.
    """

    model_config = ConfigDict(frozen=True)

    status: Literal["waitlisted"] = "waitlisted"
    penalty_timestamp: datetime | None = None

    @field_validator("penalty_timestamp")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_aware(value) if value is not None else None


class CalledUpState(BaseModel):
    """Offered a seat and waiting for the family's answer."""

    model_config = ConfigDict(frozen=True)

    status: Literal["called_up"] = "called_up"
    seat: SeatRef
    deadline: date


class EnrolledState(BaseModel):
    """Holding a seat."""

    model_config = ConfigDict(frozen=True)

    status: Literal["enrolled"] = "enrolled"
    seat: SeatRef


class TransferRequestedState(BaseModel):
    """Enrolled, keeping the current seat until a new one is assigned."""

    model_config = ConfigDict(frozen=True)

    status: Literal["transfer_requested"] = "transfer_requested"
    seat: SeatRef
    desired_facility_id: str


class WithdrawnState(BaseModel):
    """Left the system (dropout, transfer out or cycle completion)."""

    model_config = ConfigDict(frozen=True)

    status: Literal["withdrawn"] = "withdrawn"


class RefusedState(BaseModel):
    """Declined a call-up."""

    model_config = ConfigDict(frozen=True)

    status: Literal["refused"] = "refused"


ApplicantState = Annotated[
    Union[
        WaitlistedState,
        CalledUpState,
        EnrolledState,
        TransferRequestedState,
        WithdrawnState,
        RefusedState,
    ],
    Field(discriminator="status"),
]

SEATED_STATES = (CalledUpState, EnrolledState, TransferRequestedState)


class GuardianContact(BaseModel):
    """Guardian contact block."""

    name: str
    document: str | None = None
    phone: str | None = None
    email: str | None = None


class Address(BaseModel):
    """Home address block."""

    street: str | None = None
    district: str | None = None


class Applicant(BaseModel):
    """One child's enrollment record.

    Attributes:
        id: Applicant identifier.
        name: Child's name.
        birth_date: Birth date; None when missing or unparseable.
        social_program: Whether the family is a social program beneficiary.
        primary_facility_id: First facility preference.
        secondary_facility_id: Second facility preference.
        accepts_any_facility: Whether any facility is acceptable.
        guardian: Guardian contact block.
        address: Address block.
        notes: Free-text notes.
        state: Status-specific state variant.
        registered_at: Registration instant.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    birth_date: date | None = None
    social_program: bool = False
    primary_facility_id: str | None = None
    secondary_facility_id: str | None = None
    accepts_any_facility: bool = False
    guardian: GuardianContact | None = None
    address: Address | None = None
    notes: str | None = None
    state: ApplicantState = Field(default_factory=WaitlistedState)
    registered_at: datetime

    @field_validator("registered_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Naive registration instants are taken as UTC."""
        return ensure_aware(value)

    @property
    def status(self) -> ApplicantStatus:
        """Current lifecycle status."""
        return ApplicantStatus(self.state.status)

    @property
    def current_seat(self) -> SeatRef | None:
        """Seat held while called up, enrolled or transfer requested."""
        if isinstance(self.state, SEATED_STATES):
            return self.state.seat
        return None

    @property
    def convocation_deadline(self) -> date | None:
        """Response deadline while called up."""
        if isinstance(self.state, CalledUpState):
            return self.state.deadline
        return None

    @property
    def penalty_timestamp(self) -> datetime | None:
        """Ranking penalty while waitlisted."""
        if isinstance(self.state, WaitlistedState):
            return self.state.penalty_timestamp
        return None

    @property
    def desired_transfer_facility_id(self) -> str | None:
        """Facility requested while a transfer is pending."""
        if isinstance(self.state, TransferRequestedState):
            return self.state.desired_facility_id
        return None

    @property
    def effective_date(self) -> datetime:
        """Date used for queue ordering: the penalty if present, else registration."""
        return self.penalty_timestamp or self.registered_at

    def with_state(self, state: ApplicantState) -> "Applicant":
        """Return a copy of this applicant in a new state."""
        return self.model_copy(update={"state": state})


class RankedApplicant(BaseModel):
    """Read-only view of a waitlisted applicant with its computed position."""

    model_config = ConfigDict(frozen=True)

    applicant: Applicant
    position: int = Field(ge=1)
