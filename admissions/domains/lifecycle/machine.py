# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Applicant status machine.

This module defines the allowed status graph and builds, for each allowed
transition, the complete new state variant plus the audit entry text that
describes it. It performs no I/O: callers write the returned state through
the persistence collaborator and append the audit entry.

Allowed transitions:
- waitlisted -> called_up
- transfer_requested -> called_up
- called_up -> enrolled | refused | waitlisted (end of queue) | withdrawn
- called_up -> called_up (new seat offered, new deadline)
- enrolled -> transfer_requested | withdrawn
- transfer_requested -> withdrawn
- withdrawn | refused -> waitlisted (reactivation)

Seat reallocation of an enrolled applicant is a seat change, not a status
transition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from admissions.core.exceptions import ConstraintViolation, ValidationError
from admissions.domains.eligibility.calculator import AgeEligibilityCalculator
from admissions.models import (
    Applicant,
    ApplicantState,
    ApplicantStatus,
    CalledUpState,
    EnrolledState,
    RefusedState,
    SeatRef,
    TransferRequestedState,
    WaitlistedState,
    WithdrawnState,
)
from admissions.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

S = ApplicantStatus

ALLOWED_TRANSITIONS: frozenset[tuple[ApplicantStatus, ApplicantStatus]] = frozenset(
    {
        (S.WAITLISTED, S.CALLED_UP),
        (S.TRANSFER_REQUESTED, S.CALLED_UP),
        (S.CALLED_UP, S.ENROLLED),
        (S.CALLED_UP, S.REFUSED),
        (S.CALLED_UP, S.WAITLISTED),
        (S.CALLED_UP, S.WITHDRAWN),
        (S.ENROLLED, S.WITHDRAWN),
        (S.TRANSFER_REQUESTED, S.WITHDRAWN),
        (S.ENROLLED, S.TRANSFER_REQUESTED),
        (S.WITHDRAWN, S.WAITLISTED),
        (S.REFUSED, S.WAITLISTED),
    }
)


class AuditActions:
    """Audit action labels."""

    CALL_UP = "Call-up sent"
    TRANSFER_CALL_UP = "Transfer call-up sent"
    CALL_UP_REASSIGNED = "Call-up reassigned"
    ENROLLMENT_CONFIRMED = "Enrollment confirmed"
    CALL_UP_REFUSED = "Call-up refused"
    END_OF_QUEUE = "End of queue"
    WITHDRAWAL = "Withdrawal"
    TRANSFER_OUT = "Transfer out"
    CYCLE_COMPLETION = "Cycle completion"
    TRANSFER_REQUESTED = "Transfer requested"
    REACTIVATION = "Reactivated on waitlist"
    REALLOCATION = "Classroom reallocation"
    MASS_REALLOCATION = "Mass reallocation"
    MASS_STATUS_UPDATE = "Mass status update"


def can_transition(source: ApplicantStatus, target: ApplicantStatus) -> bool:
    """Whether the status graph allows source -> target."""
    return (ApplicantStatus(source), ApplicantStatus(target)) in ALLOWED_TRANSITIONS


@dataclass(frozen=True)
class Transition:
    """Result of applying one status machine action.

    Attributes:
        applicant_id: Applicant the transition applies to.
        source: Status before the transition.
        target: Status after the transition.
        state: Complete new state variant to persist.
        audit_action: Audit action label.
        audit_detail: Audit detail text, including any justification.
    """

    applicant_id: str
    source: ApplicantStatus
    target: ApplicantStatus
    state: ApplicantState
    audit_action: str
    audit_detail: str

    @property
    def is_status_change(self) -> bool:
        return self.source != self.target


def _require_justification(justification: str | None, action: str) -> str:
    text = (justification or "").strip()
    if not text:
        raise ValidationError(f"A justification is required for: {action}")
    return text


class StatusMachine:
    """Builds transitions for the applicant status graph.

    Every method checks the graph first and raises ConstraintViolation for a
    pair outside it. Call-up and enrollment confirmation also enforce the
    minimum-age gate.

    Attributes:
        clock: Source of the current instant for penalty timestamps.
        eligibility: Calculator enforcing the minimum-age gate.
    """

    def __init__(
        self,
        clock: Clock = utc_now,
        eligibility: AgeEligibilityCalculator | None = None,
    ) -> None:
        self.clock = clock
        self.eligibility = eligibility or AgeEligibilityCalculator(clock=clock)

    def _check(self, applicant: Applicant, target: ApplicantStatus) -> ApplicantStatus:
        source = applicant.status
        if not can_transition(source, target):
            logger.warning(
                "Rejected transition for %s: %s -> %s",
                applicant.id,
                source.value,
                target.value,
            )
            raise ConstraintViolation(source.value, target.value)
        return source

    def _build(
        self,
        applicant: Applicant,
        source: ApplicantStatus,
        state: ApplicantState,
        action: str,
        detail: str,
    ) -> Transition:
        return Transition(
            applicant_id=applicant.id,
            source=source,
            target=ApplicantStatus(state.status),
            state=state,
            audit_action=action,
            audit_detail=detail,
        )

    def call_up(self, applicant: Applicant, seat: SeatRef, deadline: date) -> Transition:
        """Offer a seat to a waitlisted applicant or one awaiting transfer.

        Args:
            applicant: Applicant to call up.
            seat: Seat being offered.
            deadline: Last day to respond.

        Returns:
            Transition into CalledUpState; any penalty is dropped.

        Raises:
            ConstraintViolation: If the applicant is in another status.
            MinimumAgeError: If the applicant is too young.
        """
        source = self._check(applicant, S.CALLED_UP)
        self.eligibility.ensure_minimum_age(applicant.birth_date, applicant.name)

        state = CalledUpState(seat=seat, deadline=deadline)
        due = deadline.strftime("%d/%m/%Y")
        if source == S.TRANSFER_REQUESTED:
            before = applicant.current_seat
            previous = before.label if before else "no seat"
            return self._build(
                applicant,
                source,
                state,
                AuditActions.TRANSFER_CALL_UP,
                f"Called up for transfer from {previous} to {seat.label}. Deadline {due}.",
            )
        return self._build(
            applicant,
            source,
            state,
            AuditActions.CALL_UP,
            f"Called up to {seat.label}. Deadline {due}.",
        )

    def reassign_call_up(self, applicant: Applicant, seat: SeatRef, deadline: date) -> Transition:
        """Offer a called-up applicant a different seat with a fresh deadline.

        Raises:
            ConstraintViolation: If the applicant is not called up.
            MinimumAgeError: If the applicant is too young.
        """
        source = applicant.status
        if source != S.CALLED_UP:
            raise ConstraintViolation(
                source.value,
                S.CALLED_UP.value,
                "Only called-up applicants can have their call-up reassigned",
            )
        self.eligibility.ensure_minimum_age(applicant.birth_date, applicant.name)
        previous = applicant.current_seat.label
        due = deadline.strftime("%d/%m/%Y")
        return self._build(
            applicant,
            source,
            CalledUpState(seat=seat, deadline=deadline),
            AuditActions.CALL_UP_REASSIGNED,
            f"Call-up moved from {previous} to {seat.label}. Deadline {due}.",
        )

    def confirm_enrollment(self, applicant: Applicant) -> Transition:
        """Confirm a called-up applicant in the offered seat.

        Raises:
            ConstraintViolation: If the applicant is not called up.
            MinimumAgeError: If the applicant is too young.
        """
        source = self._check(applicant, S.ENROLLED)
        self.eligibility.ensure_minimum_age(applicant.birth_date, applicant.name)
        seat = applicant.current_seat
        return self._build(
            applicant,
            source,
            EnrolledState(seat=seat),
            AuditActions.ENROLLMENT_CONFIRMED,
            f"Enrollment confirmed at {seat.label}.",
        )

    def refuse(self, applicant: Applicant, justification: str) -> Transition:
        """Record that the family declined the call-up."""
        source = self._check(applicant, S.REFUSED)
        text = _require_justification(justification, AuditActions.CALL_UP_REFUSED)
        seat = applicant.current_seat
        place = seat.label if seat else "the offered seat"
        return self._build(
            applicant,
            source,
            RefusedState(),
            AuditActions.CALL_UP_REFUSED,
            f"Call-up to {place} refused. Justification: {text}",
        )

    def end_of_queue(
        self,
        applicant: Applicant,
        justification: str,
        at: datetime | None = None,
    ) -> Transition:
        """Send a called-up applicant back to the end of the waitlist.

        Args:
            applicant: Called-up applicant.
            justification: Reason, usually a missed deadline.
            at: Penalty instant; the clock's now by default.

        Returns:
            Transition into WaitlistedState with a penalty timestamp.
        """
        source = self._check(applicant, S.WAITLISTED)
        if source != S.CALLED_UP:
            raise ConstraintViolation(
                source.value,
                S.WAITLISTED.value,
                "Only called-up applicants can be sent to the end of the queue",
            )
        text = _require_justification(justification, AuditActions.END_OF_QUEUE)
        penalty = at or self.clock()
        return self._build(
            applicant,
            source,
            WaitlistedState(penalty_timestamp=penalty),
            AuditActions.END_OF_QUEUE,
            f"{applicant.name} moved to the end of the queue. Justification: {text}",
        )

    def withdraw(
        self,
        applicant: Applicant,
        justification: str,
        action: str = AuditActions.WITHDRAWAL,
    ) -> Transition:
        """Take an applicant out of the system.

        Args:
            applicant: Called-up, enrolled or transfer-requested applicant.
            justification: Reason for leaving.
            action: Audit label; distinguishes dropout, transfer out and
                cycle completion, which share the withdrawn status.
        """
        source = self._check(applicant, S.WITHDRAWN)
        text = _require_justification(justification, action)
        return self._build(
            applicant,
            source,
            WithdrawnState(),
            action,
            f"{applicant.name} left ({action.lower()}). Justification: {text}",
        )

    def transfer_out(self, applicant: Applicant, justification: str) -> Transition:
        """Close an enrollment because the family moved away."""
        return self.withdraw(applicant, justification, action=AuditActions.TRANSFER_OUT)

    def complete_cycle(self, applicant: Applicant, justification: str) -> Transition:
        """Close an enrollment because the child aged out."""
        return self.withdraw(applicant, justification, action=AuditActions.CYCLE_COMPLETION)

    def request_transfer(
        self,
        applicant: Applicant,
        desired_facility_id: str,
        justification: str | None = None,
    ) -> Transition:
        """Flag an enrolled applicant for transfer; the seat is kept meanwhile."""
        source = self._check(applicant, S.TRANSFER_REQUESTED)
        detail = f"Transfer to facility {desired_facility_id} requested."
        if justification:
            detail = f"{detail} Justification: {justification.strip()}"
        return self._build(
            applicant,
            source,
            TransferRequestedState(
                seat=applicant.current_seat,
                desired_facility_id=desired_facility_id,
            ),
            AuditActions.TRANSFER_REQUESTED,
            detail,
        )

    def reactivate(self, applicant: Applicant) -> Transition:
        """Put a withdrawn or refused applicant back on the waitlist, no penalty."""
        source = self._check(applicant, S.WAITLISTED)
        if source not in (S.WITHDRAWN, S.REFUSED):
            raise ConstraintViolation(
                source.value,
                S.WAITLISTED.value,
                "Only withdrawn or refused applicants can be reactivated",
            )
        return self._build(
            applicant,
            source,
            WaitlistedState(),
            AuditActions.REACTIVATION,
            f"{applicant.name} reactivated on the waitlist.",
        )

    def reallocate(self, applicant: Applicant, seat: SeatRef) -> Transition:
        """Move an enrolled applicant to another classroom.

        Raises:
            ConstraintViolation: If the applicant is not enrolled.
        """
        source = applicant.status
        if source != S.ENROLLED:
            raise ConstraintViolation(
                source.value,
                S.ENROLLED.value,
                "Only enrolled applicants can be reallocated",
            )
        return self._build(
            applicant,
            source,
            EnrolledState(seat=seat),
            AuditActions.REALLOCATION,
            f"Reallocated to {seat.label}.",
        )

    def transition_to(
        self,
        applicant: Applicant,
        target: ApplicantStatus,
        justification: str | None = None,
        at: datetime | None = None,
    ) -> Transition:
        """Apply the action that reaches a target status needing no seat data.

        Waitlisted maps to end of queue for called-up applicants and to
        reactivation otherwise.

        Raises:
            ValidationError: If the target needs a seat or facility.
            ConstraintViolation: If the graph does not allow the move.
        """
        target = ApplicantStatus(target)
        if target == S.WITHDRAWN:
            return self.withdraw(applicant, justification or "")
        if target == S.REFUSED:
            return self.refuse(applicant, justification or "")
        if target == S.ENROLLED:
            return self.confirm_enrollment(applicant)
        if target == S.WAITLISTED:
            if applicant.status == S.CALLED_UP:
                return self.end_of_queue(applicant, justification or "", at=at)
            return self.reactivate(applicant)
        raise ValidationError(f"Status {target.value} requires seat or facility details")
