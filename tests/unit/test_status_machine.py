# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the applicant status machine."""

from datetime import date, datetime, timezone

import pytest

from admissions.core.exceptions import ConstraintViolation, MinimumAgeError, ValidationError
from admissions.domains.lifecycle.machine import (
    ALLOWED_TRANSITIONS,
    AuditActions,
    StatusMachine,
    can_transition,
)
from admissions.models import (
    ApplicantStatus,
    CalledUpState,
    EnrolledState,
    RefusedState,
    TransferRequestedState,
    WaitlistedState,
    WithdrawnState,
)


DEADLINE = date(2025, 6, 17)


@pytest.fixture
def waitlisted(make_applicant):
    return make_applicant(
        state=WaitlistedState(penalty_timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc))
    )


@pytest.fixture
def called_up(make_applicant, seat):
    return make_applicant(state=CalledUpState(seat=seat, deadline=DEADLINE))


@pytest.fixture
def enrolled(make_applicant, seat):
    return make_applicant(state=EnrolledState(seat=seat))


class TestTransitionTable:
    """Tests for the allowed status graph."""

    def test_expected_pairs(self) -> None:
        S = ApplicantStatus
        assert can_transition(S.WAITLISTED, S.CALLED_UP)
        assert can_transition(S.TRANSFER_REQUESTED, S.CALLED_UP)
        assert can_transition(S.CALLED_UP, S.WAITLISTED)
        assert can_transition(S.REFUSED, S.WAITLISTED)
        assert len(ALLOWED_TRANSITIONS) == 11

    def test_disallowed_pairs(self) -> None:
        S = ApplicantStatus
        assert not can_transition(S.WAITLISTED, S.ENROLLED)
        assert not can_transition(S.WAITLISTED, S.WITHDRAWN)
        assert not can_transition(S.ENROLLED, S.WAITLISTED)
        assert not can_transition(S.REFUSED, S.CALLED_UP)

    def test_accepts_plain_strings(self) -> None:
        assert can_transition("called_up", "enrolled")


class TestCallUp:
    """Tests for call-up transitions."""

    def test_call_up_from_waitlist_clears_penalty(self, machine, waitlisted, seat) -> None:
        transition = machine.call_up(waitlisted, seat, DEADLINE)

        assert transition.source == ApplicantStatus.WAITLISTED
        assert transition.target == ApplicantStatus.CALLED_UP
        assert transition.state == CalledUpState(seat=seat, deadline=DEADLINE)
        assert transition.audit_action == AuditActions.CALL_UP
        assert "Sunflower - Nursery II A" in transition.audit_detail
        assert "17/06/2025" in transition.audit_detail

    def test_call_up_from_transfer_names_previous_seat(
        self, machine, make_applicant, seat, other_seat
    ) -> None:
        applicant = make_applicant(
            state=TransferRequestedState(seat=seat, desired_facility_id="fac-2")
        )

        transition = machine.call_up(applicant, other_seat, DEADLINE)

        assert transition.audit_action == AuditActions.TRANSFER_CALL_UP
        assert "from Sunflower - Nursery II A to Daisy - Nursery II B" in transition.audit_detail
        assert transition.state.seat == other_seat

    def test_call_up_enrolled_is_constraint_violation(self, machine, enrolled, other_seat) -> None:
        with pytest.raises(ConstraintViolation) as exc_info:
            machine.call_up(enrolled, other_seat, DEADLINE)

        assert exc_info.value.source == "enrolled"
        assert exc_info.value.target == "called_up"

    def test_call_up_too_young(self, machine, make_applicant, seat) -> None:
        baby = make_applicant(birth_date=date(2025, 3, 1))

        with pytest.raises(MinimumAgeError):
            machine.call_up(baby, seat, DEADLINE)

    def test_reassign_call_up_offers_new_seat(self, machine, called_up, other_seat) -> None:
        new_deadline = date(2025, 6, 20)

        transition = machine.reassign_call_up(called_up, other_seat, new_deadline)

        assert transition.source == ApplicantStatus.CALLED_UP
        assert transition.target == ApplicantStatus.CALLED_UP
        assert transition.state == CalledUpState(seat=other_seat, deadline=new_deadline)
        assert transition.audit_action == AuditActions.CALL_UP_REASSIGNED
        assert "from Sunflower - Nursery II A to Daisy - Nursery II B" in transition.audit_detail
        assert "20/06/2025" in transition.audit_detail

    def test_reassign_call_up_requires_called_up(self, machine, waitlisted, seat) -> None:
        with pytest.raises(ConstraintViolation):
            machine.reassign_call_up(waitlisted, seat, DEADLINE)


class TestResponses:
    """Tests for confirming, refusing and end of queue."""

    def test_confirm_keeps_seat(self, machine, called_up, seat) -> None:
        transition = machine.confirm_enrollment(called_up)

        assert transition.state == EnrolledState(seat=seat)
        assert transition.audit_action == AuditActions.ENROLLMENT_CONFIRMED

    def test_confirm_enforces_minimum_age(self, machine, make_applicant, seat) -> None:
        baby = make_applicant(
            birth_date=date(2025, 2, 1),
            state=CalledUpState(seat=seat, deadline=DEADLINE),
        )

        with pytest.raises(MinimumAgeError):
            machine.confirm_enrollment(baby)

    def test_refuse_requires_justification(self, machine, called_up) -> None:
        with pytest.raises(ValidationError):
            machine.refuse(called_up, "   ")

    def test_refuse(self, machine, called_up) -> None:
        transition = machine.refuse(called_up, "Family moved")

        assert transition.state == RefusedState()
        assert "Justification: Family moved" in transition.audit_detail

    def test_end_of_queue_sets_penalty_to_now(self, machine, called_up, clock) -> None:
        transition = machine.end_of_queue(called_up, "Deadline missed")

        assert isinstance(transition.state, WaitlistedState)
        assert transition.state.penalty_timestamp == clock.now
        assert transition.state.penalty_timestamp >= clock()
        assert transition.audit_action == AuditActions.END_OF_QUEUE

    def test_end_of_queue_only_from_called_up(self, machine, make_applicant) -> None:
        refused = make_applicant(state=RefusedState())

        with pytest.raises(ConstraintViolation):
            machine.end_of_queue(refused, "No answer")


class TestExits:
    """Tests for withdrawal, transfer out and reactivation."""

    @pytest.mark.parametrize("fixture_name", ["called_up", "enrolled"])
    def test_withdraw_clears_everything(self, machine, request, fixture_name) -> None:
        applicant = request.getfixturevalue(fixture_name)

        transition = machine.withdraw(applicant, "Dropped out")

        assert transition.state == WithdrawnState()
        assert transition.audit_action == AuditActions.WITHDRAWAL

    def test_withdraw_from_waitlist_is_not_allowed(self, machine, waitlisted) -> None:
        with pytest.raises(ConstraintViolation):
            machine.withdraw(waitlisted, "Dropped out")

    def test_transfer_out_and_cycle_completion_share_status(self, machine, enrolled) -> None:
        transfer = machine.transfer_out(enrolled, "Moved to another city")
        completion = machine.complete_cycle(enrolled, "Aged out")

        assert transfer.target == completion.target == ApplicantStatus.WITHDRAWN
        assert transfer.audit_action == AuditActions.TRANSFER_OUT
        assert completion.audit_action == AuditActions.CYCLE_COMPLETION

    def test_request_transfer_keeps_seat(self, machine, enrolled, seat) -> None:
        transition = machine.request_transfer(enrolled, "fac-2", "Closer to home")

        assert transition.state == TransferRequestedState(seat=seat, desired_facility_id="fac-2")
        assert "Closer to home" in transition.audit_detail

    def test_reactivate_has_no_penalty(self, machine, make_applicant) -> None:
        withdrawn = make_applicant(state=WithdrawnState())

        transition = machine.reactivate(withdrawn)

        assert transition.state == WaitlistedState()
        assert transition.state.penalty_timestamp is None


class TestReallocate:
    """Tests for classroom reallocation."""

    def test_reallocate_enrolled(self, machine, enrolled, other_seat) -> None:
        transition = machine.reallocate(enrolled, other_seat)

        assert not transition.is_status_change
        assert transition.state == EnrolledState(seat=other_seat)
        assert transition.audit_action == AuditActions.REALLOCATION

    def test_reallocate_requires_enrolled(self, machine, called_up, other_seat) -> None:
        with pytest.raises(ConstraintViolation):
            machine.reallocate(called_up, other_seat)


class TestTransitionTo:
    """Tests for target-status dispatch."""

    def test_waitlisted_from_called_up_is_end_of_queue(self, machine, called_up) -> None:
        transition = machine.transition_to(called_up, ApplicantStatus.WAITLISTED, "No answer")

        assert transition.audit_action == AuditActions.END_OF_QUEUE

    def test_waitlisted_from_refused_is_reactivation(self, machine, make_applicant) -> None:
        refused = make_applicant(state=RefusedState())

        transition = machine.transition_to(refused, ApplicantStatus.WAITLISTED)

        assert transition.audit_action == AuditActions.REACTIVATION

    def test_seat_targets_are_rejected(self, machine, waitlisted) -> None:
        with pytest.raises(ValidationError):
            machine.transition_to(waitlisted, ApplicantStatus.CALLED_UP)
