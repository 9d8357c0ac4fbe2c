# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the transition executor."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from admissions.core.exceptions import (
    PersistenceError,
    PlanIncompleteError,
    TransitionExecutionError,
    ValidationError,
)
from admissions.domains.audit.service import AuditLog
from admissions.domains.lifecycle.machine import AuditActions
from admissions.domains.lifecycle.service import LifecycleService
from admissions.domains.planning.executor import (
    BulkReallocationOperation,
    TransitionExecutor,
    TransitionOperation,
    is_changed,
)
from admissions.domains.planning.store import PlanningStore
from admissions.domains.queue.ranker import rank_waitlist
from admissions.infrastructure.events import EventTypes
from admissions.infrastructure.persistence.memory import InMemoryAdmissionsRepository
from admissions.models import (
    SYSTEM_APPLICANT_ID,
    ApplicantStatus,
    CalledUpState,
    EnrolledState,
    PlanningEntry,
    RefusedState,
    TransitionCohort,
    WaitlistedState,
    WithdrawnState,
)

SESSION = "2026:operator"


@pytest.fixture
def build(draft_cache, clock, eligibility, machine, event_bus, settings):
    """Wire a repository, store and executor around the given applicants."""

    def _build(*applicants):
        repository = InMemoryAdmissionsRepository(applicants)
        for name in ("update_applicant", "bulk_update_applicants", "append_audit"):
            setattr(repository, name, AsyncMock(side_effect=getattr(repository, name)))
        store = PlanningStore(draft_cache, SESSION, clock=clock, eligibility=eligibility)
        store.load(applicants)
        audit = AuditLog(repository, clock=clock, actor="operator@test")
        executor = TransitionExecutor(repository, store, machine, audit, event_bus, settings)
        return repository, store, executor

    return _build


def remote_calls(repository) -> int:
    return (
        repository.update_applicant.await_count
        + repository.bulk_update_applicants.await_count
        + repository.append_audit.await_count
    )


class TestChangeDetection:
    """Tests for is_changed."""

    def test_planned_status_equal_to_current_is_not_a_change(
        self, make_applicant, seat
    ) -> None:
        entry = PlanningEntry(
            applicant=make_applicant(state=EnrolledState(seat=seat)),
            transition_cohort=TransitionCohort.INTERNAL_TRANSFER,
            planned_status=ApplicantStatus.ENROLLED,
        )

        assert is_changed(entry) is False

    def test_same_place_with_other_names_is_not_a_change(self, make_applicant, seat) -> None:
        entry = PlanningEntry(
            applicant=make_applicant(state=EnrolledState(seat=seat)),
            transition_cohort=TransitionCohort.INTERNAL_TRANSFER,
            planned_status=ApplicantStatus.ENROLLED,
            planned_seat=seat.model_copy(update={"facility_name": "Renamed"}),
        )

        assert is_changed(entry) is False

    def test_seat_change_while_enrolled(self, make_applicant, seat, other_seat) -> None:
        entry = PlanningEntry(
            applicant=make_applicant(state=EnrolledState(seat=seat)),
            transition_cohort=TransitionCohort.INTERNAL_TRANSFER,
            planned_status=ApplicantStatus.ENROLLED,
            planned_seat=other_seat,
        )

        assert is_changed(entry) is True


class TestPreflight:
    """Tests for validation before any remote call."""

    @pytest.mark.asyncio
    async def test_internal_transfer_without_plan_fails_with_zero_calls(
        self, build, make_applicant, seat
    ) -> None:
        repository, store, executor = build(
            make_applicant(id="e1", name="Ana", state=EnrolledState(seat=seat)),
            make_applicant(id="w1"),
        )
        store.set_planned_status("w1", ApplicantStatus.WAITLISTED)

        with pytest.raises(ValidationError) as exc_info:
            await executor.execute()

        assert isinstance(exc_info.value, PlanIncompleteError)
        assert exc_info.value.offending_ids == ["e1"]
        assert "Ana" in str(exc_info.value)
        assert remote_calls(repository) == 0
        assert len(store.entries) == 2

    @pytest.mark.asyncio
    async def test_names_up_to_three_and_total(self, build, make_applicant, seat) -> None:
        applicants = [
            make_applicant(id=f"e{i}", name=f"Kid {i}", state=EnrolledState(seat=seat))
            for i in range(5)
        ]
        repository, _, executor = build(*applicants)

        with pytest.raises(PlanIncompleteError) as exc_info:
            await executor.execute()

        message = str(exc_info.value)
        assert "Kid 0, Kid 1, Kid 2 and 2 more" in message
        assert "(5 applicant(s) in total)" in message
        assert exc_info.value.total == 5
        assert remote_calls(repository) == 0

    @pytest.mark.asyncio
    async def test_call_up_without_complete_seat_is_rejected(
        self, build, make_applicant
    ) -> None:
        repository, store, executor = build(make_applicant(id="w1"))
        store.set_planned_seat("w1", "fac-1", "room-1")

        with pytest.raises(PlanIncompleteError):
            await executor.execute()

        assert remote_calls(repository) == 0

    @pytest.mark.asyncio
    async def test_disallowed_transition_is_rejected(self, build, make_applicant, seat) -> None:
        repository, store, executor = build(
            make_applicant(id="e1", state=EnrolledState(seat=seat)),
        )
        store.set_planned_status("e1", ApplicantStatus.WAITLISTED)

        with pytest.raises(PlanIncompleteError) as exc_info:
            await executor.execute()

        assert exc_info.value.offending_ids == ["e1"]
        assert remote_calls(repository) == 0

    @pytest.mark.asyncio
    async def test_minimum_age_is_enforced(self, build, make_applicant) -> None:
        repository, store, executor = build(
            make_applicant(id="baby", birth_date=date(2025, 3, 1)),
        )
        store.set_planned_seat("baby", "fac-1", "room-1", "Sunflower", "Nursery I A")

        with pytest.raises(PlanIncompleteError):
            await executor.execute()

        assert remote_calls(repository) == 0

    @pytest.mark.asyncio
    async def test_missing_justification_is_rejected(self, build, make_applicant, seat) -> None:
        repository, store, executor = build(
            make_applicant(id="e1", state=EnrolledState(seat=seat)),
        )
        store.set_planned_status("e1", ApplicantStatus.WITHDRAWN)

        with pytest.raises(PlanIncompleteError):
            await executor.execute()

        assert remote_calls(repository) == 0


class TestRouting:
    """Tests for operation routing and bulk grouping."""

    def test_same_seat_is_one_bulk_reallocation(
        self, build, make_applicant, seat, other_seat
    ) -> None:
        _, store, executor = build(
            make_applicant(id="e1", state=EnrolledState(seat=seat)),
            make_applicant(id="e2", state=EnrolledState(seat=seat)),
        )
        store.bulk_set_planned_seat(
            ["e1", "e2"],
            other_seat.facility_id,
            other_seat.classroom_id,
            other_seat.facility_name,
            other_seat.classroom_name,
        )

        plan = executor.plan()

        assert len(plan.operations) == 1
        assert isinstance(plan.operations[0], BulkReallocationOperation)
        assert plan.operations[0].applicant_ids == ("e1", "e2")
        assert plan.affected_count == 2

    def test_routes_each_exit(self, build, make_applicant, seat) -> None:
        _, store, executor = build(
            make_applicant(id="e1", state=EnrolledState(seat=seat)),
            make_applicant(id="e2", state=EnrolledState(seat=seat)),
            make_applicant(id="e3", state=EnrolledState(seat=seat)),
            make_applicant(id="c1", state=CalledUpState(seat=seat, deadline=date(2025, 6, 1))),
            make_applicant(id="c2", state=CalledUpState(seat=seat, deadline=date(2025, 6, 1))),
            make_applicant(id="r1", state=RefusedState()),
        )
        store.set_planned_status("e1", ApplicantStatus.WITHDRAWN, "Aged out")
        store.set_planned_status("e2", ApplicantStatus.REFUSED, "Moved away")
        store.set_planned_status("e3", ApplicantStatus.ENROLLED)
        store.set_planned_status("c1", ApplicantStatus.REFUSED, "Declined")
        store.set_planned_status("c2", ApplicantStatus.WAITLISTED, "No answer")
        store.set_planned_status("r1", ApplicantStatus.WAITLISTED)

        plan = executor.plan()

        actions = {
            op.transition.applicant_id: op.transition.audit_action
            for op in plan.operations
            if isinstance(op, TransitionOperation)
        }
        assert actions == {
            "e1": AuditActions.WITHDRAWAL,
            "e2": AuditActions.TRANSFER_OUT,
            "c1": AuditActions.CALL_UP_REFUSED,
            "c2": AuditActions.END_OF_QUEUE,
            "r1": AuditActions.REACTIVATION,
        }

    def test_call_up_deadline_uses_configured_days(self, build, make_applicant, seat) -> None:
        _, store, executor = build(make_applicant(id="w1"))
        store.set_planned_seat(
            "w1", seat.facility_id, seat.classroom_id, seat.facility_name, seat.classroom_name
        )

        plan = executor.plan()

        state = plan.operations[0].transition.state
        assert state == CalledUpState(seat=seat, deadline=date(2025, 6, 17))

    def test_called_up_with_new_seat_is_reassigned(
        self, build, make_applicant, seat, other_seat
    ) -> None:
        _, store, executor = build(
            make_applicant(id="c1", state=CalledUpState(seat=seat, deadline=date(2025, 6, 12))),
        )
        entry = store.set_planned_seat(
            "c1",
            other_seat.facility_id,
            other_seat.classroom_id,
            other_seat.facility_name,
            other_seat.classroom_name,
        )
        assert entry.planned_status == ApplicantStatus.CALLED_UP

        plan = executor.plan()

        (operation,) = plan.operations
        assert operation.transition.audit_action == AuditActions.CALL_UP_REASSIGNED
        assert operation.transition.state == CalledUpState(
            seat=other_seat, deadline=date(2025, 6, 17)
        )


class TestDispatch:
    """Tests for concurrent dispatch and reconciliation."""

    @pytest.mark.asyncio
    async def test_bulk_reallocation_is_one_call(
        self, build, make_applicant, seat, other_seat
    ) -> None:
        repository, store, executor = build(
            make_applicant(id="e1", state=EnrolledState(seat=seat)),
            make_applicant(id="e2", state=EnrolledState(seat=seat)),
        )
        for applicant_id in ("e1", "e2"):
            store.set_planned_seat(
                applicant_id,
                other_seat.facility_id,
                other_seat.classroom_id,
                other_seat.facility_name,
                other_seat.classroom_name,
            )

        result = await executor.execute()

        repository.bulk_update_applicants.assert_awaited_once()
        assert repository.update_applicant.await_count == 0
        assert result.affected_count == 2
        assert result.operations == 1
        history = await repository.list_audit()
        assert [e.applicant_id for e in history] == [SYSTEM_APPLICANT_ID]
        assert (await repository.get_applicant("e2")).current_seat == other_seat

    @pytest.mark.asyncio
    async def test_success_clears_store_and_announces(
        self, build, make_applicant, seat, draft_cache, event_bus
    ) -> None:
        repository, store, executor = build(
            make_applicant(id="e1", state=EnrolledState(seat=seat)),
            make_applicant(id="w1"),
        )
        store.set_planned_status("e1", ApplicantStatus.WITHDRAWN, "Aged out")
        store.set_planned_seat(
            "w1", seat.facility_id, seat.classroom_id, seat.facility_name, seat.classroom_name
        )
        store.save()
        published = []

        async def collect(event):
            published.append(event.event_type)

        event_bus.subscribe("*", collect)

        result = await executor.execute()

        assert result.affected_count == 2
        assert result.message == "Transition applied to 2 applicant(s)."
        assert store.entries == []
        assert draft_cache.keys() == []
        assert (await repository.get_applicant("e1")).state == WithdrawnState()
        assert (await repository.get_applicant("w1")).status == ApplicantStatus.CALLED_UP
        assert EventTypes.Applicant.CALLED_UP in published
        assert EventTypes.Applicant.CHANGED in published
        assert published[-1] == EventTypes.Planning.EXECUTED

    @pytest.mark.asyncio
    async def test_failure_keeps_draft_and_reports(
        self, build, make_applicant, seat, draft_cache
    ) -> None:
        repository, store, executor = build(
            make_applicant(id="e1", name="Ana", state=EnrolledState(seat=seat)),
            make_applicant(id="e2", name="Bia", state=EnrolledState(seat=seat)),
        )
        store.set_planned_status("e1", ApplicantStatus.WITHDRAWN, "Aged out")
        store.set_planned_status("e2", ApplicantStatus.WITHDRAWN, "Aged out")
        store.save()
        original = repository.update_applicant.side_effect

        async def flaky(applicant_id, state):
            if applicant_id == "e2":
                raise PersistenceError("connection reset")
            return await original(applicant_id, state)

        repository.update_applicant.side_effect = flaky

        with pytest.raises(TransitionExecutionError) as exc_info:
            await executor.execute()

        error = exc_info.value
        assert isinstance(error, PersistenceError)
        assert error.succeeded == 1
        assert "connection reset" in str(error)
        assert "Bia" in str(error)
        assert len(store.entries) == 2
        assert store.has_unsaved_changes is False
        assert store.get("e2").planned_status == ApplicantStatus.WITHDRAWN
        assert draft_cache.get(SESSION) is not None
        assert (await repository.get_applicant("e1")).state == WithdrawnState()

    @pytest.mark.asyncio
    async def test_retry_after_partial_failure_skips_written_entries(
        self, build, make_applicant, seat
    ) -> None:
        repository, store, executor = build(
            make_applicant(id="e1", name="Ana", state=EnrolledState(seat=seat)),
            make_applicant(id="e2", name="Bia", state=EnrolledState(seat=seat)),
        )
        store.set_planned_status("e1", ApplicantStatus.WITHDRAWN, "Aged out")
        store.set_planned_status("e2", ApplicantStatus.WITHDRAWN, "Aged out")
        original = repository.update_applicant.side_effect

        async def flaky(applicant_id, state):
            if applicant_id == "e2":
                raise PersistenceError("connection reset")
            return await original(applicant_id, state)

        repository.update_applicant.side_effect = flaky

        with pytest.raises(TransitionExecutionError) as exc_info:
            await executor.execute()

        error = exc_info.value
        assert error.succeeded_ids == ["e1"]
        assert error.succeeded_operations == [f"{AuditActions.WITHDRAWAL} (Ana)"]
        assert store.get("e1").applicant.state == WithdrawnState()
        assert store.get("e1").planned_status == ApplicantStatus.WITHDRAWN

        repository.update_applicant.side_effect = original
        result = await executor.execute()

        assert result.affected_count == 1
        assert repository.update_applicant.await_count == 3
        assert len(await repository.list_audit("e1")) == 1
        assert len(await repository.list_audit("e2")) == 1
        assert store.entries == []

    @pytest.mark.asyncio
    async def test_reassigned_call_up_is_written_and_announced(
        self, build, make_applicant, seat, other_seat, event_bus
    ) -> None:
        repository, store, executor = build(
            make_applicant(id="c1", state=CalledUpState(seat=seat, deadline=date(2025, 6, 12))),
        )
        store.set_planned_seat(
            "c1",
            other_seat.facility_id,
            other_seat.classroom_id,
            other_seat.facility_name,
            other_seat.classroom_name,
        )
        published = []

        async def collect(event):
            published.append(event.event_type)

        event_bus.subscribe(EventTypes.Applicant.CALLED_UP, collect)

        result = await executor.execute()

        assert result.affected_count == 1
        updated = await repository.get_applicant("c1")
        assert updated.state == CalledUpState(seat=other_seat, deadline=date(2025, 6, 17))
        history = await repository.list_audit("c1")
        assert [e.action for e in history] == [AuditActions.CALL_UP_REASSIGNED]
        assert published == [EventTypes.Applicant.CALLED_UP]

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, build, make_applicant, seat) -> None:
        repository, store, executor = build(
            make_applicant(id="e1", state=EnrolledState(seat=seat)),
        )
        store.set_planned_status("e1", ApplicantStatus.ENROLLED)

        result = await executor.execute()

        assert result.affected_count == 0
        assert result.operations == 0
        assert remote_calls(repository) == 0


class TestEndToEnd:
    """Ranking, call-up and end of queue across components."""

    @pytest.mark.asyncio
    async def test_missed_call_up_goes_behind_everyone(
        self, make_applicant, machine, clock, settings, seat
    ) -> None:
        day_1 = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)
        x = make_applicant(id="x", social_program=False, registered_at=day_1)
        y = make_applicant(id="y", social_program=True, registered_at=day_1 + timedelta(days=1))
        z = make_applicant(id="z", social_program=False, registered_at=day_1 + timedelta(days=2))
        repository = InMemoryAdmissionsRepository([x, y, z])
        audit = AuditLog(repository, clock=clock, actor="operator@test")
        service = LifecycleService(repository, machine, audit, settings=settings)

        ranked = rank_waitlist(await repository.list_applicants())
        assert [(r.applicant.id, r.position) for r in ranked] == [("y", 1), ("x", 2), ("z", 3)]

        called = await service.call_up("x", seat)
        assert called.convocation_deadline == clock.now.date() + timedelta(days=7)
        ranked = rank_waitlist(await repository.list_applicants())
        assert [r.applicant.id for r in ranked] == ["y", "z"]

        clock.advance(days=8)
        assert [a.id for a in await service.expired_call_ups()] == ["x"]
        requeued = await service.end_of_queue("x", "Deadline missed")

        assert requeued.state == WaitlistedState(penalty_timestamp=clock.now)
        ranked = rank_waitlist(await repository.list_applicants())
        assert [(r.applicant.id, r.position) for r in ranked] == [("y", 1), ("z", 2), ("x", 3)]
