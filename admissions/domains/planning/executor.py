# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Transition executor for the annual transition plan.

This module turns the planning draft into remote mutations:

1. Completeness: every internal-transfer entry needs a planned status
2. Change detection: only entries whose status or seat would change
3. Routing: each changed entry becomes one status machine transition;
   seat-only changes of enrolled applicants are grouped per classroom
   into one bulk reallocation each
4. Dispatch: all operations run concurrently and are awaited together

Every problem found in steps 1 to 3 is reported before any remote call.
Dispatch is best effort: there is no rollback. On any failure the planned
fields are kept and the entries already written are refreshed, so the
operator can inspect the error and retry what is left.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from pydantic import BaseModel

from admissions.core.config.settings import Settings, get_settings
from admissions.core.exceptions import (
    AdmissionsError,
    PlanIncompleteError,
    TransitionExecutionError,
)
from admissions.domains.audit.service import AuditLog
from admissions.domains.lifecycle.machine import AuditActions, StatusMachine, Transition
from admissions.domains.lifecycle.service import transition_payload
from admissions.domains.planning.store import PlanningStore
from admissions.infrastructure.events import EventBus, EventTypes, event_for_transition
from admissions.infrastructure.persistence.base import AdmissionsRepository
from admissions.models import (
    Applicant,
    ApplicantStatus,
    EnrolledState,
    PlanningEntry,
    SeatRef,
    TransitionCohort,
)

logger = logging.getLogger(__name__)


class ExecutionResult(BaseModel):
    """Outcome of a successful plan execution.

    Attributes:
        affected_count: Applicants whose record changed.
        operations: Remote operations dispatched.
        message: Confirmation for the operator.
    """

    affected_count: int
    operations: int
    message: str


@dataclass(frozen=True)
class TransitionOperation:
    """One applicant moved by a status machine transition."""

    transition: Transition
    applicant_name: str

    @property
    def applicant_ids(self) -> tuple[str, ...]:
        return (self.transition.applicant_id,)

    @property
    def label(self) -> str:
        return f"{self.transition.audit_action} ({self.applicant_name})"


@dataclass(frozen=True)
class BulkReallocationOperation:
    """Enrolled applicants moved together to one classroom."""

    seat: SeatRef
    applicant_ids: tuple[str, ...]

    @property
    def label(self) -> str:
        return f"{AuditActions.MASS_REALLOCATION} to {self.seat.label}"


Operation = TransitionOperation | BulkReallocationOperation


@dataclass
class ExecutionPlan:
    """Operations computed from the draft, ready for dispatch."""

    operations: list[Operation] = field(default_factory=list)

    @property
    def affected_count(self) -> int:
        return sum(len(op.applicant_ids) for op in self.operations)


def is_changed(entry: PlanningEntry) -> bool:
    """Whether executing the entry would change the stored applicant.

    True when a planned status differs from the current one, or when the
    planned seat differs from the current seat and the final status keeps
    the applicant seated.
    """
    applicant = entry.applicant
    if entry.planned_status is not None and entry.planned_status != applicant.status:
        return True
    if entry.planned_seat is None or entry.is_exit:
        return False
    return not entry.planned_seat.same_place(applicant.current_seat)


class TransitionExecutor:
    """Applies a planning session to the persistence collaborator.

    Attributes:
        repository: Persistence collaborator.
        store: Planning store holding the draft.
        machine: Status machine building each transition.
        audit: Audit log.
        events: Event bus for change announcements, if any.
        settings: Application settings.
    """

    def __init__(
        self,
        repository: AdmissionsRepository,
        store: PlanningStore,
        machine: StatusMachine,
        audit: AuditLog,
        events: EventBus | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.repository = repository
        self.store = store
        self.machine = machine
        self.audit = audit
        self.events = events
        self.settings = settings or get_settings()

    def _deadline(self) -> date:
        today = self.machine.clock().date()
        return today + timedelta(days=self.settings.rules.response_deadline_days)

    def _check_complete(self, entries: list[PlanningEntry]) -> None:
        missing = [
            (e.id, e.applicant.name)
            for e in entries
            if e.transition_cohort == TransitionCohort.INTERNAL_TRANSFER
            and e.planned_status is None
        ]
        if missing:
            raise PlanIncompleteError("Enrolled applicants without a planned status", missing)

    def _route(self, entry: PlanningEntry, deadline: date) -> Transition | None:
        """Transition for a changed entry; None for a seat-only reallocation.

        Raises:
            AdmissionsError: If the entry cannot be executed.
        """
        applicant = entry.applicant
        current = applicant.status
        target = entry.final_status
        justification = entry.planned_justification or ""

        if target == ApplicantStatus.WITHDRAWN:
            return self.machine.withdraw(applicant, justification)
        if target == ApplicantStatus.REFUSED:
            if current == ApplicantStatus.CALLED_UP:
                return self.machine.refuse(applicant, justification)
            return self.machine.transfer_out(applicant, justification)
        if target == ApplicantStatus.WAITLISTED:
            if current == ApplicantStatus.CALLED_UP:
                return self.machine.end_of_queue(applicant, justification)
            return self.machine.reactivate(applicant)
        if target == ApplicantStatus.CALLED_UP:
            seat = entry.planned_seat
            if seat is None or not seat.is_complete:
                raise AdmissionsError("Call-up needs a fully specified seat")
            if current == ApplicantStatus.CALLED_UP:
                return self.machine.reassign_call_up(applicant, seat, deadline)
            return self.machine.call_up(applicant, seat, deadline)
        if target == ApplicantStatus.ENROLLED:
            if current == ApplicantStatus.ENROLLED:
                return None
            return self.machine.confirm_enrollment(applicant)
        if target == ApplicantStatus.TRANSFER_REQUESTED and entry.planned_seat is not None:
            return self.machine.request_transfer(
                applicant, entry.planned_seat.facility_id, entry.planned_justification
            )
        raise AdmissionsError(f"No operation moves {current.value} to {target.value}")

    def plan(self) -> ExecutionPlan:
        """Compute the operations for the current draft without side effects.

        Returns:
            The execution plan; empty when nothing changed.

        Raises:
            PlanIncompleteError: If an internal-transfer entry has no planned
                status, or a changed entry cannot be routed, is disallowed by
                the status graph or fails the minimum-age gate.
        """
        entries = self.store.entries
        self._check_complete(entries)

        deadline = self._deadline()
        plan = ExecutionPlan()
        rejected: list[tuple[str, str]] = []
        reallocations: dict[tuple[str, str], list[PlanningEntry]] = {}

        for entry in entries:
            if not is_changed(entry):
                continue
            try:
                transition = self._route(entry, deadline)
            except AdmissionsError as e:
                logger.warning("Planned change for %s rejected: %s", entry.id, e)
                rejected.append((entry.id, entry.applicant.name))
                continue
            if transition is None:
                seat = entry.planned_seat
                reallocations.setdefault((seat.facility_id, seat.classroom_id), []).append(entry)
            else:
                plan.operations.append(TransitionOperation(transition, entry.applicant.name))

        if rejected:
            raise PlanIncompleteError("Planned changes cannot be applied", rejected)

        for group in reallocations.values():
            plan.operations.append(
                BulkReallocationOperation(
                    seat=group[0].planned_seat,
                    applicant_ids=tuple(e.id for e in group),
                )
            )
        return plan

    async def _run(self, operation: Operation) -> list[Applicant]:
        """Dispatch one operation.

        Returns:
            The applicants as written.
        """
        if isinstance(operation, BulkReallocationOperation):
            state = EnrolledState(seat=operation.seat)
            count = await self.repository.bulk_update_applicants(
                list(operation.applicant_ids),
                state,
            )
            await self.audit.record_system(
                AuditActions.MASS_REALLOCATION,
                f"{count} applicant(s) reallocated to {operation.seat.label}.",
            )
            return [
                self.store.get(applicant_id).applicant.with_state(state)
                for applicant_id in operation.applicant_ids
            ]

        transition = operation.transition
        updated = await self.repository.update_applicant(
            transition.applicant_id,
            transition.state,
        )
        await self.audit.record(
            transition.applicant_id,
            transition.audit_action,
            transition.audit_detail,
        )
        if self.events is not None:
            await self.events.publish(
                event_for_transition(transition.source, transition.target),
                transition_payload(transition, updated),
            )
        return [updated]

    async def _publish(self, event_type: str, payload: dict[str, Any]) -> None:
        if self.events is not None:
            await self.events.publish(event_type, payload)

    async def execute(self) -> ExecutionResult:
        """Validate the draft and apply it.

        Returns:
            Result naming the number of applicants affected.

        Raises:
            PlanIncompleteError: If validation fails; nothing is written.
            TransitionExecutionError: If any operation fails. The draft keeps
                its planned fields and the entries already written are
                refreshed, so a retry only dispatches what is left.
        """
        plan = self.plan()
        operations = plan.operations
        logger.info(
            "Executing planning session %s: %d operation(s) for %d applicant(s)",
            self.store.session_key,
            len(operations),
            plan.affected_count,
        )

        results = await asyncio.gather(
            *(self._run(op) for op in operations),
            return_exceptions=True,
        )

        failures: list[tuple[str, BaseException]] = []
        completed: list[str] = []
        changed_ids: list[str] = []
        written: list[Applicant] = []
        for operation, result in zip(operations, results):
            if isinstance(result, BaseException):
                failures.append((operation.label, result))
            else:
                completed.append(operation.label)
                changed_ids.extend(operation.applicant_ids)
                written.extend(result)

        if changed_ids:
            await self._publish(EventTypes.Applicant.CHANGED, {"applicant_ids": changed_ids})

        if failures:
            for label, error in failures:
                logger.error("Planned operation failed: %s: %s", label, error)
            await asyncio.to_thread(self.store.refresh, written)
            raise TransitionExecutionError(failures, completed, changed_ids)

        await asyncio.to_thread(self.store.clear)
        message = f"Transition applied to {plan.affected_count} applicant(s)."
        await self._publish(
            EventTypes.Planning.EXECUTED,
            {
                "session_key": self.store.session_key,
                "affected_count": plan.affected_count,
                "operations": len(operations),
            },
        )
        logger.info(message)
        return ExecutionResult(
            affected_count=plan.affected_count,
            operations=len(operations),
            message=message,
        )
