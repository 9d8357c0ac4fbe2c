# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lifecycle service for individual and mass status actions.

This module provides the LifecycleService class for:
- Individual actions: call-up, confirmation, refusal, end of queue,
  withdrawal, transfer out, transfer request, reactivation, reallocation
- Mass reallocation and mass status updates
- Listing call-ups whose deadline has passed

Each action loads the applicant, applies the StatusMachine transition,
writes the new state, appends one audit entry and announces the change on
the event bus.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Sequence

from admissions.core.config.settings import Settings, get_settings
from admissions.core.exceptions import ValidationError
from admissions.domains.audit.service import AuditLog
from admissions.domains.lifecycle.machine import AuditActions, StatusMachine, Transition
from admissions.domains.queue.deadline import evaluate_deadline
from admissions.domains.queue.ranker import order_called_up
from admissions.infrastructure.events import EventBus, EventTypes, event_for_transition
from admissions.infrastructure.persistence.base import AdmissionsRepository
from admissions.models import Applicant, ApplicantStatus, EnrolledState, SeatRef

logger = logging.getLogger(__name__)


def transition_payload(transition: Transition, applicant: Applicant) -> dict[str, Any]:
    """Event payload describing an applied transition."""
    seat = applicant.current_seat
    return {
        "applicant_id": transition.applicant_id,
        "source": transition.source.value,
        "target": transition.target.value,
        "facility_id": seat.facility_id if seat else None,
        "classroom_id": seat.classroom_id if seat else None,
        "deadline": (
            applicant.convocation_deadline.isoformat()
            if applicant.convocation_deadline
            else None
        ),
    }


class LifecycleService:
    """Applies status machine actions against the persistence collaborator.

    Attributes:
        repository: Persistence collaborator.
        machine: Status machine building transitions.
        audit: Audit log.
        events: Event bus for change announcements, if any.
        settings: Application settings.
    """

    def __init__(
        self,
        repository: AdmissionsRepository,
        machine: StatusMachine,
        audit: AuditLog,
        events: EventBus | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize lifecycle service.

        Args:
            repository: Persistence collaborator.
            machine: Status machine; its clock is used for deadlines.
            audit: Audit log.
            events: Event bus for change announcements.
            settings: Application settings; loaded from the environment
                when omitted.
        """
        self.repository = repository
        self.machine = machine
        self.audit = audit
        self.events = events
        self.settings = settings or get_settings()

    def default_deadline(self) -> date:
        """Response deadline for a call-up made now."""
        today = self.machine.clock().date()
        return today + timedelta(days=self.settings.rules.response_deadline_days)

    async def _apply(self, transition: Transition) -> Applicant:
        updated = await self.repository.update_applicant(
            transition.applicant_id,
            transition.state,
        )
        await self.audit.record(
            transition.applicant_id,
            transition.audit_action,
            transition.audit_detail,
        )
        logger.info(
            "%s: applicant=%s, %s -> %s",
            transition.audit_action,
            transition.applicant_id,
            transition.source.value,
            transition.target.value,
        )
        if self.events is not None:
            await self.events.publish(
                event_for_transition(transition.source, transition.target),
                transition_payload(transition, updated),
            )
            await self.events.publish(
                EventTypes.Applicant.CHANGED,
                {"applicant_ids": [transition.applicant_id]},
            )
        return updated

    async def call_up(
        self,
        applicant_id: str,
        seat: SeatRef,
        deadline: date | None = None,
    ) -> Applicant:
        """Offer a seat to an applicant.

        Args:
            applicant_id: Waitlisted or transfer-requested applicant.
            seat: Seat being offered.
            deadline: Response deadline; today plus the configured number
                of days when omitted.

        Returns:
            The updated applicant.

        Raises:
            ApplicantNotFoundError: If the applicant does not exist.
            ConstraintViolation: If the applicant cannot be called up.
            MinimumAgeError: If the applicant is too young.
        """
        applicant = await self.repository.get_applicant(applicant_id)
        transition = self.machine.call_up(applicant, seat, deadline or self.default_deadline())
        return await self._apply(transition)

    async def confirm_enrollment(self, applicant_id: str) -> Applicant:
        applicant = await self.repository.get_applicant(applicant_id)
        return await self._apply(self.machine.confirm_enrollment(applicant))

    async def refuse(self, applicant_id: str, justification: str) -> Applicant:
        applicant = await self.repository.get_applicant(applicant_id)
        return await self._apply(self.machine.refuse(applicant, justification))

    async def end_of_queue(self, applicant_id: str, justification: str) -> Applicant:
        applicant = await self.repository.get_applicant(applicant_id)
        return await self._apply(self.machine.end_of_queue(applicant, justification))

    async def withdraw(self, applicant_id: str, justification: str) -> Applicant:
        applicant = await self.repository.get_applicant(applicant_id)
        return await self._apply(self.machine.withdraw(applicant, justification))

    async def transfer_out(self, applicant_id: str, justification: str) -> Applicant:
        applicant = await self.repository.get_applicant(applicant_id)
        return await self._apply(self.machine.transfer_out(applicant, justification))

    async def complete_cycle(self, applicant_id: str, justification: str) -> Applicant:
        applicant = await self.repository.get_applicant(applicant_id)
        return await self._apply(self.machine.complete_cycle(applicant, justification))

    async def request_transfer(
        self,
        applicant_id: str,
        desired_facility_id: str,
        justification: str | None = None,
    ) -> Applicant:
        applicant = await self.repository.get_applicant(applicant_id)
        transition = self.machine.request_transfer(applicant, desired_facility_id, justification)
        return await self._apply(transition)

    async def reactivate(self, applicant_id: str) -> Applicant:
        applicant = await self.repository.get_applicant(applicant_id)
        return await self._apply(self.machine.reactivate(applicant))

    async def reallocate(self, applicant_id: str, seat: SeatRef) -> Applicant:
        applicant = await self.repository.get_applicant(applicant_id)
        return await self._apply(self.machine.reallocate(applicant, seat))

    async def _load_many(self, applicant_ids: Sequence[str]) -> list[Applicant]:
        if not applicant_ids:
            raise ValidationError("No applicants selected")
        return [await self.repository.get_applicant(i) for i in applicant_ids]

    async def mass_reallocate(self, applicant_ids: Sequence[str], seat: SeatRef) -> int:
        """Move several enrolled applicants to the same classroom.

        Every applicant is checked before anything is written; the update
        itself is one bulk call with one system audit entry.

        Args:
            applicant_ids: Enrolled applicants to move.
            seat: Destination classroom.

        Returns:
            Number of applicants updated.

        Raises:
            ValidationError: If no applicant is selected.
            ConstraintViolation: If any applicant is not enrolled.
        """
        applicants = await self._load_many(applicant_ids)
        for applicant in applicants:
            self.machine.reallocate(applicant, seat)

        count = await self.repository.bulk_update_applicants(
            [a.id for a in applicants],
            EnrolledState(seat=seat),
        )
        await self.audit.record_system(
            AuditActions.MASS_REALLOCATION,
            f"{count} applicant(s) reallocated to {seat.label}.",
        )
        logger.info("Mass reallocation of %d applicants to %s", count, seat.label)
        await self._publish_changed(applicant_ids)
        return count

    async def mass_update_status(
        self,
        applicant_ids: Sequence[str],
        status: ApplicantStatus,
        justification: str,
    ) -> int:
        """Move several applicants to the same status.

        Each applicant is validated against the status machine before any
        write. Applicants whose resulting state is identical are updated in
        one bulk call.

        Args:
            applicant_ids: Applicants to update.
            status: Target status; must not need seat or facility details.
            justification: Reason recorded in the audit entry.

        Returns:
            Number of applicants updated.

        Raises:
            ValidationError: If the target needs seat data, a justification
                is missing, or an applicant is too young.
            ConstraintViolation: If any applicant cannot reach the status.
        """
        status = ApplicantStatus(status)
        applicants = await self._load_many(applicant_ids)
        now = self.machine.clock()
        transitions = [
            self.machine.transition_to(applicant, status, justification, at=now)
            for applicant in applicants
        ]

        groups: dict[Any, list[str]] = defaultdict(list)
        for transition in transitions:
            groups[transition.state].append(transition.applicant_id)

        count = 0
        for state, ids in groups.items():
            count += await self.repository.bulk_update_applicants(ids, state)

        await self.audit.record_system(
            f"{AuditActions.MASS_STATUS_UPDATE}: {status.value}",
            f"Status of {count} applicant(s) changed to {status.value}. "
            f"Justification: {justification}",
        )
        logger.info("Mass status update of %d applicants to %s", count, status.value)
        await self._publish_changed(applicant_ids)
        return count

    async def _publish_changed(self, applicant_ids: Sequence[str]) -> None:
        if self.events is not None:
            await self.events.publish(
                EventTypes.Applicant.CHANGED,
                {"applicant_ids": list(applicant_ids)},
            )

    async def expired_call_ups(self) -> list[Applicant]:
        """Called-up applicants whose deadline has passed, oldest deadline first."""
        now = self.machine.clock()
        applicants = await self.repository.list_applicants()
        return [
            a for a in order_called_up(applicants)
            if evaluate_deadline(a.convocation_deadline, now).is_expired
        ]
