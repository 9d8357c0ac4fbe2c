# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Queue service for the waitlist dashboard.

This module provides the QueueService class for:
- Ranked waitlist views with computed positions
- Called-up applicants ordered by deadline
- Queue statistics

Applicant records are read once and kept until an applicants.changed
event invalidates them.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from admissions.domains.queue.deadline import evaluate_deadline
from admissions.domains.queue.ranker import order_called_up, rank_waitlist
from admissions.infrastructure.events import EventBus, EventData, EventTypes
from admissions.infrastructure.persistence.base import AdmissionsRepository
from admissions.models import Applicant, RankedApplicant
from admissions.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)


class QueueStats(BaseModel):
    """Waitlist summary counts."""

    waitlisted: int
    social_program: int
    called_up: int
    expired_call_ups: int


class QueueService:
    """Read side of the waitlist.

    Attributes:
        repository: Persistence collaborator.
        events: Bus delivering invalidation events, if any.
        clock: Source of the current instant for deadline checks.
    """

    def __init__(
        self,
        repository: AdmissionsRepository,
        events: EventBus | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.repository = repository
        self.events = events
        self.clock = clock
        self._applicants: list[Applicant] | None = None
        if events is not None:
            events.subscribe(EventTypes.Applicant.CHANGED, self._on_changed)

    async def _on_changed(self, event: EventData) -> None:
        self.invalidate()

    def invalidate(self) -> None:
        """Drop the cached applicant list."""
        if self._applicants is not None:
            logger.debug("Queue cache invalidated")
        self._applicants = None

    def close(self) -> None:
        """Stop listening for invalidation events."""
        if self.events is not None:
            self.events.unsubscribe(EventTypes.Applicant.CHANGED, self._on_changed)

    async def applicants(self) -> list[Applicant]:
        """Every applicant, read through the cache."""
        if self._applicants is None:
            self._applicants = await self.repository.list_applicants()
            logger.debug("Loaded %d applicants", len(self._applicants))
        return self._applicants

    async def ranked_waitlist(self) -> list[RankedApplicant]:
        return rank_waitlist(await self.applicants())

    async def called_up(self) -> list[Applicant]:
        return order_called_up(await self.applicants())

    async def position_of(self, applicant_id: str) -> int | None:
        """Current waitlist position, or None when not waitlisted."""
        for ranked in await self.ranked_waitlist():
            if ranked.applicant.id == applicant_id:
                return ranked.position
        return None

    async def stats(self) -> QueueStats:
        """Summary counts for the dashboard."""
        ranked = await self.ranked_waitlist()
        called_up = await self.called_up()
        now = self.clock()
        expired = sum(
            1 for a in called_up
            if evaluate_deadline(a.convocation_deadline, now).is_expired
        )
        return QueueStats(
            waitlisted=len(ranked),
            social_program=sum(1 for r in ranked if r.applicant.social_program),
            called_up=len(called_up),
            expired_call_ups=expired,
        )
