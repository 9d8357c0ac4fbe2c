# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Call-up deadline monitoring.

A deadline is a calendar date; it expires at midnight at the start of that
day, in the timezone of the instant it is compared with. Evaluation is
read-only: expiry never changes an applicant's status by itself.

The DeadlineTicker recomputes the status of tracked deadlines periodically
for countdown displays. It performs no I/O.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Awaitable, Callable

from admissions.utils.datetime import Clock, seconds_to_human, start_of_day, utc_now

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class DeadlineStatus:
    """Remaining time until a call-up deadline.

    Attributes:
        seconds_remaining: Seconds until the deadline; negative once passed.
        days_remaining: Whole days remaining (floor division).
        is_expired: The deadline has passed.
        is_urgent: Less than a day remains.
    """

    seconds_remaining: int
    days_remaining: int
    is_expired: bool
    is_urgent: bool


def evaluate_deadline(deadline: date, now: datetime) -> DeadlineStatus:
    """Compute the status of a deadline at an instant.

    Args:
        deadline: Response deadline date.
        now: Current instant; its tzinfo defines midnight.

    Returns:
        DeadlineStatus for the instant.
    """
    seconds = math.floor((start_of_day(deadline, now) - now).total_seconds())
    days = seconds // SECONDS_PER_DAY
    expired = seconds < 0
    return DeadlineStatus(
        seconds_remaining=seconds,
        days_remaining=days,
        is_expired=expired,
        is_urgent=not expired and days == 0,
    )


def format_remaining(status: DeadlineStatus) -> str:
    """Countdown text such as "2d 3h 4m 5s", or "Expired"."""
    if status.is_expired:
        return "Expired"
    return seconds_to_human(status.seconds_remaining)


DeadlineListener = Callable[[dict[str, DeadlineStatus]], Awaitable[None]]


class DeadlineTicker:
    """Periodic recomputation of tracked deadlines.

    Each tick evaluates every tracked deadline and pushes the snapshot to
    all listeners. stop() wakes the loop between ticks; a tick in progress
    always completes.

    Example:
        ticker = DeadlineTicker(clock=clock, interval=settings.rules.deadline_tick_seconds)
        ticker.track(applicant.id, applicant.convocation_deadline)
        ticker.subscribe(render_countdowns)
        ticker.start()
        ...
        await ticker.stop()
    """

    def __init__(self, clock: Clock = utc_now, interval: float = 1.0) -> None:
        self.clock = clock
        self.interval = interval
        self._deadlines: dict[str, date] = {}
        self._listeners: list[DeadlineListener] = []
        self._stopped = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def track(self, key: str, deadline: date) -> None:
        self._deadlines[key] = deadline

    def untrack(self, key: str) -> None:
        self._deadlines.pop(key, None)

    def subscribe(self, listener: DeadlineListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: DeadlineListener) -> bool:
        """Remove a listener.

        Returns:
            True if the listener was subscribed.
        """
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    async def tick(self) -> dict[str, DeadlineStatus]:
        """Evaluate every tracked deadline once and notify listeners.

        Returns:
            Status per tracked key.
        """
        now = self.clock()
        snapshot = {
            key: evaluate_deadline(deadline, now)
            for key, deadline in self._deadlines.items()
        }
        for listener in list(self._listeners):
            try:
                await listener(snapshot)
            except Exception as e:
                logger.error("Deadline listener failed: %s", str(e), exc_info=True)
        return snapshot

    async def _run(self) -> None:
        while not self._stopped.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    def start(self) -> None:
        """Start ticking in a background task on the running loop."""
        if self.running:
            return
        self._stopped.clear()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Deadline ticker started, interval=%.1fs", self.interval)

    async def stop(self) -> None:
        """Stop the loop after the current tick and wait for it to end."""
        self._stopped.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.debug("Deadline ticker stopped")
