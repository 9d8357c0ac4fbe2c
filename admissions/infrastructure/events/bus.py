# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Applicant change notifications.

Executed plans and lifecycle transitions announce what changed on this
bus. The queue read cache listens for "applicants.changed" to drop its
snapshot; a call-up notifier would listen for "applicant.called_up".

Subscriptions are either an exact event type or a glob ("applicant.*").
Delivery is concurrent, and a failing handler is logged without
affecting the publisher or the other handlers.

Example:
    bus = get_event_bus()

    async def on_called_up(event: EventData) -> None:
        await notify_guardian(event.payload["applicant_id"])

    bus.subscribe(EventTypes.Applicant.CALLED_UP, on_called_up)
"""

import asyncio
import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable
from uuid import uuid4

logger = logging.getLogger(__name__)

EventHandler = Callable[["EventData"], Awaitable[None]]


@dataclass
class EventData:
    """A published event.

    Attributes:
        event_type: Dotted event name.
        payload: Event body, usually applicant ids and statuses.
        event_id: Unique id assigned on publish.
        timestamp: UTC publish time.
    """

    event_type: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class _Subscription:
    selector: str
    handler: EventHandler

    @property
    def is_pattern(self) -> bool:
        return any(char in self.selector for char in "*?[")

    def accepts(self, event_type: str) -> bool:
        if self.is_pattern:
            return fnmatch.fnmatchcase(event_type, self.selector)
        return self.selector == event_type


class EventBus:
    """In-process publish/subscribe for one operator session.

    Not thread-safe; meant to be driven from a single event loop.
    """

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []
        self._published = 0
        self._failures = 0

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Register a handler for an event type or glob pattern."""
        self._subscriptions.append(_Subscription(event_type, handler))
        logger.debug("Handler %r subscribed to %s", handler, event_type)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """Remove one registration of handler under event_type.

        Returns:
            False when no such registration exists.
        """
        for index, subscription in enumerate(self._subscriptions):
            if subscription.selector == event_type and subscription.handler == handler:
                del self._subscriptions[index]
                return True
        return False

    def _deliver_to(self, event_type: str) -> list[EventHandler]:
        return [s.handler for s in self._subscriptions if s.accepts(event_type)]

    async def _invoke(self, handler: EventHandler, event: EventData) -> bool:
        try:
            await handler(event)
        except Exception:
            self._failures += 1
            logger.exception("Handler %r failed on %s", handler, event.event_type)
            return False
        return True

    async def publish(self, event_type: str, payload: dict[str, Any]) -> EventData:
        """Deliver an event to every matching handler.

        Args:
            event_type: Dotted event name.
            payload: Event body.

        Returns:
            The published event, whatever the handlers did with it.
        """
        event = EventData(event_type=event_type, payload=payload)
        self._published += 1

        handlers = self._deliver_to(event_type)
        if handlers:
            results = await asyncio.gather(*(self._invoke(h, event) for h in handlers))
            logger.debug(
                "Delivered %s to %d/%d handlers", event_type, sum(results), len(handlers)
            )
        return event

    def clear(self) -> None:
        """Drop every subscription."""
        self._subscriptions.clear()

    def get_stats(self) -> dict[str, Any]:
        """Subscription and delivery counters."""
        patterns = [s.selector for s in self._subscriptions if s.is_pattern]
        exact = [s.selector for s in self._subscriptions if not s.is_pattern]
        return {
            "total_handlers": len(self._subscriptions),
            "events_published": self._published,
            "handler_failures": self._failures,
            "event_types": sorted(set(exact)),
            "patterns": sorted(set(patterns)),
        }


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Return the process-wide bus, creating it on first use."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Discard the process-wide bus and its subscriptions."""
    global _event_bus
    if _event_bus is not None:
        _event_bus.clear()
    _event_bus = None
