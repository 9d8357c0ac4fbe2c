# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event infrastructure for the admissions engine.

Components:
- EventBus: In-memory pub/sub with pattern matching
- EventTypes: Centralized event type constants
"""

from admissions.infrastructure.events.bus import (
    EventBus,
    EventData,
    EventHandler,
    get_event_bus,
    reset_event_bus,
)
from admissions.infrastructure.events.types import EventTypes, event_for_transition

__all__ = [
    "EventBus",
    "EventData",
    "EventHandler",
    "EventTypes",
    "event_for_transition",
    "get_event_bus",
    "reset_event_bus",
]
