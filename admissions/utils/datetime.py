# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities and the engine clock.

Design Decisions:
-----------------
1. All timestamps handed to persistence are timezone-aware
2. Every component that needs "now" takes a Clock (a zero-argument callable)
   so tests can substitute a fixed instant
3. Date-only values (deadlines, birth dates) are interpreted in the
   clock's timezone

Usage:
------
    from admissions.utils.datetime import Clock, utc_now, make_clock

    clock: Clock = make_clock("America/Sao_Paulo")
    now = clock()
"""

from datetime import date, datetime, time, timezone
from typing import Callable
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def make_clock(tz_name: str) -> Clock:
    """Build a clock that reports the current time in the given zone.

    Args:
        tz_name: IANA timezone name, e.g. "America/Sao_Paulo".

    Returns:
        Zero-argument callable returning an aware datetime.
    """
    zone = ZoneInfo(tz_name)

    def clock() -> datetime:
        return datetime.now(zone)

    return clock


def ensure_aware(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware, assuming UTC for naive values.

    Args:
        dt: A datetime object (naive or aware).

    Returns:
        Timezone-aware datetime.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def start_of_day(day: date, reference: datetime) -> datetime:
    """Midnight of a calendar day in the timezone of a reference instant.

    Args:
        day: The calendar date.
        reference: Instant whose tzinfo is reused (may be naive).

    Returns:
        Datetime at 00:00:00 of day.
    """
    return datetime.combine(day, time.min, tzinfo=reference.tzinfo)


def seconds_to_human(seconds: int) -> str:
    """Convert seconds to a countdown string.

    Args:
        seconds: Duration in seconds.

    Returns:
        Human-readable string like "2d 3h 4m 5s" or "4m 5s".
    """
    days, remainder = divmod(max(seconds, 0), 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0 or days > 0:
        parts.append(f"{hours}h")
    parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)
