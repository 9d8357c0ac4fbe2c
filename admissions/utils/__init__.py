# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for the admissions engine.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Clock abstraction and date helpers
"""

from admissions.utils.datetime import (
    Clock,
    ensure_aware,
    make_clock,
    seconds_to_human,
    start_of_day,
    utc_now,
)
from admissions.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "Clock",
    "utc_now",
    "make_clock",
    "ensure_aware",
    "start_of_day",
    "seconds_to_human",
]
