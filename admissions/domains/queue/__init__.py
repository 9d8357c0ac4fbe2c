# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Queue domain package.

This package provides:
- Waitlist ranking and called-up ordering
- Call-up deadline evaluation and the countdown ticker
- The cached queue read service
"""

from admissions.domains.queue.deadline import (
    DeadlineStatus,
    DeadlineTicker,
    evaluate_deadline,
    format_remaining,
)
from admissions.domains.queue.ranker import order_called_up, rank_waitlist, ranking_key
from admissions.domains.queue.service import QueueService, QueueStats

__all__ = [
    "DeadlineStatus",
    "DeadlineTicker",
    "QueueService",
    "QueueStats",
    "evaluate_deadline",
    "format_remaining",
    "order_called_up",
    "rank_waitlist",
    "ranking_key",
]
