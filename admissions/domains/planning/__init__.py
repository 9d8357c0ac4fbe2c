# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Planning domain package.

This package provides the annual transition workflow:
- PlanningStore: the operator's draft with save/discard and a cached copy
- TransitionExecutor: validation, routing and dispatch of the draft
"""

from admissions.domains.planning.executor import (
    BulkReallocationOperation,
    ExecutionPlan,
    ExecutionResult,
    TransitionExecutor,
    TransitionOperation,
    is_changed,
)
from admissions.domains.planning.store import COHORT_BY_STATUS, PlanningStore, classify

__all__ = [
    "BulkReallocationOperation",
    "COHORT_BY_STATUS",
    "ExecutionPlan",
    "ExecutionResult",
    "PlanningStore",
    "TransitionExecutor",
    "TransitionOperation",
    "classify",
    "is_changed",
]
