# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lifecycle domain package.

This package provides the applicant status machine and the service that
applies individual and mass status actions.
"""

from admissions.domains.lifecycle.machine import (
    ALLOWED_TRANSITIONS,
    AuditActions,
    StatusMachine,
    Transition,
    can_transition,
)
from admissions.domains.lifecycle.service import LifecycleService

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AuditActions",
    "LifecycleService",
    "StatusMachine",
    "Transition",
    "can_transition",
]
