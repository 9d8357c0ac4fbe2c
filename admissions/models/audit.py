# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit history models."""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class AuditEntry(BaseModel):
    """Immutable history record produced by every mutating operation.

    Attributes:
        id: Entry identifier.
        applicant_id: Applicant affected, or SYSTEM_APPLICANT_ID for bulk actions.
        action: Short action label.
        detail: Human-readable description, including any justification.
        actor: Operator who performed the action.
        created_at: When the action happened.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    applicant_id: str
    action: str
    detail: str
    actor: str
    created_at: datetime
