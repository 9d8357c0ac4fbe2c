# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Centralized event type definitions for the admissions engine."""

from admissions.models.common import ApplicantStatus


class EventTypes:
    """All event types organized by domain."""

    class Applicant:
        """Applicant lifecycle events."""

        # Any write to applicant records; read caches invalidate on it
        CHANGED = "applicants.changed"

        CALLED_UP = "applicant.called_up"
        ENROLLED = "applicant.enrolled"
        REFUSED = "applicant.refused"
        REQUEUED = "applicant.requeued"
        WITHDRAWN = "applicant.withdrawn"
        TRANSFER_REQUESTED = "applicant.transfer_requested"
        REACTIVATED = "applicant.reactivated"
        REALLOCATED = "applicant.reallocated"

    class Planning:
        """Annual transition planning events."""

        EXECUTED = "planning.executed"


_STATUS_EVENTS = {
    ApplicantStatus.CALLED_UP: EventTypes.Applicant.CALLED_UP,
    ApplicantStatus.ENROLLED: EventTypes.Applicant.ENROLLED,
    ApplicantStatus.REFUSED: EventTypes.Applicant.REFUSED,
    ApplicantStatus.WITHDRAWN: EventTypes.Applicant.WITHDRAWN,
    ApplicantStatus.TRANSFER_REQUESTED: EventTypes.Applicant.TRANSFER_REQUESTED,
}


def event_for_transition(source: ApplicantStatus, target: ApplicantStatus) -> str:
    """Event type announcing that an applicant reached a status.

    Args:
        source: Status before the transition.
        target: Status after the transition.

    Returns:
        Event type string. A call-up moved to another seat is announced as
        a new call-up.
    """
    if target == ApplicantStatus.WAITLISTED:
        if source == ApplicantStatus.CALLED_UP:
            return EventTypes.Applicant.REQUEUED
        return EventTypes.Applicant.REACTIVATED
    if source == target and target != ApplicantStatus.CALLED_UP:
        return EventTypes.Applicant.REALLOCATED
    return _STATUS_EVENTS[target]
