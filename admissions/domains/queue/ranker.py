# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Waitlist ranking.

Positions are never stored. They are recomputed from the full waitlist on
every read: social program beneficiaries first, then by effective date
(penalty timestamp if present, otherwise registration), earliest first.
Ties keep input order.
"""

from typing import Iterable

from admissions.models import Applicant, ApplicantStatus, RankedApplicant


def ranking_key(applicant: Applicant) -> tuple:
    """Sort key: beneficiaries first, then earliest effective date."""
    return (not applicant.social_program, applicant.effective_date)


def rank_waitlist(applicants: Iterable[Applicant]) -> list[RankedApplicant]:
    """Rank waitlisted applicants.

    Args:
        applicants: Any applicants; only waitlisted ones are ranked.

    Returns:
        Ranked views with contiguous positions 1..N.
    """
    waitlisted = [a for a in applicants if a.status == ApplicantStatus.WAITLISTED]
    ordered = sorted(waitlisted, key=ranking_key)
    return [
        RankedApplicant(applicant=applicant, position=position)
        for position, applicant in enumerate(ordered, start=1)
    ]


def order_called_up(applicants: Iterable[Applicant]) -> list[Applicant]:
    """Called-up applicants, nearest response deadline first."""
    called_up = [a for a in applicants if a.status == ApplicantStatus.CALLED_UP]
    return sorted(called_up, key=lambda a: a.convocation_deadline)
