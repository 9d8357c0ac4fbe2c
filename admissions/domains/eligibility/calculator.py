# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Age eligibility calculator.

This module converts a birth date into:
- The age in whole years at the yearly cutoff date (March 31 by default)
- The age cohort used to pick a classroom template
- The age in months used by the minimum-age gate

Only call-up and enrollment confirmation enforce the minimum age;
registration on the waitlist never does.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime

from admissions.core.config.settings import AdmissionRulesSettings, get_settings
from admissions.core.exceptions import MinimumAgeError
from admissions.models import AgeCohort
from admissions.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

_COHORTS_BY_AGE = {
    0: AgeCohort.A,
    1: AgeCohort.B,
    2: AgeCohort.C,
    3: AgeCohort.D,
}


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def cutoff_date(year: int, month: int = 3, day: int = 31) -> date:
    """Cutoff date of a year.

    The day is clamped to the length of the month, so a configured day 31
    in a 30-day month falls on the 30th.
    """
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def whole_years_between(start: date, end: date) -> int:
    """Completed years from start to end; negative when end precedes start."""
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return years


def age_at_cutoff_years(
    birth_date: date,
    cutoff_year: int,
    month: int = 3,
    day: int = 31,
) -> int:
    """Age in whole years at the cutoff date of a year.

    Args:
        birth_date: Child's birth date.
        cutoff_year: Year whose cutoff date is used.
        month: Cutoff month.
        day: Cutoff day.

    Returns:
        Completed years, clamped to 0 when born after the cutoff.
    """
    return max(whole_years_between(birth_date, cutoff_date(cutoff_year, month, day)), 0)


def cohort_for_age(age_years: int) -> AgeCohort:
    """Map an age in whole years to its cohort."""
    return _COHORTS_BY_AGE.get(age_years, AgeCohort.INELIGIBLE)


def age_in_months(birth_date: date, now: date | datetime) -> int:
    """Completed months between birth and now, never negative."""
    today = _as_date(now)
    months = (today.year - birth_date.year) * 12 + (today.month - birth_date.month)
    if today.day < birth_date.day:
        months -= 1
    return max(months, 0)


def meets_minimum_age(
    birth_date: date | None,
    now: date | datetime,
    minimum_months: int = 6,
) -> bool:
    """Whether a child is old enough to be called up or enrolled.

    A missing birth date never meets the minimum age.
    """
    if birth_date is None:
        return False
    return age_in_months(birth_date, now) >= minimum_months


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def format_age(birth_date: date, today: date | datetime) -> str:
    """Human-readable age such as "1 year, 6 months and 10 days".

    Args:
        birth_date: Child's birth date.
        today: Reference day.

    Returns:
        Age text; zero components are omitted, days are shown when nothing
        else is.
    """
    today = _as_date(today)
    if today <= birth_date:
        return "0 days"
    total_months = age_in_months(birth_date, today)
    years, months = divmod(total_months, 12)
    days = (today - _add_months(birth_date, total_months)).days

    parts = []
    if years > 0:
        parts.append(f"{years} year{'s' if years != 1 else ''}")
    if months > 0:
        parts.append(f"{months} month{'s' if months != 1 else ''}")
    if days > 0 or not parts:
        parts.append(f"{days} day{'s' if days != 1 else ''}")

    if len(parts) == 1:
        return parts[0]
    return f"{', '.join(parts[:-1])} and {parts[-1]}"


class AgeEligibilityCalculator:
    """Eligibility rules bound to configuration and a clock.

    Attributes:
        rules: Admission business rules (cutoff date, minimum age).
        clock: Source of the current instant.
    """

    def __init__(
        self,
        rules: AdmissionRulesSettings | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.rules = rules or get_settings().rules
        self.clock = clock

    def cutoff_date(self, year: int | None = None) -> date:
        """Configured cutoff date of a year, the current year by default."""
        if year is None:
            year = self.clock().year
        return cutoff_date(year, self.rules.cutoff_month, self.rules.cutoff_day)

    def age_at_cutoff_years(self, birth_date: date, cutoff_year: int | None = None) -> int:
        """Whole years at the cutoff date, clamped to 0."""
        return max(whole_years_between(birth_date, self.cutoff_date(cutoff_year)), 0)

    def age_at_cutoff_months(self, birth_date: date, cutoff_year: int | None = None) -> int:
        """Completed months at the cutoff date, used to match classroom templates."""
        return age_in_months(birth_date, self.cutoff_date(cutoff_year))

    def cohort_for(self, birth_date: date | None, cutoff_year: int | None = None) -> AgeCohort:
        """Cohort of a child at the cutoff date.

        Args:
            birth_date: Child's birth date; None means missing or unparseable.
            cutoff_year: Year whose cutoff is used, the current year by default.

        Returns:
            A to D for ages 0 to 3, INELIGIBLE otherwise.
        """
        if birth_date is None:
            return AgeCohort.INELIGIBLE
        return cohort_for_age(self.age_at_cutoff_years(birth_date, cutoff_year))

    def age_in_months(self, birth_date: date) -> int:
        """Completed months as of now."""
        return age_in_months(birth_date, self.clock())

    def meets_minimum_age(self, birth_date: date | None) -> bool:
        return meets_minimum_age(birth_date, self.clock(), self.rules.minimum_age_months)

    def ensure_minimum_age(self, birth_date: date | None, name: str = "Applicant") -> None:
        """Enforce the minimum-age gate.

        Args:
            birth_date: Child's birth date.
            name: Name used in the error message.

        Raises:
            MinimumAgeError: If the child is younger than the configured
                minimum or the birth date is missing.
        """
        if birth_date is None:
            raise MinimumAgeError(
                f"{name} has no valid birth date; the minimum age cannot be verified",
            )
        if not self.meets_minimum_age(birth_date):
            months = self.age_in_months(birth_date)
            logger.info("Minimum-age gate blocked %s at %d months", name, months)
            raise MinimumAgeError(
                f"{name} is {months} month(s) old; the minimum is "
                f"{self.rules.minimum_age_months} months",
                details={"age_months": months, "minimum_months": self.rules.minimum_age_months},
            )

    def format_age(self, birth_date: date) -> str:
        """Human-readable age as of today."""
        return format_age(birth_date, self.clock())
