# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Eligibility domain package.

This package derives age cohorts and enforces the minimum-age gate.
"""

from admissions.domains.eligibility.calculator import (
    AgeEligibilityCalculator,
    age_at_cutoff_years,
    age_in_months,
    cohort_for_age,
    cutoff_date,
    format_age,
    meets_minimum_age,
    whole_years_between,
)

__all__ = [
    "AgeEligibilityCalculator",
    "age_at_cutoff_years",
    "age_in_months",
    "cohort_for_age",
    "cutoff_date",
    "format_age",
    "meets_minimum_age",
    "whole_years_between",
]
