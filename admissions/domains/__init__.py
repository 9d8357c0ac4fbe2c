# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the admissions engine.

This package contains domain services that encapsulate business logic.
Each domain module works against the persistence collaborator interface
and never against a concrete database.

Domains:
    audit: Append-only applicant history.
    eligibility: Age cohorts and the minimum-age gate.
    lifecycle: Status machine and individual/mass status actions.
    planning: Annual transition draft and its execution.
    queue: Waitlist ranking, deadlines and queue statistics.
    seats: Compatible classrooms and vacancies.
"""
