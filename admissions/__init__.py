"""Childcare admissions engine.

Enrollment lifecycle and annual transition engine for public childcare
seats: waitlist ranking, call-ups with response deadlines, age
eligibility, and the draft/commit workflow of the yearly transition.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
