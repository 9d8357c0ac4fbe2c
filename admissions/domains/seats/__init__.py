# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Seats domain package."""

from admissions.domains.seats.service import SeatService

__all__ = ["SeatService"]
