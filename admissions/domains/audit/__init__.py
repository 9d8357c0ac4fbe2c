# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit domain package."""

from admissions.domains.audit.service import AuditLog

__all__ = ["AuditLog"]
