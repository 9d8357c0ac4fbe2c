# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the admissions engine.

Example:
    >>> from admissions.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from admissions.core.config.settings import (
    AdmissionRulesSettings,
    DatabaseSettings,
    RedisSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "AdmissionRulesSettings",
    "DatabaseSettings",
    "RedisSettings",
]
