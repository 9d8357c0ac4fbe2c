# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Draft cache adapters for planning sessions."""

from admissions.infrastructure.cache.draft_cache import DraftCache, InMemoryDraftCache
from admissions.infrastructure.cache.redis_client import RedisDraftCache

__all__ = [
    "DraftCache",
    "InMemoryDraftCache",
    "RedisDraftCache",
]
