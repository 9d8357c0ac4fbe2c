# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scoped local cache for planning drafts.

The planning store writes its draft here after every mutation so the plan
survives a restart of the operator's session. The store, not the cache, is
responsible for deciding whether a cached draft is still fresh.
"""

from typing import Protocol, Sequence

from admissions.models import PlanningEntry


class DraftCache(Protocol):
    """Key/value store for lists of planning entries."""

    def get(self, key: str) -> list[PlanningEntry] | None:
        """Return the entries stored under key, or None if absent."""
        ...

    def set(self, key: str, entries: Sequence[PlanningEntry]) -> None:
        """Store entries under key, replacing any previous value."""
        ...

    def clear(self, key: str) -> None:
        """Remove key if present."""
        ...


class InMemoryDraftCache:
    """Dictionary-backed draft cache for tests and single-process runs."""

    def __init__(self) -> None:
        self._data: dict[str, list[PlanningEntry]] = {}

    def get(self, key: str) -> list[PlanningEntry] | None:
        entries = self._data.get(key)
        return list(entries) if entries is not None else None

    def set(self, key: str, entries: Sequence[PlanningEntry]) -> None:
        self._data[key] = list(entries)

    def clear(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        """Keys currently stored."""
        return list(self._data)
