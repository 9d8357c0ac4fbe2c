# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- A fixed clock so deadlines, penalties and ages are deterministic
- An applicant factory
- In-memory collaborators (repository, draft cache, event bus)
"""

from collections.abc import Callable, Generator
from datetime import date, datetime, timedelta, timezone
from typing import Any

import pytest

from admissions.core.config.settings import (
    AdmissionRulesSettings,
    Settings,
    clear_settings_cache,
)
from admissions.domains.audit.service import AuditLog
from admissions.domains.eligibility.calculator import AgeEligibilityCalculator
from admissions.domains.lifecycle.machine import StatusMachine
from admissions.infrastructure.cache.draft_cache import InMemoryDraftCache
from admissions.infrastructure.events.bus import EventBus, reset_event_bus
from admissions.infrastructure.persistence.memory import InMemoryAdmissionsRepository
from admissions.models import Applicant, SeatRef

# Fixed "now" for every test: 10 June 2025, noon UTC
NOW = datetime(2025, 6, 10, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock returning a settable instant."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_global_state() -> Generator[None, None, None]:
    """Reset cached settings and the event bus singleton around each test."""
    clear_settings_cache()
    reset_event_bus()
    yield
    clear_settings_cache()
    reset_event_bus()


@pytest.fixture
def settings() -> Settings:
    """Settings with default admission rules."""
    return Settings(rules=AdmissionRulesSettings(), operator="operator@test")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def make_applicant() -> Callable[..., Applicant]:
    """Factory building applicants registered relative to NOW."""
    counter = {"n": 0}

    def _make(**overrides: Any) -> Applicant:
        counter["n"] += 1
        n = counter["n"]
        data: dict[str, Any] = {
            "id": f"app-{n}",
            "name": f"Child {n}",
            "birth_date": date(2023, 4, 1),
            "registered_at": NOW - timedelta(days=100 - n),
        }
        data.update(overrides)
        return Applicant(**data)

    return _make


@pytest.fixture
def seat() -> SeatRef:
    return SeatRef(
        facility_id="fac-1",
        classroom_id="room-1",
        facility_name="Sunflower",
        classroom_name="Nursery II A",
    )


@pytest.fixture
def other_seat() -> SeatRef:
    return SeatRef(
        facility_id="fac-2",
        classroom_id="room-7",
        facility_name="Daisy",
        classroom_name="Nursery II B",
    )


# =============================================================================
# Collaborator Fixtures
# =============================================================================


@pytest.fixture
def eligibility(settings: Settings, clock: FixedClock) -> AgeEligibilityCalculator:
    return AgeEligibilityCalculator(rules=settings.rules, clock=clock)


@pytest.fixture
def machine(clock: FixedClock, eligibility: AgeEligibilityCalculator) -> StatusMachine:
    return StatusMachine(clock=clock, eligibility=eligibility)


@pytest.fixture
def repository() -> InMemoryAdmissionsRepository:
    return InMemoryAdmissionsRepository()


@pytest.fixture
def audit(repository: InMemoryAdmissionsRepository, clock: FixedClock) -> AuditLog:
    return AuditLog(repository, clock=clock, actor="operator@test")


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def draft_cache() -> InMemoryDraftCache:
    return InMemoryDraftCache()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (in-memory SQLite)"
    )
