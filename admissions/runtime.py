# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Runtime wiring for an operator session.

Handles startup and shutdown of the shared resources and builds the
services on top of them:
- Structured logging
- Database engine and repository
- Draft cache (Redis unless another cache is given)
- Event bus, queue read cache and deadline ticker

Example:
    async with admissions_runtime() as runtime:
        store, executor = await runtime.planning_session("2026:operator-42")
        store.set_planned_status(applicant_id, ApplicantStatus.WITHDRAWN, "Aged out")
        await executor.execute()
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from admissions.core.config.settings import Settings, get_settings
from admissions.domains.audit.service import AuditLog
from admissions.domains.eligibility.calculator import AgeEligibilityCalculator
from admissions.domains.lifecycle.machine import StatusMachine
from admissions.domains.lifecycle.service import LifecycleService
from admissions.domains.planning.executor import TransitionExecutor
from admissions.domains.planning.store import PlanningStore
from admissions.domains.queue.deadline import DeadlineTicker
from admissions.domains.queue.service import QueueService
from admissions.domains.seats.service import SeatService
from admissions.infrastructure.cache import DraftCache, RedisDraftCache
from admissions.infrastructure.database import (
    SqlAlchemyAdmissionsRepository,
    check_database_connection,
    close_database,
    create_schema,
    get_engine,
    get_sessionmaker,
    init_database,
)
from admissions.infrastructure.events import EventBus, get_event_bus, reset_event_bus
from admissions.utils.datetime import Clock, make_clock
from admissions.utils.logging import bind_context, clear_context, get_logger, setup_logging

logger = get_logger(__name__)


@dataclass
class AdmissionsRuntime:
    """Services sharing one repository, cache, clock and event bus."""

    settings: Settings
    clock: Clock
    repository: SqlAlchemyAdmissionsRepository
    cache: DraftCache
    events: EventBus
    eligibility: AgeEligibilityCalculator
    machine: StatusMachine
    audit: AuditLog
    lifecycle: LifecycleService
    queue: QueueService
    seats: SeatService
    ticker: DeadlineTicker

    async def planning_session(
        self,
        session_key: str,
        target_year: Optional[int] = None,
    ) -> tuple[PlanningStore, TransitionExecutor]:
        """Load a planning session from the current applicants.

        Args:
            session_key: Cache key of the draft, usually cycle plus operator.
            target_year: Cycle being planned; next year when omitted.

        Returns:
            The loaded store and an executor bound to it.
        """
        store = PlanningStore(
            self.cache,
            session_key,
            clock=self.clock,
            eligibility=self.eligibility,
            target_year=target_year,
        )
        applicants = await self.repository.list_applicants()
        # The draft cache client is blocking
        await asyncio.to_thread(store.load, applicants)
        executor = TransitionExecutor(
            self.repository,
            store,
            self.machine,
            self.audit,
            self.events,
            self.settings,
        )
        return store, executor


@asynccontextmanager
async def admissions_runtime(
    settings: Optional[Settings] = None,
    cache: Optional[DraftCache] = None,
    clock: Optional[Clock] = None,
    create_tables: bool = False,
) -> AsyncGenerator[AdmissionsRuntime, None]:
    """Start the shared resources and yield the wired services.

    Args:
        settings: Application settings; loaded from the environment when
            omitted.
        cache: Draft cache; a Redis cache built from settings when omitted.
        clock: Clock; the configured local timezone when omitted.
        create_tables: Create missing tables on startup.

    Yields:
        The runtime; resources are released on exit.
    """
    settings = settings or get_settings()
    setup_logging(settings)
    bind_context(operator=settings.operator, environment=settings.environment)
    logger.info("admissions_runtime_starting", environment=settings.environment)

    await init_database(settings)
    if not await check_database_connection(get_engine()):
        logger.warning("database_unreachable_at_startup")
    if create_tables:
        await create_schema(get_engine())
    logger.info("database_initialized", create_tables=create_tables)

    owns_cache = cache is None
    if cache is None:
        cache = RedisDraftCache.from_settings(settings)

    clock = clock or make_clock(settings.rules.timezone)
    repository = SqlAlchemyAdmissionsRepository(get_sessionmaker())
    events = get_event_bus()
    eligibility = AgeEligibilityCalculator(rules=settings.rules, clock=clock)
    machine = StatusMachine(clock=clock, eligibility=eligibility)
    audit = AuditLog(repository, clock=clock, actor=settings.operator)
    runtime = AdmissionsRuntime(
        settings=settings,
        clock=clock,
        repository=repository,
        cache=cache,
        events=events,
        eligibility=eligibility,
        machine=machine,
        audit=audit,
        lifecycle=LifecycleService(repository, machine, audit, events, settings),
        queue=QueueService(repository, events, clock),
        seats=SeatService(repository, eligibility),
        ticker=DeadlineTicker(clock, interval=settings.rules.deadline_tick_seconds),
    )

    try:
        yield runtime
    finally:
        await runtime.ticker.stop()
        runtime.queue.close()
        if owns_cache and isinstance(cache, RedisDraftCache):
            cache.close()
        await close_database()
        reset_event_bus()
        clear_context()
        logger.info("admissions_runtime_stopped")
