# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Planning store for the annual transition.

The store holds the operator's working draft: one PlanningEntry per
applicant taking part in the transition, with the planned status and seat
the operator has staged so far. It keeps a baseline snapshot of the last
save to report unsaved changes.

Design Decisions:
-----------------
1. The cache and the session key are injected; the store keeps no global
   state, so several sessions can coexist
2. Every mutation writes the draft to the cache synchronously. The write is
   not atomic with the in-memory update; a draft that no longer matches the
   applicants on the next load is discarded
3. A cached draft is reused only when its id-set equals the freshly loaded
   one. Planned fields are then overlaid on the fresh applicant records so
   current statuses are never taken from the cache

Usage:
------
    store = PlanningStore(cache, session_key="2026:operator-42", clock=clock)
    store.load(await repository.list_applicants())
    store.set_planned_status(applicant_id, ApplicantStatus.WITHDRAWN, "Aged out")
    store.save()
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from admissions.core.exceptions import CacheStaleError, PlanningEntryNotFoundError
from admissions.domains.eligibility.calculator import AgeEligibilityCalculator
from admissions.infrastructure.cache.draft_cache import DraftCache
from admissions.models import (
    EXIT_STATUSES,
    Applicant,
    ApplicantStatus,
    PlanningEntry,
    SeatRef,
    TransitionCohort,
)
from admissions.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

COHORT_BY_STATUS: dict[ApplicantStatus, TransitionCohort] = {
    ApplicantStatus.ENROLLED: TransitionCohort.INTERNAL_TRANSFER,
    ApplicantStatus.WAITLISTED: TransitionCohort.REQUEUE_RECLASSIFIED,
    ApplicantStatus.CALLED_UP: TransitionCohort.REQUEUE_RECLASSIFIED,
    ApplicantStatus.WITHDRAWN: TransitionCohort.FINAL_EXIT,
    ApplicantStatus.REFUSED: TransitionCohort.FINAL_EXIT,
}


def classify(applicant: Applicant) -> TransitionCohort | None:
    """Transition cohort of an applicant, or None when it takes no part."""
    return COHORT_BY_STATUS.get(applicant.status)


class PlanningStore:
    """Working draft of one planning session.

    Attributes:
        cache: Scoped local cache holding the draft between runs.
        session_key: Cache key of this session's draft.
        clock: Source of the current instant.
        eligibility: Calculator used for the display age cohort.
        target_year: Cycle being planned; next calendar year by default.
    """

    BASELINE_SUFFIX = ":baseline"

    def __init__(
        self,
        cache: DraftCache,
        session_key: str,
        clock: Clock = utc_now,
        eligibility: AgeEligibilityCalculator | None = None,
        target_year: int | None = None,
    ) -> None:
        self.cache = cache
        self.session_key = session_key
        self.clock = clock
        self.eligibility = eligibility or AgeEligibilityCalculator(clock=clock)
        self.target_year = target_year or clock().year + 1
        self._draft: dict[str, PlanningEntry] = {}
        self._baseline: dict[str, PlanningEntry] = {}

    @property
    def baseline_key(self) -> str:
        return f"{self.session_key}{self.BASELINE_SUFFIX}"

    # ========== Loading ==========

    def _initial_entry(self, applicant: Applicant, cohort: TransitionCohort) -> PlanningEntry:
        return PlanningEntry(
            applicant=applicant,
            transition_cohort=cohort,
            age_cohort=self.eligibility.cohort_for(applicant.birth_date, self.target_year),
        )

    def _restore(
        self,
        key: str,
        fresh: dict[str, PlanningEntry],
    ) -> dict[str, PlanningEntry]:
        """Overlay the planned fields cached under key on fresh entries.

        Raises:
            CacheStaleError: If the cached id-set differs from the fresh one.
        """
        cached = self.cache.get(key)
        if cached is None:
            return dict(fresh)

        cached_by_id = {entry.id: entry for entry in cached}
        if len(cached) != len(fresh) or cached_by_id.keys() != fresh.keys():
            raise CacheStaleError(
                f"Cached draft {key} has {len(cached)} entries, "
                f"{len(fresh)} applicants were loaded",
            )
        return {
            entry_id: entry.model_copy(
                update={
                    "planned_status": cached_by_id[entry_id].planned_status,
                    "planned_seat": cached_by_id[entry_id].planned_seat,
                    "planned_justification": cached_by_id[entry_id].planned_justification,
                }
            )
            for entry_id, entry in fresh.items()
        }

    def load(self, applicants: Iterable[Applicant]) -> list[PlanningEntry]:
        """Start the session from freshly loaded applicants.

        Applicants are classified into transition cohorts; statuses outside
        them are left out. A cached draft whose id-set matches is restored,
        a mismatching one is discarded.

        Args:
            applicants: Current applicant records.

        Returns:
            The draft entries.
        """
        fresh: dict[str, PlanningEntry] = {}
        for applicant in applicants:
            cohort = classify(applicant)
            if cohort is not None:
                fresh[applicant.id] = self._initial_entry(applicant, cohort)

        try:
            self._draft = self._restore(self.session_key, fresh)
            self._baseline = self._restore(self.baseline_key, fresh)
        except CacheStaleError as e:
            logger.warning("Discarding stale planning draft: %s", e)
            self.cache.clear(self.session_key)
            self.cache.clear(self.baseline_key)
            self._draft = dict(fresh)
            self._baseline = dict(fresh)

        logger.info(
            "Planning session %s loaded with %d entries",
            self.session_key,
            len(self._draft),
        )
        return self.entries

    # ========== Reading ==========

    @property
    def entries(self) -> list[PlanningEntry]:
        return list(self._draft.values())

    def get(self, applicant_id: str) -> PlanningEntry:
        """Get one draft entry.

        Raises:
            PlanningEntryNotFoundError: If the applicant is not in the draft.
        """
        try:
            return self._draft[applicant_id]
        except KeyError:
            raise PlanningEntryNotFoundError(
                f"Applicant {applicant_id} is not part of this planning session",
            ) from None

    def by_cohort(self, cohort: TransitionCohort) -> list[PlanningEntry]:
        return [e for e in self._draft.values() if e.transition_cohort == cohort]

    @property
    def has_unsaved_changes(self) -> bool:
        """Whether the draft differs from the last saved baseline."""
        if self._draft.keys() != self._baseline.keys():
            return True
        return any(
            entry.plan_key() != self._baseline[entry_id].plan_key()
            for entry_id, entry in self._draft.items()
        )

    # ========== Mutations ==========

    def _persist(self) -> None:
        self.cache.set(self.session_key, self.entries)

    def _planned_status_update(
        self,
        entry: PlanningEntry,
        status: ApplicantStatus,
        justification: str | None,
    ) -> PlanningEntry:
        update: dict = {
            "planned_status": status,
            "planned_justification": justification,
        }
        if status in EXIT_STATUSES:
            update["planned_seat"] = None
        return entry.model_copy(update=update)

    def _planned_seat_update(self, entry: PlanningEntry, seat: SeatRef) -> PlanningEntry:
        if entry.applicant.status == ApplicantStatus.ENROLLED:
            status = ApplicantStatus.ENROLLED
        else:
            status = ApplicantStatus.CALLED_UP
        return entry.model_copy(
            update={
                "planned_status": status,
                "planned_seat": seat,
                "planned_justification": None,
            }
        )

    def set_planned_status(
        self,
        applicant_id: str,
        status: ApplicantStatus,
        justification: str | None = None,
    ) -> PlanningEntry:
        """Stage a status change.

        Exit statuses (withdrawn, refused, waitlisted) also drop any planned
        seat.

        Raises:
            PlanningEntryNotFoundError: If the applicant is not in the draft.
        """
        entry = self._planned_status_update(
            self.get(applicant_id), ApplicantStatus(status), justification
        )
        self._draft[applicant_id] = entry
        self._persist()
        return entry

    def set_planned_seat(
        self,
        applicant_id: str,
        facility_id: str,
        classroom_id: str,
        facility_name: str | None = None,
        classroom_name: str | None = None,
    ) -> PlanningEntry:
        """Stage a seat assignment.

        Enrolled applicants keep the enrolled status (a reallocation);
        everyone else is planned for call-up. Any planned justification is
        cleared.

        Raises:
            PlanningEntryNotFoundError: If the applicant is not in the draft.
        """
        seat = SeatRef(
            facility_id=facility_id,
            classroom_id=classroom_id,
            facility_name=facility_name,
            classroom_name=classroom_name,
        )
        entry = self._planned_seat_update(self.get(applicant_id), seat)
        self._draft[applicant_id] = entry
        self._persist()
        return entry

    def bulk_set_planned_status(
        self,
        applicant_ids: Sequence[str],
        status: ApplicantStatus,
        justification: str | None = None,
    ) -> list[PlanningEntry]:
        """Stage the same status change for several applicants.

        Every id is checked before the draft changes; the draft is persisted
        once.

        Raises:
            PlanningEntryNotFoundError: If any applicant is not in the draft.
        """
        status = ApplicantStatus(status)
        current = [self.get(i) for i in applicant_ids]
        updated = [self._planned_status_update(e, status, justification) for e in current]
        for entry in updated:
            self._draft[entry.id] = entry
        self._persist()
        logger.debug("Planned %s for %d applicants", status.value, len(updated))
        return updated

    def bulk_set_planned_seat(
        self,
        applicant_ids: Sequence[str],
        facility_id: str,
        classroom_id: str,
        facility_name: str | None = None,
        classroom_name: str | None = None,
    ) -> list[PlanningEntry]:
        """Stage the same seat for several applicants.

        Raises:
            PlanningEntryNotFoundError: If any applicant is not in the draft.
        """
        seat = SeatRef(
            facility_id=facility_id,
            classroom_id=classroom_id,
            facility_name=facility_name,
            classroom_name=classroom_name,
        )
        current = [self.get(i) for i in applicant_ids]
        updated = [self._planned_seat_update(e, seat) for e in current]
        for entry in updated:
            self._draft[entry.id] = entry
        self._persist()
        logger.debug("Planned seat %s for %d applicants", seat.label, len(updated))
        return updated

    def refresh(self, applicants: Iterable[Applicant]) -> int:
        """Replace applicant snapshots in the draft, keeping the planned fields.

        After a partially failed execution this lets a retry skip the
        applicants that were already written. Applicants outside the draft
        are ignored.

        Returns:
            Number of entries refreshed.
        """
        refreshed = 0
        for applicant in applicants:
            entry = self._draft.get(applicant.id)
            if entry is None:
                continue
            self._draft[applicant.id] = entry.model_copy(update={"applicant": applicant})
            saved = self._baseline.get(applicant.id)
            if saved is not None:
                self._baseline[applicant.id] = saved.model_copy(update={"applicant": applicant})
            refreshed += 1
        if refreshed:
            self._persist()
        logger.info("Planning session %s: %d entries refreshed", self.session_key, refreshed)
        return refreshed

    # ========== Session ==========

    def save(self) -> None:
        """Make the current draft the baseline and persist both."""
        self._baseline = dict(self._draft)
        self._persist()
        self.cache.set(self.baseline_key, list(self._baseline.values()))
        logger.info("Planning session %s saved", self.session_key)

    def discard(self) -> None:
        """Revert the draft to the last saved baseline."""
        self._draft = dict(self._baseline)
        self._persist()
        logger.info("Planning session %s reverted to last save", self.session_key)

    def clear(self) -> None:
        """Empty draft and baseline and remove both cache keys."""
        self._draft = {}
        self._baseline = {}
        self.cache.clear(self.session_key)
        self.cache.clear(self.baseline_key)
        logger.info("Planning session %s cleared", self.session_key)
