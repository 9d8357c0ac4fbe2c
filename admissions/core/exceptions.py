# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exception hierarchy for the admissions engine.

This module defines the errors raised across the engine:
- AdmissionsError: Base exception for all admissions errors
- ConstraintViolation: Illegal status transition (programming error)
- ValidationError: Recoverable input or plan problems
- PersistenceError: Failures reported by the persistence collaborator
- CacheStaleError: Saved draft no longer matches the loaded cohort
- CacheError: Draft cache transport failures
"""

from typing import Any, Sequence


class AdmissionsError(Exception):
    """Base exception for all admissions errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize admissions error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return the human-readable message."""
        return self.message


class ConstraintViolation(AdmissionsError):
    """Raised when a status transition outside the allowed graph is attempted.

    Callers that only use the StatusMachine's declared transitions never
    see this error.

    Attributes:
        source: Status the applicant is currently in.
        target: Status the caller tried to move to.
    """

    def __init__(self, source: str, target: str, message: str | None = None) -> None:
        self.source = source
        self.target = target
        super().__init__(
            message or f"Transition not allowed: {source} -> {target}",
            details={"source": source, "target": target},
        )


class ValidationError(AdmissionsError):
    """Raised for recoverable input problems detected before any write."""

    pass


class PlanIncompleteError(ValidationError):
    """Raised when the draft plan cannot be executed as it stands.

    Attributes:
        offending_ids: Every applicant id that blocks execution.
        total: Number of offending applicants.
    """

    MAX_LISTED = 3

    def __init__(
        self,
        reason: str,
        offending: Sequence[tuple[str, str]],
    ) -> None:
        """Initialize plan incomplete error.

        Args:
            reason: What is wrong with the offending entries.
            offending: (applicant id, applicant name) pairs.
        """
        self.offending_ids = [applicant_id for applicant_id, _ in offending]
        self.total = len(offending)
        listed = ", ".join(name for _, name in offending[: self.MAX_LISTED])
        more = self.total - min(self.total, self.MAX_LISTED)
        suffix = f" and {more} more" if more > 0 else ""
        super().__init__(
            f"{reason}: {listed}{suffix} ({self.total} applicant(s) in total)",
            details={"offending_ids": self.offending_ids, "total": self.total},
        )


class MinimumAgeError(ValidationError):
    """Raised when an applicant is too young to be called up or enrolled."""

    pass


class PlanningEntryNotFoundError(ValidationError):
    """Raised when a planning operation names an applicant not in the draft."""

    pass


class PersistenceError(AdmissionsError):
    """Raised when the persistence collaborator fails.

    Attributes:
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.original_error = original_error
        super().__init__(message, details)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class ApplicantNotFoundError(PersistenceError):
    """Raised when an applicant id is unknown to the persistence collaborator."""

    pass


class TransitionExecutionError(PersistenceError):
    """Raised when one or more remote operations of a plan execution fail.

    The draft keeps its planned fields so the operator can inspect and retry.

    Attributes:
        failures: (operation description, error) pairs for each failed task.
        succeeded_operations: Descriptions of the operations that completed.
        succeeded_ids: Applicants written by the completed operations.
        succeeded: Number of operations that completed.
    """

    def __init__(
        self,
        failures: Sequence[tuple[str, BaseException]],
        succeeded_operations: Sequence[str] = (),
        succeeded_ids: Sequence[str] = (),
    ) -> None:
        self.failures = list(failures)
        self.succeeded_operations = list(succeeded_operations)
        self.succeeded_ids = list(succeeded_ids)
        succeeded = len(self.succeeded_operations)
        self.succeeded = succeeded
        reasons = "; ".join(f"{label}: {error}" for label, error in self.failures)
        super().__init__(
            f"{len(self.failures)} operation(s) failed, {succeeded} succeeded. {reasons}",
            details={
                "failed": len(self.failures),
                "succeeded": succeeded,
                "succeeded_ids": self.succeeded_ids,
            },
        )


class CacheStaleError(AdmissionsError):
    """Raised internally when a cached draft does not match the loaded cohort."""

    pass


class CacheError(AdmissionsError):
    """Raised when the draft cache backend fails.

    Attributes:
        original_error: The underlying exception, if any.
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        self.original_error = original_error
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message
