# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy implementation of the persistence collaborator."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admissions.core.exceptions import ApplicantNotFoundError
from admissions.infrastructure.database.connection import session_scope
from admissions.infrastructure.database.tables import ApplicantRow, AuditRow, SeatRow
from admissions.infrastructure.persistence.base import AdmissionsRepository
from admissions.models import (
    Address,
    Applicant,
    ApplicantState,
    ApplicantStatus,
    AuditEntry,
    CalledUpState,
    ClassroomTemplate,
    EnrolledState,
    GuardianContact,
    RefusedState,
    Seat,
    SeatRef,
    TransferRequestedState,
    WaitlistedState,
    WithdrawnState,
)
from admissions.utils.datetime import ensure_aware

logger = logging.getLogger(__name__)


def state_to_columns(state: ApplicantState) -> dict[str, Any]:
    """Flatten a state variant into applicant columns.

    Every state column is present in the result; the ones the variant does
    not carry are None.

    Args:
        state: Applicant state variant.

    Returns:
        Column name to value mapping.
    """
    seat: SeatRef | None = getattr(state, "seat", None)
    return {
        "status": state.status,
        "current_facility_id": seat.facility_id if seat else None,
        "current_facility_name": seat.facility_name if seat else None,
        "current_classroom_id": seat.classroom_id if seat else None,
        "current_classroom_name": seat.classroom_name if seat else None,
        "convocation_deadline": getattr(state, "deadline", None),
        "penalty_timestamp": getattr(state, "penalty_timestamp", None),
        "desired_transfer_facility_id": getattr(state, "desired_facility_id", None),
    }


def row_to_state(row: ApplicantRow) -> ApplicantState:
    """Rebuild the state variant from applicant columns.

    Raises:
        ValueError: If the row holds an unknown status.
    """
    status = ApplicantStatus(row.status)
    seat = None
    if row.current_facility_id and row.current_classroom_id:
        seat = SeatRef(
            facility_id=row.current_facility_id,
            classroom_id=row.current_classroom_id,
            facility_name=row.current_facility_name,
            classroom_name=row.current_classroom_name,
        )

    if status == ApplicantStatus.WAITLISTED:
        penalty = row.penalty_timestamp
        return WaitlistedState(penalty_timestamp=ensure_aware(penalty) if penalty else None)
    if status == ApplicantStatus.CALLED_UP:
        return CalledUpState(seat=seat, deadline=row.convocation_deadline)
    if status == ApplicantStatus.ENROLLED:
        return EnrolledState(seat=seat)
    if status == ApplicantStatus.TRANSFER_REQUESTED:
        return TransferRequestedState(
            seat=seat,
            desired_facility_id=row.desired_transfer_facility_id,
        )
    if status == ApplicantStatus.WITHDRAWN:
        return WithdrawnState()
    return RefusedState()


def row_to_applicant(row: ApplicantRow) -> Applicant:
    """Convert an applicant row to the domain model."""
    guardian = None
    if row.guardian_name:
        guardian = GuardianContact(
            name=row.guardian_name,
            document=row.guardian_document,
            phone=row.guardian_phone,
            email=row.guardian_email,
        )
    address = None
    if row.address_street or row.address_district:
        address = Address(street=row.address_street, district=row.address_district)

    return Applicant(
        id=row.id,
        name=row.name,
        birth_date=row.birth_date,
        social_program=row.social_program,
        primary_facility_id=row.primary_facility_id,
        secondary_facility_id=row.secondary_facility_id,
        accepts_any_facility=row.accepts_any_facility,
        guardian=guardian,
        address=address,
        notes=row.notes,
        state=row_to_state(row),
        registered_at=ensure_aware(row.registered_at),
    )


def applicant_to_row(applicant: Applicant) -> ApplicantRow:
    """Convert a domain applicant to a new row."""
    guardian = applicant.guardian
    address = applicant.address
    return ApplicantRow(
        id=applicant.id,
        name=applicant.name,
        birth_date=applicant.birth_date,
        social_program=applicant.social_program,
        primary_facility_id=applicant.primary_facility_id,
        secondary_facility_id=applicant.secondary_facility_id,
        accepts_any_facility=applicant.accepts_any_facility,
        guardian_name=guardian.name if guardian else None,
        guardian_document=guardian.document if guardian else None,
        guardian_phone=guardian.phone if guardian else None,
        guardian_email=guardian.email if guardian else None,
        address_street=address.street if address else None,
        address_district=address.district if address else None,
        notes=applicant.notes,
        registered_at=applicant.registered_at,
        **state_to_columns(applicant.state),
    )


def row_to_seat(row: SeatRow) -> Seat:
    """Convert a seat row to the domain model."""
    template = None
    if row.template is not None:
        template = ClassroomTemplate(
            id=row.template.id,
            name=row.template.name,
            min_age_months=row.template.min_age_months,
            max_age_months=row.template.max_age_months,
        )
    return Seat(
        facility_id=row.facility_id,
        facility_name=row.facility_name,
        classroom_id=row.classroom_id,
        classroom_name=row.classroom_name,
        template=template,
        capacity=row.capacity,
        occupied=row.occupied,
    )


class SqlAlchemyAdmissionsRepository(AdmissionsRepository):
    """Persistence collaborator backed by a relational database.

    Each call runs in its own session and transaction. SQLAlchemy errors
    surface as PersistenceError.

    Attributes:
        sessionmaker: Async session factory.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self.sessionmaker = sessionmaker

    async def add_applicant(self, applicant: Applicant) -> Applicant:
        """Insert a new applicant record.

        Args:
            applicant: Applicant to store.

        Returns:
            The stored applicant.
        """
        async with session_scope(self.sessionmaker) as session:
            session.add(applicant_to_row(applicant))
        logger.info("Registered applicant %s", applicant.id)
        return applicant

    async def list_applicants(self) -> list[Applicant]:
        async with session_scope(self.sessionmaker) as session:
            result = await session.execute(
                select(ApplicantRow).order_by(ApplicantRow.registered_at.asc())
            )
            return [row_to_applicant(row) for row in result.scalars().all()]

    async def get_applicant(self, applicant_id: str) -> Applicant:
        async with session_scope(self.sessionmaker) as session:
            row = await session.get(ApplicantRow, applicant_id)
            if row is None:
                raise ApplicantNotFoundError(f"Applicant {applicant_id} not found")
            return row_to_applicant(row)

    async def update_applicant(self, applicant_id: str, state: ApplicantState) -> Applicant:
        async with session_scope(self.sessionmaker) as session:
            row = await session.get(ApplicantRow, applicant_id)
            if row is None:
                raise ApplicantNotFoundError(f"Applicant {applicant_id} not found")
            for column, value in state_to_columns(state).items():
                setattr(row, column, value)
            await session.flush()
            applicant = row_to_applicant(row)

        logger.debug("Updated applicant %s to %s", applicant_id, state.status)
        return applicant

    async def bulk_update_applicants(
        self,
        applicant_ids: Sequence[str],
        state: ApplicantState,
    ) -> int:
        if not applicant_ids:
            return 0
        async with session_scope(self.sessionmaker) as session:
            result = await session.execute(
                update(ApplicantRow)
                .where(ApplicantRow.id.in_(list(applicant_ids)))
                .values(**state_to_columns(state))
                .execution_options(synchronize_session=False)
            )
            count = result.rowcount

        logger.debug("Bulk updated %d applicants to %s", count, state.status)
        return count

    async def append_audit(self, entry: AuditEntry) -> None:
        async with session_scope(self.sessionmaker) as session:
            session.add(
                AuditRow(
                    id=entry.id,
                    applicant_id=entry.applicant_id,
                    action=entry.action,
                    detail=entry.detail,
                    actor=entry.actor,
                    created_at=entry.created_at,
                )
            )

    async def list_audit(self, applicant_id: str | None = None) -> list[AuditEntry]:
        query = select(AuditRow)
        if applicant_id is not None:
            query = query.where(AuditRow.applicant_id == applicant_id)
        query = query.order_by(AuditRow.created_at.desc())

        async with session_scope(self.sessionmaker) as session:
            result = await session.execute(query)
            return [
                AuditEntry(
                    id=row.id,
                    applicant_id=row.applicant_id,
                    action=row.action,
                    detail=row.detail,
                    actor=row.actor,
                    created_at=ensure_aware(row.created_at),
                )
                for row in result.scalars().all()
            ]

    async def list_seats(self, facility_id: str | None = None) -> list[Seat]:
        query = select(SeatRow)
        if facility_id is not None:
            query = query.where(SeatRow.facility_id == facility_id)
        query = query.order_by(SeatRow.facility_name, SeatRow.classroom_name)

        async with session_scope(self.sessionmaker) as session:
            result = await session.execute(query)
            return [row_to_seat(row) for row in result.scalars().all()]
