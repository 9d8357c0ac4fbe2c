# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM tables for the persistence adapter.

Applicant state is stored flattened: the status column selects which of the
nullable seat/deadline/penalty/transfer columns are meaningful. The
repository writes every state column on each update so values of a previous
status never linger.
"""

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Declarative base for admissions tables."""


class ClassroomTemplateRow(Base):
    __tablename__ = "classroom_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(120))
    min_age_months: Mapped[int] = mapped_column(Integer)
    max_age_months: Mapped[int] = mapped_column(Integer)


class SeatRow(Base):
    __tablename__ = "seats"

    classroom_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    facility_id: Mapped[str] = mapped_column(String(36), index=True)
    facility_name: Mapped[str] = mapped_column(String(200))
    classroom_name: Mapped[str] = mapped_column(String(200))
    template_id: Mapped[str | None] = mapped_column(
        ForeignKey("classroom_templates.id"), nullable=True
    )
    capacity: Mapped[int] = mapped_column(Integer, default=0)
    occupied: Mapped[int] = mapped_column(Integer, default=0)

    template: Mapped[ClassroomTemplateRow | None] = relationship(lazy="selectin")


class ApplicantRow(Base):
    __tablename__ = "applicants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    social_program: Mapped[bool] = mapped_column(Boolean, default=False)
    primary_facility_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    secondary_facility_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    accepts_any_facility: Mapped[bool] = mapped_column(Boolean, default=False)

    guardian_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    guardian_document: Mapped[str | None] = mapped_column(String(20), nullable=True)
    guardian_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    guardian_email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    address_street: Mapped[str | None] = mapped_column(String(300), nullable=True)
    address_district: Mapped[str | None] = mapped_column(String(120), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(32), index=True)
    current_facility_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    current_facility_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    current_classroom_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    current_classroom_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    convocation_deadline: Mapped[date | None] = mapped_column(Date, nullable=True)
    penalty_timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    desired_transfer_facility_id: Mapped[str | None] = mapped_column(
        String(36), nullable=True
    )
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class AuditRow(Base):
    __tablename__ = "audit_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    applicant_id: Mapped[str] = mapped_column(String(36), index=True)
    action: Mapped[str] = mapped_column(String(120))
    detail: Mapped[str] = mapped_column(Text)
    actor: Mapped[str] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
