# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Seat and classroom template models."""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from admissions.models.common import SeatRef


class ClassroomTemplate(BaseModel):
    """Age band a classroom is built for.

    Attributes:
        id: Template identifier.
        name: Template display name.
        min_age_months: Youngest accepted age, in months, at the cutoff date.
        max_age_months: Oldest accepted age, in months, at the cutoff date.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    min_age_months: int = Field(ge=0)
    max_age_months: int = Field(ge=0)

    @model_validator(mode="after")
    def check_range(self) -> "ClassroomTemplate":
        if self.max_age_months < self.min_age_months:
            raise ValueError("max_age_months must not be lower than min_age_months")
        return self

    def accepts(self, age_months: int) -> bool:
        """Whether an age in months falls inside this template's band."""
        return self.min_age_months <= age_months <= self.max_age_months


class Seat(BaseModel):
    """Capacity slot of a classroom at a facility."""

    model_config = ConfigDict(frozen=True)

    facility_id: str
    facility_name: str
    classroom_id: str
    classroom_name: str
    template: ClassroomTemplate | None = None
    capacity: int = Field(ge=0)
    occupied: int = Field(default=0, ge=0)

    @property
    def vacancies(self) -> int:
        """Free places; negative when the classroom is over capacity."""
        return self.capacity - self.occupied

    @property
    def ref(self) -> SeatRef:
        """Seat reference carrying ids and display names."""
        return SeatRef(
            facility_id=self.facility_id,
            classroom_id=self.classroom_id,
            facility_name=self.facility_name,
            classroom_name=self.classroom_name,
        )
