from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class VaccinationStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    MISSED = "missed"
    CANCELLED = "cancelled"


class VaccineType(str, Enum):
    BCG = "BCG"
    HEPATITIS_B = "Hepatitis B"
    POLIO = "Polio"
    DTAP = "DTaP"
    HIB = "Hib"
    PCV = "PCV"
    ROTAVIRUS = "Rotavirus"
    MEASLES = "Measles"
    MUMPS = "Mumps"
    RUBELLA = "Rubella"
    VARICELLA = "Varicella"
    HPV = "HPV"
    INFLUENZA = "Influenza"
    OTHER = "Other"


class AdministrationSite(str, Enum):
    LEFT_ARM = "Left Arm"
    RIGHT_ARM = "Right Arm"
    LEFT_THIGH = "Left Thigh"
    RIGHT_THIGH = "Right Thigh"
    ORAL = "Oral"
    OTHER = "Other"


class SideEffectSeverity(str, Enum):
    NONE = "None"
    MILD = "Mild"
    MODERATE = "Moderate"
    SEVERE = "Severe"


class SideEffects(BaseModel):
    reported: bool = False
    description: Optional[str] = None
    severity: Optional[SideEffectSeverity] = None


class Vaccination(BaseModel):
    """A single dose record for a child.

    The reminder scheduler only reads these; ``status`` changes come from the
    owning parent.
    """

    id: UUID
    child_id: UUID
    vaccine_name: str
    vaccine_type: VaccineType = VaccineType.OTHER
    dose_number: Optional[int] = Field(None, ge=1)
    total_doses: Optional[int] = Field(None, ge=1)
    vaccine_date: datetime
    next_dose_date: Optional[datetime] = None
    status: VaccinationStatus = VaccinationStatus.SCHEDULED
    clinic_id: Optional[UUID] = None
    administered_by: Optional[str] = None
    batch_number: Optional[str] = None
    manufacturer: Optional[str] = None
    site_of_administration: Optional[AdministrationSite] = None
    side_effects: SideEffects = Field(default_factory=SideEffects)
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("vaccine_date", "next_dose_date")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Naive input is taken as UTC so window queries compare cleanly.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
