from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, computed_field


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class BloodType(str, Enum):
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"
    UNKNOWN = "Unknown"


class StoredPhoto(BaseModel):
    url: str
    # Storage key used to delete the asset when the photo is replaced.
    key: str


class EmergencyContact(BaseModel):
    name: Optional[str] = None
    relationship: Optional[str] = None
    phone: Optional[str] = None


def age_in_years(date_of_birth: date, today: date) -> int:
    """Whole years elapsed, counting a year only once the birthday has passed."""

    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def age_in_months(date_of_birth: date, today: date) -> int:
    """Calendar-month difference, ignoring the day of month."""

    return (today.year - date_of_birth.year) * 12 + (today.month - date_of_birth.month)


class Child(BaseModel):
    id: UUID
    parent_id: UUID
    name: str
    date_of_birth: date
    gender: Gender
    photo: Optional[StoredPhoto] = None
    blood_type: BloodType = BloodType.UNKNOWN
    allergies: List[str] = Field(default_factory=list)
    medical_history: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    @computed_field  # type: ignore[misc]
    @property
    def age(self) -> int:
        return age_in_years(self.date_of_birth, date.today())

    @computed_field  # type: ignore[misc]
    @property
    def age_in_months(self) -> int:
        return age_in_months(self.date_of_birth, date.today())
