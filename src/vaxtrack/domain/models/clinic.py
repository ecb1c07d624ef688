from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ClinicService(str, Enum):
    VACCINATIONS = "Vaccinations"
    PEDIATRICS = "Pediatrics"
    EMERGENCY = "Emergency"
    LAB_SERVICES = "Lab Services"
    MATERNAL_HEALTH = "Maternal Health"
    GENERAL_CONSULTATION = "General Consultation"
    OTHER = "Other"


class ClinicAddress(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None
    full_address: Optional[str] = None


class GeoPoint(BaseModel):
    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)


class ClinicContact(BaseModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None


class OpeningHours(BaseModel):
    open: Optional[str] = None
    close: Optional[str] = None
    closed: bool = False


class Rating(BaseModel):
    average: float = Field(0, ge=0, le=5)
    count: int = 0


class Review(BaseModel):
    user_id: UUID
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    created_at: datetime


class Clinic(BaseModel):
    """A clinic in the global directory; not owned by any user."""

    id: UUID
    name: str
    address: ClinicAddress = Field(default_factory=ClinicAddress)
    location: GeoPoint
    contact: ClinicContact = Field(default_factory=ClinicContact)
    # Keyed by lowercase weekday name ("monday" .. "sunday").
    operating_hours: Dict[str, OpeningHours] = Field(default_factory=dict)
    services: List[ClinicService] = Field(default_factory=list)
    rating: Rating = Field(default_factory=Rating)
    reviews: List[Review] = Field(default_factory=list)
    verified: bool = False
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class ClinicSummary(BaseModel):
    """Clinic payload for list/nearby responses: reviews are never included."""

    id: UUID
    name: str
    address: ClinicAddress
    location: GeoPoint
    contact: ClinicContact
    operating_hours: Dict[str, OpeningHours]
    services: List[ClinicService]
    rating: Rating
    verified: bool
    distance_km: Optional[float] = None

    @classmethod
    def from_clinic(cls, clinic: Clinic, *, distance_km: Optional[float] = None) -> "ClinicSummary":
        return cls(
            id=clinic.id,
            name=clinic.name,
            address=clinic.address,
            location=clinic.location,
            contact=clinic.contact,
            operating_hours=clinic.operating_hours,
            services=clinic.services,
            rating=clinic.rating,
            verified=clinic.verified,
            distance_km=distance_km,
        )
