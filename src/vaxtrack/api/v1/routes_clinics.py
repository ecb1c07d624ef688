from __future__ import annotations

from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from src.vaxtrack.domain.models.clinic import (
    Clinic,
    ClinicAddress,
    ClinicContact,
    ClinicService,
    ClinicSummary,
    GeoPoint,
    OpeningHours,
)
from src.vaxtrack.domain.models.user import User
from src.vaxtrack.ratelimit import api_limiter, rate_limit
from src.vaxtrack.security import get_current_user
from src.vaxtrack.services.audit.service import audit_service
from src.vaxtrack.services.clinics.service import DEFAULT_MAX_DISTANCE_M, clinic_directory_service

# The directory is public; only writes need an authenticated user.
router = APIRouter(prefix="/clinics", tags=["clinics"], dependencies=[Depends(rate_limit(api_limiter))])


class ReviewRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class ClinicCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    address: ClinicAddress = Field(default_factory=ClinicAddress)
    location: GeoPoint
    contact: ClinicContact = Field(default_factory=ClinicContact)
    operating_hours: Dict[str, OpeningHours] = Field(default_factory=dict)
    services: List[ClinicService] = Field(default_factory=list)
    verified: bool = False


@router.get("/", response_model=List[ClinicSummary])
async def list_clinics(
    search: Optional[str] = Query(None, max_length=100),
    service: Optional[ClinicService] = None,
) -> List[ClinicSummary]:
    return clinic_directory_service.list_clinics(search=search, service=service)


@router.get("/nearby", response_model=List[ClinicSummary])
async def nearby_clinics(
    longitude: float = Query(..., ge=-180, le=180),
    latitude: float = Query(..., ge=-90, le=90),
    max_distance: float = Query(DEFAULT_MAX_DISTANCE_M, gt=0, description="Radius in meters"),
) -> List[ClinicSummary]:
    """Active clinics within ``max_distance`` meters, nearest first (max 20)."""
    return clinic_directory_service.nearby(longitude, latitude, max_distance)


@router.get("/{clinic_id}", response_model=Clinic)
async def get_clinic(clinic_id: UUID) -> Clinic:
    return clinic_directory_service.get_clinic(clinic_id)


@router.post("/{clinic_id}/review", response_model=Clinic, status_code=status.HTTP_201_CREATED)
async def add_review(
    clinic_id: UUID,
    payload: ReviewRequest,
    current_user: User = Depends(get_current_user),
) -> Clinic:
    clinic = clinic_directory_service.add_review(clinic_id, current_user.id, payload.rating, payload.comment)
    audit_service.log_event(
        action="add_review",
        resource_type="clinic",
        resource_id=str(clinic_id),
        extra={"rating": payload.rating},
    )
    return clinic


@router.post("/", response_model=Clinic, status_code=status.HTTP_201_CREATED)
async def create_clinic(payload: ClinicCreateRequest, current_user: User = Depends(get_current_user)) -> Clinic:
    fields = {name: getattr(payload, name) for name in type(payload).model_fields}
    clinic = clinic_directory_service.create_clinic(current_user, fields)
    audit_service.log_event(action="create_clinic", resource_type="clinic", resource_id=str(clinic.id))
    return clinic
