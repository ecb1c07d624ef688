from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from src.vaxtrack.domain.models.user import User
from src.vaxtrack.domain.models.vaccination import (
    AdministrationSite,
    SideEffects,
    Vaccination,
    VaccinationStatus,
    VaccineType,
)
from src.vaxtrack.ratelimit import api_limiter, rate_limit
from src.vaxtrack.security import get_current_user
from src.vaxtrack.services.audit.service import audit_service
from src.vaxtrack.services.vaccinations.schedule import VACCINATION_SCHEDULE, ScheduleStage
from src.vaxtrack.services.vaccinations.service import vaccination_service

router = APIRouter(prefix="/vaccinations", tags=["vaccinations"], dependencies=[Depends(rate_limit(api_limiter))])


class VaccinationCreateRequest(BaseModel):
    child_id: UUID
    vaccine_name: str = Field(..., min_length=1, max_length=200)
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
    side_effects: Optional[SideEffects] = None
    notes: Optional[str] = Field(None, max_length=2000)


class VaccinationUpdateRequest(BaseModel):
    vaccine_name: Optional[str] = Field(None, min_length=1, max_length=200)
    vaccine_type: Optional[VaccineType] = None
    dose_number: Optional[int] = Field(None, ge=1)
    total_doses: Optional[int] = Field(None, ge=1)
    vaccine_date: Optional[datetime] = None
    next_dose_date: Optional[datetime] = None
    status: Optional[VaccinationStatus] = None
    clinic_id: Optional[UUID] = None
    administered_by: Optional[str] = None
    batch_number: Optional[str] = None
    manufacturer: Optional[str] = None
    site_of_administration: Optional[AdministrationSite] = None
    side_effects: Optional[SideEffects] = None
    notes: Optional[str] = Field(None, max_length=2000)


@router.get("/", response_model=List[Vaccination])
async def list_vaccinations(
    child_id: Optional[UUID] = None,
    status_filter: Optional[VaccinationStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
) -> List[Vaccination]:
    return vaccination_service.list_vaccinations(current_user.id, child_id=child_id, status=status_filter)


@router.get("/upcoming", response_model=List[Vaccination])
async def list_upcoming_vaccinations(current_user: User = Depends(get_current_user)) -> List[Vaccination]:
    return vaccination_service.list_upcoming(current_user.id)


@router.get("/schedule", response_model=List[ScheduleStage])
async def get_vaccination_schedule(current_user: User = Depends(get_current_user)) -> List[ScheduleStage]:
    """Reference WHO/CDC childhood schedule."""
    return VACCINATION_SCHEDULE


@router.post("/", response_model=Vaccination, status_code=status.HTTP_201_CREATED)
async def create_vaccination(
    payload: VaccinationCreateRequest,
    current_user: User = Depends(get_current_user),
) -> Vaccination:
    fields = payload.model_dump(exclude={"child_id"}, exclude_none=True)
    vaccination = vaccination_service.create_vaccination(current_user.id, payload.child_id, fields)
    audit_service.log_event(
        action="create_vaccination",
        resource_type="vaccination",
        resource_id=str(vaccination.id),
        extra={"child_id": str(vaccination.child_id)},
    )
    return vaccination


@router.put("/{vaccination_id}", response_model=Vaccination)
async def update_vaccination(
    vaccination_id: UUID,
    payload: VaccinationUpdateRequest,
    current_user: User = Depends(get_current_user),
) -> Vaccination:
    vaccination = vaccination_service.update_vaccination(
        vaccination_id, current_user.id, payload.model_dump(exclude_unset=True)
    )
    audit_service.log_event(
        action="update_vaccination",
        resource_type="vaccination",
        resource_id=str(vaccination.id),
        extra={"status": vaccination.status.value},
    )
    return vaccination


@router.delete("/{vaccination_id}")
async def delete_vaccination(vaccination_id: UUID, current_user: User = Depends(get_current_user)) -> dict:
    vaccination_service.delete_vaccination(vaccination_id, current_user.id)
    audit_service.log_event(action="delete_vaccination", resource_type="vaccination", resource_id=str(vaccination_id))
    return {"message": "Vaccination record deleted"}
