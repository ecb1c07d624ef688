from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from src.vaxtrack.domain.models.appointment import Appointment, AppointmentPurpose, AppointmentStatus
from src.vaxtrack.domain.models.user import User
from src.vaxtrack.ratelimit import api_limiter, rate_limit
from src.vaxtrack.security import get_current_user
from src.vaxtrack.services.appointments.service import appointment_service
from src.vaxtrack.services.audit.service import audit_service

router = APIRouter(prefix="/appointments", tags=["appointments"], dependencies=[Depends(rate_limit(api_limiter))])

_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AppointmentCreateRequest(BaseModel):
    child_id: UUID
    clinic_id: UUID
    appointment_date: datetime
    appointment_time: str = Field(..., pattern=_TIME_PATTERN)
    purpose: AppointmentPurpose = AppointmentPurpose.VACCINATION
    vaccination_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=1000)


class AppointmentUpdateRequest(BaseModel):
    clinic_id: Optional[UUID] = None
    appointment_date: Optional[datetime] = None
    appointment_time: Optional[str] = Field(None, pattern=_TIME_PATTERN)
    purpose: Optional[AppointmentPurpose] = None
    vaccination_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=1000)
    status: Optional[AppointmentStatus] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


@router.get("/", response_model=List[Appointment])
async def list_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    upcoming: bool = False,
    current_user: User = Depends(get_current_user),
) -> List[Appointment]:
    return appointment_service.list_appointments(current_user.id, status=status_filter, upcoming=upcoming)


@router.post("/", response_model=Appointment, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreateRequest,
    current_user: User = Depends(get_current_user),
) -> Appointment:
    # The confirmation goes out over SMTP and SMS, which block.
    appointment = await run_in_threadpool(
        appointment_service.create_appointment,
        current_user.id,
        payload.child_id,
        payload.model_dump(exclude={"child_id"}, exclude_none=True),
    )
    audit_service.log_event(
        action="create_appointment",
        resource_type="appointment",
        resource_id=str(appointment.id),
        extra={"clinic_id": str(appointment.clinic_id)},
    )
    return appointment


@router.put("/{appointment_id}", response_model=Appointment)
async def update_appointment(
    appointment_id: UUID,
    payload: AppointmentUpdateRequest,
    current_user: User = Depends(get_current_user),
) -> Appointment:
    appointment = appointment_service.update_appointment(
        appointment_id, current_user.id, payload.model_dump(exclude_unset=True)
    )
    audit_service.log_event(
        action="update_appointment",
        resource_type="appointment",
        resource_id=str(appointment.id),
        extra={"status": appointment.status.value},
    )
    return appointment


@router.delete("/{appointment_id}", response_model=Appointment)
async def cancel_appointment(
    appointment_id: UUID,
    payload: Optional[CancelRequest] = Body(None),
    current_user: User = Depends(get_current_user),
) -> Appointment:
    appointment = appointment_service.cancel_appointment(
        appointment_id, current_user.id, payload.reason if payload else None
    )
    audit_service.log_event(action="cancel_appointment", resource_type="appointment", resource_id=str(appointment_id))
    return appointment
