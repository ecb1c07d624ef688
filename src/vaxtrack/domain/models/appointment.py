from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class AppointmentPurpose(str, Enum):
    VACCINATION = "Vaccination"
    CHECKUP = "Checkup"
    CONSULTATION = "Consultation"
    FOLLOW_UP = "Follow-up"
    EMERGENCY = "Emergency"
    OTHER = "Other"


class ReminderState(BaseModel):
    # Sole idempotency guard for appointment reminders.
    sent: bool = False
    sent_at: Optional[datetime] = None


class Appointment(BaseModel):
    id: UUID
    parent_id: UUID
    child_id: UUID
    clinic_id: UUID
    appointment_date: datetime
    appointment_time: str
    purpose: AppointmentPurpose = AppointmentPurpose.VACCINATION
    vaccination_id: Optional[UUID] = None
    notes: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.PENDING
    cancellation_reason: Optional[str] = None
    reminder: ReminderState = Field(default_factory=ReminderState)
    created_at: datetime
    updated_at: datetime

    @field_validator("appointment_date")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
