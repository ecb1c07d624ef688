from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from src.vaxtrack.domain.errors import ForbiddenError, NotFoundError
from src.vaxtrack.domain.models.appointment import Appointment, AppointmentStatus
from src.vaxtrack.domain.models.notification import NotificationPriority, NotificationType
from src.vaxtrack.infra.channels.email import appointment_confirmation_email
from src.vaxtrack.infra.db.registry import RepositoryRegistry, repositories
from src.vaxtrack.services.notifications.dispatcher import (
    EmailContent,
    NotificationDispatcher,
    notification_dispatcher,
)

# Caller input never sets these directly; the reminder flag belongs to the
# reminder scanner.
_PROTECTED = {"id", "parent_id", "child_id", "reminder", "created_at", "updated_at"}


class AppointmentService:
    def __init__(
        self,
        registry: RepositoryRegistry = repositories,
        dispatcher: NotificationDispatcher = notification_dispatcher,
    ) -> None:
        self._registry = registry
        self._dispatcher = dispatcher

    def list_appointments(
        self,
        parent_id: UUID,
        *,
        status: Optional[AppointmentStatus] = None,
        upcoming: bool = False,
    ) -> List[Appointment]:
        return self._registry.appointments.list_by_parent(
            parent_id,
            status=status,
            from_date=datetime.now(timezone.utc) if upcoming else None,
        )

    def create_appointment(self, parent_id: UUID, child_id: UUID, fields: Dict[str, Any]) -> Appointment:
        child = self._registry.children.get(child_id)
        if child is None or child.parent_id != parent_id or not child.is_active:
            raise NotFoundError("Child not found")
        clinic = self._registry.clinics.get(fields["clinic_id"])
        if clinic is None or not clinic.is_active:
            raise NotFoundError("Clinic not found")

        now = datetime.now(timezone.utc)
        values = {k: v for k, v in fields.items() if k not in _PROTECTED and v is not None}
        appointment = Appointment(
            id=uuid4(),
            parent_id=parent_id,
            child_id=child.id,
            created_at=now,
            updated_at=now,
            **values,
        )
        self._registry.appointments.save(appointment)

        parent = self._registry.users.get(parent_id)
        subject, html = appointment_confirmation_email(
            first_name=parent.first_name if parent else "there",
            child_name=child.name,
            clinic_name=clinic.name,
            appointment_date=appointment.appointment_date.strftime("%Y-%m-%d"),
            appointment_time=appointment.appointment_time,
        )
        self._dispatcher.notify(
            parent_id,
            NotificationType.APPOINTMENT_CONFIRMED,
            "Appointment Booked",
            f"Appointment scheduled for {child.name}",
            payload={"appointment_id": str(appointment.id)},
            priority=NotificationPriority.MEDIUM,
            action_url="/appointments",
            email=EmailContent(subject=subject, html=html),
        )
        return appointment

    def _owned(self, appointment_id: UUID, parent_id: UUID) -> Appointment:
        appointment = self._registry.appointments.get(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found")
        if appointment.parent_id != parent_id:
            raise ForbiddenError("Not authorized")
        return appointment

    def update_appointment(self, appointment_id: UUID, parent_id: UUID, changes: Dict[str, Any]) -> Appointment:
        appointment = self._owned(appointment_id, parent_id)
        merged = {**appointment.model_dump(), **{k: v for k, v in changes.items() if k not in _PROTECTED}}
        updated = Appointment.model_validate(merged)
        if "clinic_id" in changes and updated.clinic_id != appointment.clinic_id:
            if self._registry.clinics.get(updated.clinic_id) is None:
                raise NotFoundError("Clinic not found")
        updated.updated_at = datetime.now(timezone.utc)
        self._registry.appointments.save(updated)
        return updated

    def cancel_appointment(self, appointment_id: UUID, parent_id: UUID, reason: Optional[str] = None) -> Appointment:
        appointment = self._owned(appointment_id, parent_id)
        appointment.status = AppointmentStatus.CANCELLED
        appointment.cancellation_reason = reason
        appointment.updated_at = datetime.now(timezone.utc)
        self._registry.appointments.save(appointment)
        return appointment


appointment_service = AppointmentService()
