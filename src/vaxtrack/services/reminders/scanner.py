from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from src.vaxtrack.config import settings
from src.vaxtrack.domain.models.appointment import Appointment
from src.vaxtrack.domain.models.notification import NotificationPriority, NotificationType
from src.vaxtrack.domain.models.vaccination import Vaccination
from src.vaxtrack.infra.channels.email import appointment_reminder_email, vaccination_reminder_email
from src.vaxtrack.infra.channels.sms import appointment_reminder_sms, vaccination_reminder_sms
from src.vaxtrack.infra.db.registry import RepositoryRegistry, repositories
from src.vaxtrack.services.notifications.dispatcher import (
    EmailContent,
    NotificationDispatcher,
    notification_dispatcher,
)

logger = logging.getLogger(__name__)


@dataclass
class ReminderScanResult:
    vaccination_reminders: int = 0
    appointment_reminders: int = 0
    skipped: int = 0
    failed: int = 0


class ReminderScanner:
    """One pass over the lookahead window ``[now, now + lookahead_days]``.

    Appointment reminders are sent at most once per appointment, guarded by
    ``reminder.sent``. Vaccinations carry no such flag, so by default every
    pass that still sees a scheduled vaccination in the window reminds again.
    ``dedupe_vaccinations=True`` instead skips vaccinations that already got a
    reminder within the last ``lookahead_days``.
    """

    def __init__(
        self,
        registry: RepositoryRegistry = repositories,
        dispatcher: NotificationDispatcher = notification_dispatcher,
        *,
        lookahead_days: Optional[int] = None,
        dedupe_vaccinations: bool = False,
    ) -> None:
        self._registry = registry
        self._dispatcher = dispatcher
        self.lookahead_days = settings.reminder_lookahead_days if lookahead_days is None else lookahead_days
        self.dedupe_vaccinations = dedupe_vaccinations

    def run(self, now: datetime) -> ReminderScanResult:
        end = now + timedelta(days=self.lookahead_days)
        result = ReminderScanResult()

        for vaccination in self._registry.vaccinations.list_scheduled_between(now, end):
            try:
                if self._remind_vaccination(vaccination, now):
                    result.vaccination_reminders += 1
                else:
                    result.skipped += 1
            except Exception:
                logger.exception("Vaccination reminder failed for %s", vaccination.id)
                result.failed += 1

        for appointment in self._registry.appointments.list_due_for_reminder(now, end):
            try:
                if self._remind_appointment(appointment):
                    result.appointment_reminders += 1
                else:
                    result.skipped += 1
            except Exception:
                logger.exception("Appointment reminder failed for %s", appointment.id)
                result.failed += 1

        logger.info(
            "Reminder scan finished: %d vaccination, %d appointment, %d skipped, %d failed",
            result.vaccination_reminders,
            result.appointment_reminders,
            result.skipped,
            result.failed,
        )
        return result

    def _already_reminded(self, vaccination: Vaccination, parent_id: UUID, now: datetime) -> bool:
        since = now - timedelta(days=self.lookahead_days)
        previous = self._registry.notifications.list_by_type_since(
            parent_id, NotificationType.VACCINATION_REMINDER, since
        )
        # Only notices sent by a scan count; the in-app "Vaccination Scheduled"
        # notice shares the type but carries no reminder marker.
        return any(
            n.data.get("reminder") is True and n.data.get("vaccination_id") == str(vaccination.id) for n in previous
        )

    def _remind_vaccination(self, vaccination: Vaccination, now: datetime) -> bool:
        child = self._registry.children.get(vaccination.child_id)
        if child is None or not child.is_active:
            logger.warning("Skipping vaccination %s: child missing or inactive", vaccination.id)
            return False
        parent = self._registry.users.get(child.parent_id)
        if parent is None:
            logger.warning("Skipping vaccination %s: parent %s not found", vaccination.id, child.parent_id)
            return False
        if self.dedupe_vaccinations and self._already_reminded(vaccination, parent.id, now):
            return False

        when = vaccination.vaccine_date.strftime("%Y-%m-%d")
        subject, html = vaccination_reminder_email(
            first_name=parent.first_name,
            child_name=child.name,
            vaccine_name=vaccination.vaccine_name,
            vaccine_date=when,
        )
        self._dispatcher.notify(
            parent.id,
            NotificationType.VACCINATION_REMINDER,
            "Upcoming Vaccination",
            f"{child.name} has {vaccination.vaccine_name} scheduled",
            payload={"vaccination_id": str(vaccination.id), "child_id": str(child.id), "reminder": True},
            priority=NotificationPriority.HIGH,
            action_url="/vaccinations",
            email=EmailContent(subject=subject, html=html),
            sms_body=vaccination_reminder_sms(
                child_name=child.name, vaccine_name=vaccination.vaccine_name, vaccine_date=when
            ),
        )
        return True

    def _remind_appointment(self, appointment: Appointment) -> bool:
        child = self._registry.children.get(appointment.child_id)
        parent = self._registry.users.get(appointment.parent_id)
        if child is None or parent is None:
            logger.warning("Skipping appointment %s: child or parent not found", appointment.id)
            return False

        clinic = self._registry.clinics.get(appointment.clinic_id)
        when = appointment.appointment_date.strftime("%Y-%m-%d")
        subject, html = appointment_reminder_email(
            first_name=parent.first_name,
            child_name=child.name,
            clinic_name=clinic.name if clinic else "your clinic",
            appointment_date=when,
            appointment_time=appointment.appointment_time,
        )
        self._dispatcher.notify(
            parent.id,
            NotificationType.APPOINTMENT_REMINDER,
            "Upcoming Appointment",
            f"Appointment for {child.name}",
            payload={"appointment_id": str(appointment.id), "reminder": True},
            priority=NotificationPriority.HIGH,
            action_url="/appointments",
            email=EmailContent(subject=subject, html=html),
            sms_body=appointment_reminder_sms(
                child_name=child.name, appointment_date=when, appointment_time=appointment.appointment_time
            ),
        )
        # A concurrent pass may have flagged it between the query and here;
        # the notification is already out either way.
        if not self._registry.appointments.mark_reminder_sent(appointment.id, datetime.now(timezone.utc)):
            logger.info("Appointment %s reminder flag was already set", appointment.id)
        return True
