from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel

from src.vaxtrack.domain.errors import ConflictError
from src.vaxtrack.domain.geo import haversine_km
from src.vaxtrack.domain.models.appointment import Appointment, AppointmentStatus
from src.vaxtrack.domain.models.child import Child
from src.vaxtrack.domain.models.clinic import Clinic, ClinicService, Review
from src.vaxtrack.domain.models.message import Message
from src.vaxtrack.domain.models.notification import Notification, NotificationType
from src.vaxtrack.domain.models.user import User
from src.vaxtrack.domain.models.vaccination import Vaccination, VaccinationStatus
from src.vaxtrack.infra.db.repositories import (
    AppointmentRepository,
    ChildRepository,
    ClinicRepository,
    MessageRepository,
    NotificationRepository,
    UserRepository,
    VaccinationRepository,
)

M = TypeVar("M", bound=BaseModel)


def _copy(model: M) -> M:
    # Callers mutate what they get back and then call save(); handing out
    # copies keeps that contract identical to the SQL repositories.
    return model.model_copy(deep=True)


class InMemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self._users: Dict[UUID, User] = {}

    def get(self, user_id: UUID) -> Optional[User]:
        user = self._users.get(user_id)
        return _copy(user) if user is not None else None

    def get_by_subject(self, subject: str) -> Optional[User]:
        for user in self._users.values():
            if user.auth_subject == subject:
                return _copy(user)
        return None

    def get_by_email(self, email: str) -> Optional[User]:
        target = email.lower()
        for user in self._users.values():
            if user.email.lower() == target:
                return _copy(user)
        return None

    def save(self, user: User) -> None:
        self._users[user.id] = _copy(user)


class InMemoryChildRepository(ChildRepository):
    def __init__(self) -> None:
        self._children: Dict[UUID, Child] = {}

    def get(self, child_id: UUID) -> Optional[Child]:
        child = self._children.get(child_id)
        return _copy(child) if child is not None else None

    def list_by_parent(self, parent_id: UUID, *, active_only: bool = True) -> List[Child]:
        children = [
            _copy(c)
            for c in self._children.values()
            if c.parent_id == parent_id and (c.is_active or not active_only)
        ]
        children.sort(key=lambda c: c.created_at, reverse=True)
        return children

    def save(self, child: Child) -> None:
        self._children[child.id] = _copy(child)


class InMemoryVaccinationRepository(VaccinationRepository):
    def __init__(self) -> None:
        self._vaccinations: Dict[UUID, Vaccination] = {}

    def get(self, vaccination_id: UUID) -> Optional[Vaccination]:
        vaccination = self._vaccinations.get(vaccination_id)
        return _copy(vaccination) if vaccination is not None else None

    def list_by_children(
        self,
        child_ids: Iterable[UUID],
        *,
        status: Optional[VaccinationStatus] = None,
    ) -> List[Vaccination]:
        wanted = set(child_ids)
        results = [
            _copy(v)
            for v in self._vaccinations.values()
            if v.child_id in wanted and (status is None or v.status == status)
        ]
        results.sort(key=lambda v: v.vaccine_date, reverse=True)
        return results

    def list_upcoming(self, child_ids: Iterable[UUID], *, now: datetime, limit: int) -> List[Vaccination]:
        wanted = set(child_ids)
        results = [
            _copy(v)
            for v in self._vaccinations.values()
            if v.child_id in wanted and v.status == VaccinationStatus.SCHEDULED and v.vaccine_date >= now
        ]
        results.sort(key=lambda v: v.vaccine_date)
        return results[:limit]

    def list_scheduled_between(self, start: datetime, end: datetime) -> List[Vaccination]:
        results = [
            _copy(v)
            for v in self._vaccinations.values()
            if v.status == VaccinationStatus.SCHEDULED and start <= v.vaccine_date <= end
        ]
        results.sort(key=lambda v: v.vaccine_date)
        return results

    def save(self, vaccination: Vaccination) -> None:
        self._vaccinations[vaccination.id] = _copy(vaccination)

    def delete(self, vaccination_id: UUID) -> bool:
        return self._vaccinations.pop(vaccination_id, None) is not None


class InMemoryClinicRepository(ClinicRepository):
    def __init__(self) -> None:
        self._clinics: Dict[UUID, Clinic] = {}
        # Serializes review insertion so the aggregate is recomputed from a
        # consistent review list.
        self._review_lock = threading.Lock()

    def get(self, clinic_id: UUID) -> Optional[Clinic]:
        clinic = self._clinics.get(clinic_id)
        return _copy(clinic) if clinic is not None else None

    def list_active(
        self,
        *,
        search: Optional[str] = None,
        service: Optional[ClinicService] = None,
    ) -> List[Clinic]:
        needle = search.lower().strip() if search else None
        results: List[Clinic] = []
        for clinic in self._clinics.values():
            if not clinic.is_active:
                continue
            if service is not None and service not in clinic.services:
                continue
            if needle:
                haystack = " ".join(filter(None, [clinic.name, clinic.address.full_address, clinic.address.city]))
                if needle not in haystack.lower():
                    continue
            results.append(_copy(clinic))
        results.sort(key=lambda c: c.rating.average, reverse=True)
        return results

    def find_near(self, longitude: float, latitude: float, *, max_distance_m: float, limit: int) -> List[Clinic]:
        ranked = []
        for clinic in self._clinics.values():
            if not clinic.is_active:
                continue
            distance_m = 1000 * haversine_km(longitude, latitude, clinic.location.longitude, clinic.location.latitude)
            if distance_m <= max_distance_m:
                ranked.append((distance_m, clinic))
        ranked.sort(key=lambda pair: pair[0])
        return [_copy(clinic) for _, clinic in ranked[:limit]]

    def save(self, clinic: Clinic) -> None:
        self._clinics[clinic.id] = _copy(clinic)

    def add_review(self, clinic_id: UUID, review: Review) -> Optional[Clinic]:
        with self._review_lock:
            clinic = self._clinics.get(clinic_id)
            if clinic is None:
                return None
            if any(r.user_id == review.user_id for r in clinic.reviews):
                raise ConflictError("You have already reviewed this clinic")
            clinic.reviews.append(review)
            clinic.rating.count = len(clinic.reviews)
            clinic.rating.average = sum(r.rating for r in clinic.reviews) / clinic.rating.count
            clinic.updated_at = review.created_at
            return _copy(clinic)


class InMemoryAppointmentRepository(AppointmentRepository):
    def __init__(self) -> None:
        self._appointments: Dict[UUID, Appointment] = {}
        self._lock = threading.Lock()

    def get(self, appointment_id: UUID) -> Optional[Appointment]:
        appointment = self._appointments.get(appointment_id)
        return _copy(appointment) if appointment is not None else None

    def list_by_parent(
        self,
        parent_id: UUID,
        *,
        status: Optional[AppointmentStatus] = None,
        from_date: Optional[datetime] = None,
    ) -> List[Appointment]:
        results = []
        for appt in self._appointments.values():
            if appt.parent_id != parent_id:
                continue
            if status is not None and appt.status != status:
                continue
            if from_date is not None and appt.appointment_date < from_date:
                continue
            results.append(_copy(appt))
        results.sort(key=lambda a: a.appointment_date)
        return results

    def list_due_for_reminder(self, start: datetime, end: datetime) -> List[Appointment]:
        results = [
            _copy(a)
            for a in self._appointments.values()
            if a.status == AppointmentStatus.CONFIRMED
            and not a.reminder.sent
            and start <= a.appointment_date <= end
        ]
        results.sort(key=lambda a: a.appointment_date)
        return results

    def save(self, appointment: Appointment) -> None:
        self._appointments[appointment.id] = _copy(appointment)

    def mark_reminder_sent(self, appointment_id: UUID, sent_at: datetime) -> bool:
        with self._lock:
            appt = self._appointments.get(appointment_id)
            if appt is None or appt.reminder.sent:
                return False
            appt.reminder.sent = True
            appt.reminder.sent_at = sent_at
            return True


class InMemoryMessageRepository(MessageRepository):
    def __init__(self) -> None:
        self._messages: Dict[UUID, Message] = {}

    def get(self, message_id: UUID) -> Optional[Message]:
        message = self._messages.get(message_id)
        return _copy(message) if message is not None else None

    def save(self, message: Message) -> None:
        self._messages[message.id] = _copy(message)

    def list_conversation(self, conversation_id: str) -> List[Message]:
        results = [
            _copy(m)
            for m in self._messages.values()
            if m.conversation_id == conversation_id and not m.is_deleted
        ]
        results.sort(key=lambda m: m.created_at)
        return results

    def list_for_user(self, user_id: UUID) -> List[Message]:
        results = [
            _copy(m)
            for m in self._messages.values()
            if not m.is_deleted and user_id in (m.sender_id, m.receiver_id)
        ]
        results.sort(key=lambda m: m.created_at, reverse=True)
        return results


class InMemoryNotificationRepository(NotificationRepository):
    def __init__(self) -> None:
        self._notifications: Dict[UUID, Notification] = {}

    @staticmethod
    def _live(notification: Notification, now: datetime) -> bool:
        return notification.expires_at is None or notification.expires_at > now

    def get(self, notification_id: UUID) -> Optional[Notification]:
        notification = self._notifications.get(notification_id)
        return _copy(notification) if notification is not None else None

    def save(self, notification: Notification) -> None:
        self._notifications[notification.id] = _copy(notification)

    def list_for_user(
        self,
        user_id: UUID,
        *,
        now: datetime,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[Notification]:
        results = [
            _copy(n)
            for n in self._notifications.values()
            if n.user_id == user_id and self._live(n, now) and (not unread_only or not n.is_read)
        ]
        results.sort(key=lambda n: n.created_at, reverse=True)
        return results[:limit]

    def count_unread(self, user_id: UUID, *, now: datetime) -> int:
        return sum(
            1
            for n in self._notifications.values()
            if n.user_id == user_id and not n.is_read and self._live(n, now)
        )

    def list_by_type_since(self, user_id: UUID, type_: NotificationType, since: datetime) -> List[Notification]:
        return [
            _copy(n)
            for n in self._notifications.values()
            if n.user_id == user_id and n.type == type_ and n.created_at >= since
        ]

    def mark_all_read(self, user_id: UUID, read_at: datetime) -> int:
        updated = 0
        for n in self._notifications.values():
            if n.user_id == user_id and not n.is_read:
                n.is_read = True
                n.read_at = read_at
                updated += 1
        return updated

    def delete(self, notification_id: UUID) -> bool:
        return self._notifications.pop(notification_id, None) is not None

    def purge_expired(self, now: datetime) -> int:
        expired = [nid for nid, n in self._notifications.items() if not self._live(n, now)]
        for nid in expired:
            del self._notifications[nid]
        return len(expired)
