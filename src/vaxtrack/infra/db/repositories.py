from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from src.vaxtrack.domain.models.appointment import Appointment, AppointmentStatus
from src.vaxtrack.domain.models.child import Child
from src.vaxtrack.domain.models.clinic import Clinic, ClinicService, Review
from src.vaxtrack.domain.models.message import Message
from src.vaxtrack.domain.models.notification import Notification, NotificationType
from src.vaxtrack.domain.models.user import User
from src.vaxtrack.domain.models.vaccination import Vaccination, VaccinationStatus


class UserRepository(ABC):
    @abstractmethod
    def get(self, user_id: UUID) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    def get_by_subject(self, subject: str) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    def save(self, user: User) -> None:
        raise NotImplementedError


class ChildRepository(ABC):
    @abstractmethod
    def get(self, child_id: UUID) -> Optional[Child]:
        raise NotImplementedError

    @abstractmethod
    def list_by_parent(self, parent_id: UUID, *, active_only: bool = True) -> List[Child]:
        """Children of a parent, newest first."""
        raise NotImplementedError

    @abstractmethod
    def save(self, child: Child) -> None:
        raise NotImplementedError


class VaccinationRepository(ABC):
    @abstractmethod
    def get(self, vaccination_id: UUID) -> Optional[Vaccination]:
        raise NotImplementedError

    @abstractmethod
    def list_by_children(
        self,
        child_ids: Iterable[UUID],
        *,
        status: Optional[VaccinationStatus] = None,
    ) -> List[Vaccination]:
        """Vaccinations for the given children, latest vaccine_date first."""
        raise NotImplementedError

    @abstractmethod
    def list_upcoming(self, child_ids: Iterable[UUID], *, now: datetime, limit: int) -> List[Vaccination]:
        """Scheduled vaccinations on or after ``now``, soonest first."""
        raise NotImplementedError

    @abstractmethod
    def list_scheduled_between(self, start: datetime, end: datetime) -> List[Vaccination]:
        """Scheduled vaccinations across all users with start <= date <= end."""
        raise NotImplementedError

    @abstractmethod
    def save(self, vaccination: Vaccination) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, vaccination_id: UUID) -> bool:
        raise NotImplementedError


class ClinicRepository(ABC):
    @abstractmethod
    def get(self, clinic_id: UUID) -> Optional[Clinic]:
        raise NotImplementedError

    @abstractmethod
    def list_active(
        self,
        *,
        search: Optional[str] = None,
        service: Optional[ClinicService] = None,
    ) -> List[Clinic]:
        """Active clinics, highest average rating first."""
        raise NotImplementedError

    @abstractmethod
    def find_near(self, longitude: float, latitude: float, *, max_distance_m: float, limit: int) -> List[Clinic]:
        """Active clinics within ``max_distance_m`` of a point, nearest first."""
        raise NotImplementedError

    @abstractmethod
    def save(self, clinic: Clinic) -> None:
        raise NotImplementedError

    @abstractmethod
    def add_review(self, clinic_id: UUID, review: Review) -> Optional[Clinic]:
        """Append a review and recompute the aggregate rating atomically.

        Returns None if the clinic does not exist and raises ConflictError if
        the reviewer already reviewed this clinic.
        """
        raise NotImplementedError


class AppointmentRepository(ABC):
    @abstractmethod
    def get(self, appointment_id: UUID) -> Optional[Appointment]:
        raise NotImplementedError

    @abstractmethod
    def list_by_parent(
        self,
        parent_id: UUID,
        *,
        status: Optional[AppointmentStatus] = None,
        from_date: Optional[datetime] = None,
    ) -> List[Appointment]:
        """Appointments of a parent, earliest first."""
        raise NotImplementedError

    @abstractmethod
    def list_due_for_reminder(self, start: datetime, end: datetime) -> List[Appointment]:
        """Confirmed appointments in the window whose reminder is not yet sent."""
        raise NotImplementedError

    @abstractmethod
    def save(self, appointment: Appointment) -> None:
        raise NotImplementedError

    @abstractmethod
    def mark_reminder_sent(self, appointment_id: UUID, sent_at: datetime) -> bool:
        """Set reminder.sent in one conditional update.

        Returns False when the flag was already set or the appointment is gone.
        """
        raise NotImplementedError


class MessageRepository(ABC):
    @abstractmethod
    def get(self, message_id: UUID) -> Optional[Message]:
        raise NotImplementedError

    @abstractmethod
    def save(self, message: Message) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_conversation(self, conversation_id: str) -> List[Message]:
        """Non-deleted messages of one thread, oldest first."""
        raise NotImplementedError

    @abstractmethod
    def list_for_user(self, user_id: UUID) -> List[Message]:
        """Non-deleted messages sent or received by a user, newest first."""
        raise NotImplementedError


class NotificationRepository(ABC):
    @abstractmethod
    def get(self, notification_id: UUID) -> Optional[Notification]:
        raise NotImplementedError

    @abstractmethod
    def save(self, notification: Notification) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_for_user(
        self,
        user_id: UUID,
        *,
        now: datetime,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[Notification]:
        """Unexpired notifications of a user, newest first."""
        raise NotImplementedError

    @abstractmethod
    def count_unread(self, user_id: UUID, *, now: datetime) -> int:
        raise NotImplementedError

    @abstractmethod
    def list_by_type_since(self, user_id: UUID, type_: NotificationType, since: datetime) -> List[Notification]:
        raise NotImplementedError

    @abstractmethod
    def mark_all_read(self, user_id: UUID, read_at: datetime) -> int:
        raise NotImplementedError

    @abstractmethod
    def delete(self, notification_id: UUID) -> bool:
        raise NotImplementedError

    @abstractmethod
    def purge_expired(self, now: datetime) -> int:
        raise NotImplementedError
