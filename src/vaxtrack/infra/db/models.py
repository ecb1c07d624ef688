from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from src.vaxtrack.domain.models.appointment import Appointment, ReminderState
from src.vaxtrack.domain.models.child import Child, EmergencyContact, StoredPhoto
from src.vaxtrack.domain.models.clinic import (
    Clinic,
    ClinicAddress,
    ClinicContact,
    GeoPoint,
    OpeningHours,
    Rating,
    Review,
)
from src.vaxtrack.domain.models.message import Message
from src.vaxtrack.domain.models.notification import Notification, NotificationChannels
from src.vaxtrack.domain.models.user import Address, NotificationPreferences, User
from src.vaxtrack.domain.models.vaccination import SideEffects, Vaccination


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Re-attach UTC to datetimes read back from backends that drop tzinfo (SQLite)."""

    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    pass


class UserORM(Base):
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    auth_subject: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    address: Mapped[dict] = mapped_column(JSON, default=dict)
    photo_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    role: Mapped[str] = mapped_column(String, nullable=False)
    preferences: Mapped[dict] = mapped_column(JSON, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def apply(self, user: User) -> None:
        self.auth_subject = user.auth_subject
        self.email = user.email.lower()
        self.first_name = user.first_name
        self.last_name = user.last_name
        self.phone = user.phone
        self.address = user.address.model_dump()
        self.photo_url = user.photo_url
        self.role = user.role.value
        self.preferences = user.preferences.model_dump()
        self.is_active = user.is_active
        self.created_at = user.created_at
        self.updated_at = user.updated_at

    @classmethod
    def from_domain(cls, user: User) -> "UserORM":
        orm = cls(id=user.id)
        orm.apply(user)
        return orm

    def to_domain(self) -> User:
        return User(
            id=self.id,
            auth_subject=self.auth_subject,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            phone=self.phone,
            address=Address(**(self.address or {})),
            photo_url=self.photo_url,
            role=self.role,
            preferences=NotificationPreferences(**(self.preferences or {})),
            is_active=self.is_active,
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
        )


class ChildORM(Base):
    __tablename__ = "children"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    parent_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[str] = mapped_column(String, nullable=False)
    photo: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    blood_type: Mapped[str] = mapped_column(String, nullable=False)
    allergies: Mapped[list] = mapped_column(JSON, default=list)
    medical_history: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    emergency_contact: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def apply(self, child: Child) -> None:
        self.parent_id = child.parent_id
        self.name = child.name
        self.date_of_birth = child.date_of_birth
        self.gender = child.gender.value
        self.photo = child.photo.model_dump() if child.photo else None
        self.blood_type = child.blood_type.value
        self.allergies = list(child.allergies)
        self.medical_history = child.medical_history
        self.emergency_contact = child.emergency_contact.model_dump() if child.emergency_contact else None
        self.is_active = child.is_active
        self.created_at = child.created_at
        self.updated_at = child.updated_at

    @classmethod
    def from_domain(cls, child: Child) -> "ChildORM":
        orm = cls(id=child.id)
        orm.apply(child)
        return orm

    def to_domain(self) -> Child:
        return Child(
            id=self.id,
            parent_id=self.parent_id,
            name=self.name,
            date_of_birth=self.date_of_birth,
            gender=self.gender,
            photo=StoredPhoto(**self.photo) if self.photo else None,
            blood_type=self.blood_type,
            allergies=list(self.allergies or []),
            medical_history=self.medical_history,
            emergency_contact=EmergencyContact(**self.emergency_contact) if self.emergency_contact else None,
            is_active=self.is_active,
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
        )


class VaccinationORM(Base):
    __tablename__ = "vaccinations"
    __table_args__ = (Index("ix_vaccinations_date_status", "vaccine_date", "status"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    child_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("children.id"), index=True, nullable=False)
    vaccine_name: Mapped[str] = mapped_column(String, nullable=False)
    vaccine_type: Mapped[str] = mapped_column(String, nullable=False)
    dose_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total_doses: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    vaccine_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    next_dose_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String, index=True, nullable=False)
    clinic_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    administered_by: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    batch_number: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    manufacturer: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    site_of_administration: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    side_effects: Mapped[dict] = mapped_column(JSON, default=dict)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def apply(self, vaccination: Vaccination) -> None:
        self.child_id = vaccination.child_id
        self.vaccine_name = vaccination.vaccine_name
        self.vaccine_type = vaccination.vaccine_type.value
        self.dose_number = vaccination.dose_number
        self.total_doses = vaccination.total_doses
        self.vaccine_date = vaccination.vaccine_date
        self.next_dose_date = vaccination.next_dose_date
        self.status = vaccination.status.value
        self.clinic_id = vaccination.clinic_id
        self.administered_by = vaccination.administered_by
        self.batch_number = vaccination.batch_number
        self.manufacturer = vaccination.manufacturer
        self.site_of_administration = (
            vaccination.site_of_administration.value if vaccination.site_of_administration else None
        )
        self.side_effects = vaccination.side_effects.model_dump(mode="json")
        self.notes = vaccination.notes
        self.created_at = vaccination.created_at
        self.updated_at = vaccination.updated_at

    @classmethod
    def from_domain(cls, vaccination: Vaccination) -> "VaccinationORM":
        orm = cls(id=vaccination.id)
        orm.apply(vaccination)
        return orm

    def to_domain(self) -> Vaccination:
        return Vaccination(
            id=self.id,
            child_id=self.child_id,
            vaccine_name=self.vaccine_name,
            vaccine_type=self.vaccine_type,
            dose_number=self.dose_number,
            total_doses=self.total_doses,
            vaccine_date=as_utc(self.vaccine_date),
            next_dose_date=as_utc(self.next_dose_date),
            status=self.status,
            clinic_id=self.clinic_id,
            administered_by=self.administered_by,
            batch_number=self.batch_number,
            manufacturer=self.manufacturer,
            site_of_administration=self.site_of_administration,
            side_effects=SideEffects(**(self.side_effects or {})),
            notes=self.notes,
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
        )


class ClinicReviewORM(Base):
    __tablename__ = "clinic_reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("clinics.id"), index=True, nullable=False)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_domain(self) -> Review:
        return Review(
            user_id=self.user_id,
            rating=self.rating,
            comment=self.comment,
            created_at=as_utc(self.created_at),
        )


class ClinicORM(Base):
    __tablename__ = "clinics"
    __table_args__ = (Index("ix_clinics_lat_lon", "latitude", "longitude"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String, index=True, nullable=False)
    address: Mapped[dict] = mapped_column(JSON, default=dict)
    full_address: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    contact: Mapped[dict] = mapped_column(JSON, default=dict)
    operating_hours: Mapped[dict] = mapped_column(JSON, default=dict)
    services: Mapped[list] = mapped_column(JSON, default=list)
    rating_average: Mapped[float] = mapped_column(Float, default=0.0)
    rating_count: Mapped[int] = mapped_column(Integer, default=0)
    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    reviews: Mapped[List[ClinicReviewORM]] = relationship(
        ClinicReviewORM,
        order_by=ClinicReviewORM.id,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def apply(self, clinic: Clinic) -> None:
        """Copy scalar fields; reviews and rating are owned by add_review."""

        self.name = clinic.name
        self.address = clinic.address.model_dump()
        self.full_address = clinic.address.full_address
        self.longitude = clinic.location.longitude
        self.latitude = clinic.location.latitude
        self.contact = clinic.contact.model_dump()
        self.operating_hours = {day: hours.model_dump() for day, hours in clinic.operating_hours.items()}
        self.services = [s.value for s in clinic.services]
        self.verified = clinic.verified
        self.is_active = clinic.is_active
        self.created_at = clinic.created_at
        self.updated_at = clinic.updated_at

    @classmethod
    def from_domain(cls, clinic: Clinic) -> "ClinicORM":
        orm = cls(id=clinic.id, rating_average=clinic.rating.average, rating_count=clinic.rating.count)
        orm.apply(clinic)
        return orm

    def to_domain(self) -> Clinic:
        return Clinic(
            id=self.id,
            name=self.name,
            address=ClinicAddress(**(self.address or {})),
            location=GeoPoint(longitude=self.longitude, latitude=self.latitude),
            contact=ClinicContact(**(self.contact or {})),
            operating_hours={day: OpeningHours(**hours) for day, hours in (self.operating_hours or {}).items()},
            services=list(self.services or []),
            rating=Rating(average=self.rating_average or 0.0, count=self.rating_count or 0),
            reviews=[r.to_domain() for r in self.reviews],
            verified=self.verified,
            is_active=self.is_active,
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
        )


class AppointmentORM(Base):
    __tablename__ = "appointments"
    __table_args__ = (Index("ix_appointments_date_status", "appointment_date", "status"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    parent_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id"), index=True, nullable=False)
    child_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("children.id"), nullable=False)
    clinic_id: Mapped[UUID] = mapped_column(Uuid, index=True, nullable=False)
    appointment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    appointment_time: Mapped[str] = mapped_column(String, nullable=False)
    purpose: Mapped[str] = mapped_column(String, nullable=False)
    vaccination_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, index=True, nullable=False)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    reminder_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def apply(self, appointment: Appointment) -> None:
        self.parent_id = appointment.parent_id
        self.child_id = appointment.child_id
        self.clinic_id = appointment.clinic_id
        self.appointment_date = appointment.appointment_date
        self.appointment_time = appointment.appointment_time
        self.purpose = appointment.purpose.value
        self.vaccination_id = appointment.vaccination_id
        self.notes = appointment.notes
        self.status = appointment.status.value
        self.cancellation_reason = appointment.cancellation_reason
        self.reminder_sent = appointment.reminder.sent
        self.reminder_sent_at = appointment.reminder.sent_at
        self.created_at = appointment.created_at
        self.updated_at = appointment.updated_at

    @classmethod
    def from_domain(cls, appointment: Appointment) -> "AppointmentORM":
        orm = cls(id=appointment.id)
        orm.apply(appointment)
        return orm

    def to_domain(self) -> Appointment:
        return Appointment(
            id=self.id,
            parent_id=self.parent_id,
            child_id=self.child_id,
            clinic_id=self.clinic_id,
            appointment_date=as_utc(self.appointment_date),
            appointment_time=self.appointment_time,
            purpose=self.purpose,
            vaccination_id=self.vaccination_id,
            notes=self.notes,
            status=self.status,
            cancellation_reason=self.cancellation_reason,
            reminder=ReminderState(sent=self.reminder_sent, sent_at=as_utc(self.reminder_sent_at)),
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
        )


class MessageORM(Base):
    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_conversation_created", "conversation_id", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    conversation_id: Mapped[str] = mapped_column(String, nullable=False)
    sender_id: Mapped[UUID] = mapped_column(Uuid, index=True, nullable=False)
    receiver_id: Mapped[UUID] = mapped_column(Uuid, index=True, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def apply(self, message: Message) -> None:
        self.conversation_id = message.conversation_id
        self.sender_id = message.sender_id
        self.receiver_id = message.receiver_id
        self.body = message.body
        self.is_read = message.is_read
        self.read_at = message.read_at
        self.is_deleted = message.is_deleted
        self.deleted_at = message.deleted_at
        self.created_at = message.created_at

    @classmethod
    def from_domain(cls, message: Message) -> "MessageORM":
        orm = cls(id=message.id)
        orm.apply(message)
        return orm

    def to_domain(self) -> Message:
        return Message(
            id=self.id,
            conversation_id=self.conversation_id,
            sender_id=self.sender_id,
            receiver_id=self.receiver_id,
            body=self.body,
            is_read=self.is_read,
            read_at=as_utc(self.read_at),
            is_deleted=self.is_deleted,
            deleted_at=as_utc(self.deleted_at),
            created_at=as_utc(self.created_at),
        )


class NotificationORM(Base):
    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_read_created", "user_id", "is_read", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    priority: Mapped[str] = mapped_column(String, nullable=False)
    action_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    channels: Mapped[dict] = mapped_column(JSON, default=dict)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def apply(self, notification: Notification) -> None:
        self.user_id = notification.user_id
        self.type = notification.type.value
        self.title = notification.title
        self.message = notification.message
        self.data = notification.model_dump(mode="json")["data"]
        self.is_read = notification.is_read
        self.read_at = notification.read_at
        self.priority = notification.priority.value
        self.action_url = notification.action_url
        self.channels = notification.channels.model_dump(mode="json")
        self.expires_at = notification.expires_at
        self.created_at = notification.created_at

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationORM":
        orm = cls(id=notification.id)
        orm.apply(notification)
        return orm

    def to_domain(self) -> Notification:
        return Notification(
            id=self.id,
            user_id=self.user_id,
            type=self.type,
            title=self.title,
            message=self.message,
            data=dict(self.data or {}),
            is_read=self.is_read,
            read_at=as_utc(self.read_at),
            priority=self.priority,
            action_url=self.action_url,
            channels=NotificationChannels(**(self.channels or {})),
            expires_at=as_utc(self.expires_at),
            created_at=as_utc(self.created_at),
        )
