from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, computed_field


class UserRole(str, Enum):
    PARENT = "parent"
    DOCTOR = "doctor"
    CLINIC_STAFF = "clinic_staff"
    ADMIN = "admin"


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None


class NotificationPreferences(BaseModel):
    """Per-channel opt-ins consulted by the notification dispatcher."""

    email: bool = True
    sms: bool = False
    push: bool = True


class User(BaseModel):
    id: UUID
    # Subject identifier issued by the external identity provider.
    auth_subject: str
    email: EmailStr
    first_name: str
    last_name: str
    phone: Optional[str] = None
    address: Address = Field(default_factory=Address)
    photo_url: Optional[str] = None
    role: UserRole = UserRole.PARENT
    preferences: NotificationPreferences = Field(default_factory=NotificationPreferences)
    # Account closure flips this flag; records are never hard-deleted.
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    @computed_field  # type: ignore[misc]
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
