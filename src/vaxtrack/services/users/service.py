from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from src.vaxtrack.domain.errors import ConflictError, NotFoundError
from src.vaxtrack.domain.models.user import Address, NotificationPreferences, User
from src.vaxtrack.infra.db.registry import RepositoryRegistry, repositories


class UserService:
    """Local user profiles mirrored from the external identity provider.

    The identity provider owns credentials; this service keeps the profile
    fields the rest of the application needs (names, phone, channel
    preferences) keyed by the provider's subject id.
    """

    def __init__(self, registry: RepositoryRegistry = repositories) -> None:
        self._registry = registry

    def sync_profile(
        self,
        *,
        subject: str,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> User:
        """Create or update the local profile for an identity-provider subject."""

        users = self._registry.users
        now = datetime.now(timezone.utc)
        email = email.strip().lower()

        owner = users.get_by_email(email)
        if owner is not None and owner.auth_subject != subject:
            raise ConflictError("Email is already registered to another account")

        user = users.get_by_subject(subject)
        if user is None:
            user = User(
                id=uuid4(),
                auth_subject=subject,
                email=email,
                first_name=first_name or "New",
                last_name=last_name or "User",
                photo_url=photo_url,
                created_at=now,
                updated_at=now,
            )
        else:
            user.email = email
            user.first_name = first_name or user.first_name
            user.last_name = last_name or user.last_name
            user.photo_url = photo_url if photo_url is not None else user.photo_url
            user.updated_at = now

        users.save(user)
        return user

    def get_user(self, user_id: UUID) -> Optional[User]:
        return self._registry.users.get(user_id)

    def get_user_by_subject(self, subject: str) -> Optional[User]:
        return self._registry.users.get_by_subject(subject)

    def update_profile(
        self,
        user_id: UUID,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[Address] = None,
        preferences: Optional[NotificationPreferences] = None,
    ) -> User:
        user = self._registry.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")

        if first_name is not None:
            user.first_name = first_name
        if last_name is not None:
            user.last_name = last_name
        if phone is not None:
            user.phone = phone or None
        if address is not None:
            user.address = address
        if preferences is not None:
            user.preferences = preferences
        user.updated_at = datetime.now(timezone.utc)

        self._registry.users.save(user)
        return user

    def deactivate(self, user_id: UUID) -> User:
        user = self._registry.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        user.is_active = False
        user.updated_at = datetime.now(timezone.utc)
        self._registry.users.save(user)
        return user


user_service = UserService()
