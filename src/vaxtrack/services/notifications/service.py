from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from src.vaxtrack.domain.errors import NotFoundError
from src.vaxtrack.domain.models.notification import Notification
from src.vaxtrack.infra.db.registry import RepositoryRegistry, repositories

MAX_LISTED = 50


class NotificationService:
    """Caller-scoped reads and updates of notification records."""

    def __init__(self, registry: RepositoryRegistry = repositories) -> None:
        self._registry = registry

    def list_for_user(self, user_id: UUID, *, unread_only: bool = False) -> Tuple[List[Notification], int]:
        """Return up to 50 notifications (newest first) and the total unread count."""

        now = datetime.now(timezone.utc)
        repo = self._registry.notifications
        items = repo.list_for_user(user_id, now=now, unread_only=unread_only, limit=MAX_LISTED)
        return items, repo.count_unread(user_id, now=now)

    def _owned(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = self._registry.notifications.get(notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFoundError("Notification not found")
        return notification

    def mark_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = self._owned(notification_id, user_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            self._registry.notifications.save(notification)
        return notification

    def mark_all_read(self, user_id: UUID) -> int:
        return self._registry.notifications.mark_all_read(user_id, datetime.now(timezone.utc))

    def delete(self, notification_id: UUID, user_id: UUID) -> None:
        self._owned(notification_id, user_id)
        self._registry.notifications.delete(notification_id)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        return self._registry.notifications.purge_expired(now or datetime.now(timezone.utc))


notification_service = NotificationService()
