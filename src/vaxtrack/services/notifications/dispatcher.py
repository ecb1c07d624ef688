from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from html import escape
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from src.vaxtrack.config import settings
from src.vaxtrack.domain.models.notification import Notification, NotificationPriority, NotificationType
from src.vaxtrack.domain.models.user import User
from src.vaxtrack.infra.channels.email import EmailSender, SmtpEmailSender
from src.vaxtrack.infra.channels.sms import SmsSender, TwilioSmsSender
from src.vaxtrack.infra.db.registry import RepositoryRegistry, repositories

logger = logging.getLogger(__name__)


@dataclass
class EmailContent:
    subject: str
    html: str


class NotificationDispatcher:
    """Creates notification records and fans them out to email/SMS.

    The record is written before any channel is tried and stays written no
    matter what the channels do. Each enabled channel is attempted exactly
    once per call; failures are logged and otherwise ignored. Realtime push
    is left to callers that hold a connection registry.
    """

    def __init__(
        self,
        registry: RepositoryRegistry = repositories,
        email_sender: Optional[EmailSender] = None,
        sms_sender: Optional[SmsSender] = None,
        ttl_days: Optional[int] = None,
    ) -> None:
        self._registry = registry
        self.email_sender: EmailSender = email_sender or SmtpEmailSender()
        self.sms_sender: SmsSender = sms_sender or TwilioSmsSender()
        self.ttl_days = settings.notification_ttl_days if ttl_days is None else ttl_days

    def notify(
        self,
        user_id: UUID,
        type_: NotificationType,
        title: str,
        message: str,
        *,
        payload: Optional[Dict[str, Any]] = None,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        action_url: Optional[str] = None,
        email: Optional[EmailContent] = None,
        sms_body: Optional[str] = None,
        external: bool = True,
    ) -> Notification:
        """Persist a notification for ``user_id`` and deliver it.

        ``external=False`` records the notification without touching email or
        SMS (used for in-app only events such as new chat messages).
        """

        now = datetime.now(timezone.utc)
        notification = Notification(
            id=uuid4(),
            user_id=user_id,
            type=type_,
            title=title,
            message=message,
            data=dict(payload or {}),
            priority=priority,
            action_url=action_url,
            expires_at=now + timedelta(days=self.ttl_days) if self.ttl_days > 0 else None,
            created_at=now,
        )
        notifications = self._registry.notifications
        notifications.save(notification)

        if not external:
            return notification

        user = self._registry.users.get(user_id)
        if user is None or not user.is_active:
            logger.info("Notification %s stored without delivery: user %s unknown or inactive", notification.id, user_id)
            return notification

        delivered = False
        if user.preferences.email:
            content = email or EmailContent(subject=title, html=f"<p>{escape(message)}</p>")
            if self._send_email(user, content, notification.id):
                notification.channels.email.sent = True
                notification.channels.email.sent_at = datetime.now(timezone.utc)
                delivered = True

        if user.preferences.sms and user.phone:
            body = sms_body or f"VaxTrack: {title}. {message}"
            if self._send_sms(user, body, notification.id):
                notification.channels.sms.sent = True
                notification.channels.sms.sent_at = datetime.now(timezone.utc)
                delivered = True

        if delivered:
            notifications.save(notification)
        return notification

    def _send_email(self, user: User, content: EmailContent, notification_id: UUID) -> bool:
        try:
            return bool(self.email_sender.send(user.email, content.subject, content.html))
        except Exception:
            logger.exception("Email delivery failed for notification %s", notification_id)
            return False

    def _send_sms(self, user: User, body: str, notification_id: UUID) -> bool:
        try:
            return bool(self.sms_sender.send(user.phone, body))
        except Exception:
            logger.exception("SMS delivery failed for notification %s", notification_id)
            return False


notification_dispatcher = NotificationDispatcher()
