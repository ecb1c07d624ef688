from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update

from src.vaxtrack.domain.models.message import Message
from src.vaxtrack.domain.models.notification import Notification, NotificationType
from src.vaxtrack.infra.db.models import MessageORM, NotificationORM
from src.vaxtrack.infra.db.repositories import MessageRepository, NotificationRepository
from src.vaxtrack.infra.db.session import SessionFactory


class SqlMessageRepository(MessageRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, message_id: UUID) -> Optional[Message]:
        session = self._session_factory()
        try:
            orm = session.get(MessageORM, message_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def save(self, message: Message) -> None:
        session = self._session_factory()
        try:
            existing = session.get(MessageORM, message.id)
            if existing is None:
                session.add(MessageORM.from_domain(message))
            else:
                existing.apply(message)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def list_conversation(self, conversation_id: str) -> List[Message]:
        session = self._session_factory()
        try:
            stmt = (
                select(MessageORM)
                .where(MessageORM.conversation_id == conversation_id, MessageORM.is_deleted.is_(False))
                .order_by(MessageORM.created_at)
            )
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def list_for_user(self, user_id: UUID) -> List[Message]:
        session = self._session_factory()
        try:
            stmt = (
                select(MessageORM)
                .where(
                    MessageORM.is_deleted.is_(False),
                    or_(MessageORM.sender_id == user_id, MessageORM.receiver_id == user_id),
                )
                .order_by(MessageORM.created_at.desc())
            )
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()


class SqlNotificationRepository(NotificationRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _live(now: datetime):
        return or_(NotificationORM.expires_at.is_(None), NotificationORM.expires_at > now)

    def get(self, notification_id: UUID) -> Optional[Notification]:
        session = self._session_factory()
        try:
            orm = session.get(NotificationORM, notification_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def save(self, notification: Notification) -> None:
        session = self._session_factory()
        try:
            existing = session.get(NotificationORM, notification.id)
            if existing is None:
                session.add(NotificationORM.from_domain(notification))
            else:
                existing.apply(notification)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def list_for_user(
        self,
        user_id: UUID,
        *,
        now: datetime,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[Notification]:
        session = self._session_factory()
        try:
            stmt = select(NotificationORM).where(NotificationORM.user_id == user_id, self._live(now))
            if unread_only:
                stmt = stmt.where(NotificationORM.is_read.is_(False))
            stmt = stmt.order_by(NotificationORM.created_at.desc()).limit(limit)
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def count_unread(self, user_id: UUID, *, now: datetime) -> int:
        session = self._session_factory()
        try:
            stmt = select(func.count()).select_from(NotificationORM).where(
                NotificationORM.user_id == user_id,
                NotificationORM.is_read.is_(False),
                self._live(now),
            )
            return int(session.scalar(stmt) or 0)
        finally:
            session.close()

    def list_by_type_since(self, user_id: UUID, type_: NotificationType, since: datetime) -> List[Notification]:
        session = self._session_factory()
        try:
            stmt = select(NotificationORM).where(
                NotificationORM.user_id == user_id,
                NotificationORM.type == type_.value,
                NotificationORM.created_at >= since,
            )
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def mark_all_read(self, user_id: UUID, read_at: datetime) -> int:
        session = self._session_factory()
        try:
            result = session.execute(
                update(NotificationORM)
                .where(NotificationORM.user_id == user_id, NotificationORM.is_read.is_(False))
                .values(is_read=True, read_at=read_at)
            )
            session.commit()
            return result.rowcount or 0
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def delete(self, notification_id: UUID) -> bool:
        session = self._session_factory()
        try:
            result = session.execute(delete(NotificationORM).where(NotificationORM.id == notification_id))
            session.commit()
            return result.rowcount == 1
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def purge_expired(self, now: datetime) -> int:
        session = self._session_factory()
        try:
            result = session.execute(
                delete(NotificationORM).where(
                    NotificationORM.expires_at.is_not(None),
                    NotificationORM.expires_at <= now,
                )
            )
            session.commit()
            return result.rowcount or 0
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
