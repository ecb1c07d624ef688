from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List
from uuid import UUID, uuid4

from src.vaxtrack.domain.errors import ForbiddenError, NotFoundError
from src.vaxtrack.domain.models.message import ConversationSummary, Message, conversation_id_for
from src.vaxtrack.domain.models.notification import NotificationPriority, NotificationType
from src.vaxtrack.infra.db.registry import RepositoryRegistry, repositories
from src.vaxtrack.infra.realtime.registry import ConnectionRegistry, connection_registry
from src.vaxtrack.services.notifications.dispatcher import NotificationDispatcher, notification_dispatcher

logger = logging.getLogger(__name__)

NEW_MESSAGE = "new_message"
MESSAGE_READ_RECEIPT = "message_read_receipt"
USER_TYPING = "user_typing"


class MessagingService:
    """Direct messages between two users plus their realtime fan-out.

    Rooms are keyed by the stringified user id; every event for a user goes to
    that room regardless of how many connections the user holds.
    """

    def __init__(
        self,
        registry: RepositoryRegistry = repositories,
        connections: ConnectionRegistry = connection_registry,
        dispatcher: NotificationDispatcher = notification_dispatcher,
    ) -> None:
        self._registry = registry
        self._connections = connections
        self._dispatcher = dispatcher

    async def send_message(self, sender_id: UUID, receiver_id: UUID, body: str) -> Message:
        receiver = self._registry.users.get(receiver_id)
        if receiver is None or not receiver.is_active:
            raise NotFoundError("Receiver not found")

        message = Message(
            id=uuid4(),
            conversation_id=conversation_id_for(sender_id, receiver_id),
            sender_id=sender_id,
            receiver_id=receiver_id,
            body=body,
            created_at=datetime.now(timezone.utc),
        )
        self._registry.messages.save(message)

        await self._connections.emit(str(receiver_id), NEW_MESSAGE, message.model_dump(mode="json"))

        sender = self._registry.users.get(sender_id)
        self._dispatcher.notify(
            receiver_id,
            NotificationType.MESSAGE_RECEIVED,
            "New Message",
            f"New message from {sender.full_name}" if sender else "You have a new message",
            payload={"message_id": str(message.id), "sender_id": str(sender_id)},
            priority=NotificationPriority.LOW,
            action_url=f"/messages/{sender_id}",
            external=False,
        )
        return message

    async def mark_read(self, message_id: UUID, reader_id: UUID) -> Message:
        message = self._registry.messages.get(message_id)
        if message is None or message.is_deleted:
            raise NotFoundError("Message not found")
        if message.receiver_id != reader_id:
            raise ForbiddenError("Only the receiver can mark a message as read")

        if not message.is_read:
            message.is_read = True
            message.read_at = datetime.now(timezone.utc)
            self._registry.messages.save(message)

        await self._connections.emit(str(message.sender_id), MESSAGE_READ_RECEIPT, {"message_id": str(message.id)})
        return message

    async def relay_typing(self, sender_id: UUID, receiver_id: UUID, is_typing: bool) -> None:
        await self._connections.emit(
            str(receiver_id),
            USER_TYPING,
            {"sender_id": str(sender_id), "is_typing": bool(is_typing)},
        )

    def get_conversation(self, user_id: UUID, other_id: UUID) -> List[Message]:
        return self._registry.messages.list_conversation(conversation_id_for(user_id, other_id))

    def list_conversations(self, user_id: UUID) -> List[ConversationSummary]:
        """Latest message and unread count per thread, most recent thread first."""

        summaries: Dict[str, ConversationSummary] = {}
        for message in self._registry.messages.list_for_user(user_id):
            summary = summaries.get(message.conversation_id)
            if summary is None:
                # list_for_user is newest first, so the first hit is the latest.
                summary = ConversationSummary(
                    conversation_id=message.conversation_id,
                    last_message=message,
                    unread_count=0,
                )
                summaries[message.conversation_id] = summary
            if message.receiver_id == user_id and not message.is_read:
                summary.unread_count += 1
        return list(summaries.values())

    def delete_message(self, message_id: UUID, user_id: UUID) -> None:
        message = self._registry.messages.get(message_id)
        if message is None or message.is_deleted:
            raise NotFoundError("Message not found")
        if message.sender_id != user_id:
            raise ForbiddenError("Only the sender can delete a message")
        message.is_deleted = True
        message.deleted_at = datetime.now(timezone.utc)
        self._registry.messages.save(message)


messaging_service = MessagingService()
