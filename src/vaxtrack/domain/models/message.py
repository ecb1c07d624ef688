from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


def conversation_id_for(user_a: UUID | str, user_b: UUID | str) -> str:
    """Return the order-independent thread id for two participants."""

    first, second = sorted([str(user_a), str(user_b)])
    return f"{first}_{second}"


class Message(BaseModel):
    id: UUID
    conversation_id: str
    sender_id: UUID
    receiver_id: UUID
    body: str
    is_read: bool = False
    read_at: Optional[datetime] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: datetime


class ConversationSummary(BaseModel):
    conversation_id: str
    last_message: Message
    unread_count: int
