from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    VACCINATION_REMINDER = "vaccination_reminder"
    APPOINTMENT_REMINDER = "appointment_reminder"
    APPOINTMENT_CONFIRMED = "appointment_confirmed"
    MESSAGE_RECEIVED = "message_received"
    SYSTEM = "system"
    PROMOTIONAL = "promotional"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ChannelDelivery(BaseModel):
    sent: bool = False
    sent_at: Optional[datetime] = None


class NotificationChannels(BaseModel):
    email: ChannelDelivery = Field(default_factory=ChannelDelivery)
    sms: ChannelDelivery = Field(default_factory=ChannelDelivery)
    push: ChannelDelivery = Field(default_factory=ChannelDelivery)


class Notification(BaseModel):
    id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    read_at: Optional[datetime] = None
    priority: NotificationPriority = NotificationPriority.MEDIUM
    action_url: Optional[str] = None
    channels: NotificationChannels = Field(default_factory=NotificationChannels)
    # Past this instant the record is purged and no longer listed.
    expires_at: Optional[datetime] = None
    created_at: datetime
