from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.vaxtrack.domain.models.notification import Notification
from src.vaxtrack.domain.models.user import User
from src.vaxtrack.ratelimit import api_limiter, rate_limit
from src.vaxtrack.security import get_current_user
from src.vaxtrack.services.notifications.service import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"], dependencies=[Depends(rate_limit(api_limiter))])


class NotificationListResponse(BaseModel):
    notifications: List[Notification]
    unread_count: int


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    unread: bool = False,
    current_user: User = Depends(get_current_user),
) -> NotificationListResponse:
    items, unread_count = notification_service.list_for_user(current_user.id, unread_only=unread)
    return NotificationListResponse(notifications=items, unread_count=unread_count)


@router.put("/read-all")
async def mark_all_read(current_user: User = Depends(get_current_user)) -> dict:
    updated = notification_service.mark_all_read(current_user.id)
    return {"message": "All notifications marked as read", "updated": updated}


@router.put("/{notification_id}/read", response_model=Notification)
async def mark_read(notification_id: UUID, current_user: User = Depends(get_current_user)) -> Notification:
    return notification_service.mark_read(notification_id, current_user.id)


@router.delete("/{notification_id}")
async def delete_notification(notification_id: UUID, current_user: User = Depends(get_current_user)) -> dict:
    notification_service.delete(notification_id, current_user.id)
    return {"message": "Notification deleted"}
