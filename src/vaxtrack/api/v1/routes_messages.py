from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from src.vaxtrack.domain.models.message import ConversationSummary, Message
from src.vaxtrack.domain.models.user import User
from src.vaxtrack.ratelimit import api_limiter, rate_limit
from src.vaxtrack.security import get_current_user
from src.vaxtrack.services.audit.service import audit_service
from src.vaxtrack.services.messaging.service import messaging_service

router = APIRouter(prefix="/messages", tags=["messages"], dependencies=[Depends(rate_limit(api_limiter))])


class SendMessageRequest(BaseModel):
    receiver_id: UUID
    body: str = Field(..., min_length=1, max_length=5000)


@router.get("/conversation/{user_id}", response_model=List[Message])
async def get_conversation(user_id: UUID, current_user: User = Depends(get_current_user)) -> List[Message]:
    return messaging_service.get_conversation(current_user.id, user_id)


@router.get("/conversations", response_model=List[ConversationSummary])
async def list_conversations(current_user: User = Depends(get_current_user)) -> List[ConversationSummary]:
    return messaging_service.list_conversations(current_user.id)


@router.post("/", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_message(payload: SendMessageRequest, current_user: User = Depends(get_current_user)) -> Message:
    if not payload.body.strip():
        raise HTTPException(status_code=422, detail="Message body is empty")
    message = await messaging_service.send_message(current_user.id, payload.receiver_id, payload.body)
    audit_service.log_event(
        action="send_message",
        resource_type="message",
        resource_id=str(message.id),
        extra={"conversation_id": message.conversation_id},
    )
    return message


@router.put("/{message_id}/read", response_model=Message)
async def mark_message_read(message_id: UUID, current_user: User = Depends(get_current_user)) -> Message:
    return await messaging_service.mark_read(message_id, current_user.id)


@router.delete("/{message_id}")
async def delete_message(message_id: UUID, current_user: User = Depends(get_current_user)) -> dict:
    messaging_service.delete_message(message_id, current_user.id)
    audit_service.log_event(action="delete_message", resource_type="message", resource_id=str(message_id))
    return {"message": "Message deleted"}
