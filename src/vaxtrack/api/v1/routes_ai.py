from __future__ import annotations

import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from src.vaxtrack.domain.models.user import User
from src.vaxtrack.ratelimit import ai_limiter, api_limiter, rate_limit
from src.vaxtrack.security import get_current_user
from src.vaxtrack.services.ai.service import assistant_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"], dependencies=[Depends(rate_limit(api_limiter))])


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=4000)


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    conversation_history: List[ChatTurn] = Field(default_factory=list, max_length=20)
    conversation_id: Optional[str] = None


class ChatResponse(BaseModel):
    message: str
    conversation_id: Optional[str] = None
    fallback: bool = False


class FeedbackRequest(BaseModel):
    message_id: str
    helpful: bool


@router.post("/chat", response_model=ChatResponse, dependencies=[Depends(rate_limit(ai_limiter))])
async def chat(payload: ChatRequest, current_user: User = Depends(get_current_user)) -> ChatResponse:
    """Answer a vaccination question; a static fallback is returned if the provider fails."""

    reply = await run_in_threadpool(
        assistant_service.chat,
        payload.message,
        [turn.model_dump() for turn in payload.conversation_history],
        payload.conversation_id,
    )
    return ChatResponse(message=reply.message, conversation_id=reply.conversation_id, fallback=reply.fallback)


@router.get("/history")
async def chat_history(current_user: User = Depends(get_current_user)) -> dict:
    # Conversations are not stored server-side.
    return {"conversations": []}


@router.post("/feedback")
async def chat_feedback(payload: FeedbackRequest, current_user: User = Depends(get_current_user)) -> dict:
    logger.info("AI feedback user=%s message=%s helpful=%s", current_user.id, payload.message_id, payload.helpful)
    return {"message": "Feedback submitted successfully"}
