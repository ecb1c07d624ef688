from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional
from uuid import uuid4

from src.vaxtrack.services.ai.backends import ChatBackend, ChatMessage, get_chat_backend_from_env

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a helpful AI assistant specialized in childhood vaccinations and pediatric healthcare.
Your role is to provide accurate, evidence-based information about:
- Vaccination schedules
- Vaccine side effects
- Preparation for vaccinations
- General child health questions

Always:
- Be empathetic and understanding
- Provide clear, simple explanations
- Cite reputable sources (WHO, CDC) when possible
- Encourage consulting healthcare professionals for medical decisions
- Never provide emergency medical advice

If asked about emergencies or serious symptoms, immediately advise seeking medical attention."""

FALLBACK_MESSAGE = """I'm having trouble connecting right now. For vaccine information, please consult:
- Your pediatrician
- WHO vaccine guidelines: https://www.who.int/immunization
- CDC vaccine schedules: https://www.cdc.gov/vaccines

For urgent concerns, please contact your healthcare provider."""

# Only these roles are forwarded from client-supplied history.
_HISTORY_ROLES = {"user", "assistant"}


@dataclass
class ChatReply:
    message: str
    conversation_id: Optional[str] = None
    fallback: bool = False


class AssistantService:
    def __init__(self, backend: Optional[ChatBackend] = None) -> None:
        self.backend: ChatBackend = backend or get_chat_backend_from_env()

    def build_messages(self, message: str, history: List[ChatMessage]) -> List[ChatMessage]:
        messages: List[ChatMessage] = [{"role": "system", "content": SYSTEM_PROMPT}]
        for turn in history:
            if turn.get("role") in _HISTORY_ROLES and turn.get("content"):
                messages.append({"role": turn["role"], "content": turn["content"]})
        messages.append({"role": "user", "content": message})
        return messages

    def chat(
        self,
        message: str,
        history: Optional[List[ChatMessage]] = None,
        conversation_id: Optional[str] = None,
    ) -> ChatReply:
        """Ask the backend once; any provider failure yields the static fallback."""

        try:
            answer = self.backend.complete(self.build_messages(message, history or []))
        except Exception:
            logger.exception("Chat provider call failed; returning fallback answer")
            return ChatReply(message=FALLBACK_MESSAGE, fallback=True)
        return ChatReply(message=answer, conversation_id=conversation_id or uuid4().hex)


assistant_service = AssistantService()
