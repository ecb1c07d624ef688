from __future__ import annotations

from typing import Dict, List, Optional, Protocol

from src.vaxtrack.config import settings

ChatMessage = Dict[str, str]


class ChatBackend(Protocol):
    """Completes a chat transcript (system/user/assistant turns)."""

    def complete(self, messages: List[ChatMessage]) -> str:  # pragma: no cover - interface
        ...


class DemoChatBackend:
    """Offline backend for local development; never calls a provider."""

    def complete(self, messages: List[ChatMessage]) -> str:
        question = next((m["content"] for m in reversed(messages) if m.get("role") == "user"), "")
        return (
            "This is a demo answer. For questions like "
            f'"{question[:80]}" please check the vaccination schedule page '
            "or ask your pediatrician."
        )


class OpenAIChatBackend:
    """Chat completions through the OpenAI Python client.

    Expects OPENAI_API_KEY; model, max tokens and temperature come from
    LLM_MODEL, LLM_MAX_TOKENS and LLM_TEMPERATURE.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> None:
        self._model = model or settings.llm_model
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = settings.llm_temperature if temperature is None else temperature
        self._client = None

    def _get_client(self):  # pragma: no cover - external service
        if self._client is None:
            api_key = settings.openai_api_key
            if not api_key:
                raise RuntimeError("OPENAI_API_KEY must be set to use OpenAIChatBackend")
            from openai import OpenAI

            self._client = OpenAI(api_key=api_key)
        return self._client

    def complete(self, messages: List[ChatMessage]) -> str:  # pragma: no cover - external service
        completion = self._get_client().chat.completions.create(
            model=self._model,
            messages=messages,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )
        content = completion.choices[0].message.content
        if not content:
            raise RuntimeError("Empty completion from chat provider")
        return content


def get_chat_backend_from_env() -> ChatBackend:
    """Select a chat backend based on CHAT_BACKEND.

    Supports:
    - "openai" (default) – OpenAI chat completions
    - "demo" – canned offline answers
    """

    if settings.chat_backend.lower() == "demo":
        return DemoChatBackend()
    return OpenAIChatBackend()
