"""Conversational reply to a coached message."""

from __future__ import annotations

from typing import Any

from openai import OpenAIError

from constants import (
    CONVERSATION_EMPTY_REPLY,
    CONVERSATION_FALLBACK_FOLLOW_UP,
    CONVERSATION_FALLBACK_PLATFORM,
    CONVERSATION_FALLBACK_PREFIX,
)
from observability.logger import log_event
from observability.metrics import timed
from services.prompts import CONVERSATION_PROMPT_V1
from services.results import Fallback, Generated, ServiceResult


def canned_reply(message: str) -> str:
    """Deterministic reply used when the provider is unavailable."""
    tail = CONVERSATION_FALLBACK_PLATFORM if "sample" in message else CONVERSATION_FALLBACK_FOLLOW_UP
    return f"{CONVERSATION_FALLBACK_PREFIX} {tail}"


class ConversationService:
    """One chat completion per message; no history is kept."""

    def __init__(self, *, client: Any | None, model: str) -> None:
        self._client = client
        self._model = model

    async def reply(self, message: str) -> ServiceResult[str]:
        if self._client is None:
            return Fallback(canned_reply(message), reason="no_client")

        try:
            with timed("conversation_reply", details={"model": self._model}):
                response = await self._client.chat.completions.create(
                    model=self._model,
                    messages=[
                        {"role": "system", "content": CONVERSATION_PROMPT_V1},
                        {"role": "user", "content": message},
                    ],
                )
            content = response.choices[0].message.content
        except (OpenAIError, IndexError, AttributeError) as e:
            reason = f"provider_error:{type(e).__name__}"
            log_event({
                "event_type": "CONVERSATION_FALLBACK",
                "reason": reason,
                "error": str(e),
            }, level="ERROR")
            return Fallback(canned_reply(message), reason=reason)

        return Generated(content or CONVERSATION_EMPTY_REPLY)
