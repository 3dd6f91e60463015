"""
Coaching rewrites.

Three coaches rewrite the same user message concurrently:
- accent: minimal grammar correction, same meaning and tone
- language: more natural, native-sounding phrasing
- executive: authoritative, business-appropriate phrasing

Each provider call uses JSON mode and returns {"message": "..."}; a reply
that cannot be parsed falls back to the raw reply (or the input when empty).

If there is no client or any provider call fails, all three rewrites come
from the deterministic local transforms and the result is a Fallback.
"""

from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass
from typing import Any

from openai import OpenAIError

from constants import (
    COACHING_STYLES,
    EXECUTIVE_FALLBACK_SUBSTITUTIONS,
    FILLER_WORDS,
    LANGUAGE_FALLBACK_SUBSTITUTIONS,
)
from observability.logger import log_event
from observability.metrics import timed
from services.prompts import COACHING_PROMPTS
from services.results import Fallback, Generated, ServiceResult


_FILLER_RE = re.compile(r"\b(" + "|".join(FILLER_WORDS) + r")\b", re.IGNORECASE)


@dataclass(frozen=True)
class CoachingRewrites:
    """One rewrite per coaching style."""
    accent: str
    language: str
    executive: str

    def to_dict(self) -> dict[str, str]:
        return {
            "accent": self.accent,
            "language": self.language,
            "executive": self.executive,
        }


# ------------------------------------------------------------------
# Local transforms (pure)
# ------------------------------------------------------------------

def _substitute_first(message: str, substitutions: tuple[tuple[str, str], ...]) -> str:
    for old, new in substitutions:
        message = message.replace(old, new, 1)
    return message


def local_rewrites(message: str) -> CoachingRewrites:
    """
    Deterministic rewrites used when the provider is unavailable.

    accent strips filler words (the input is kept if nothing else remains);
    language and executive apply fixed phrase substitutions.
    """
    stripped = " ".join(_FILLER_RE.sub("", message).split())
    return CoachingRewrites(
        accent=stripped or message,
        language=_substitute_first(message, LANGUAGE_FALLBACK_SUBSTITUTIONS),
        executive=_substitute_first(message, EXECUTIVE_FALLBACK_SUBSTITUTIONS),
    )


def parse_rewrite(content: str | None, fallback: str) -> str:
    """
    Extract `message` from a JSON-mode reply.

    Non-JSON content is used verbatim; empty content or a reply without a
    usable message yields the fallback.
    """
    if not content:
        return fallback
    try:
        data = json.loads(content)
    except ValueError:
        return content
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str) and message:
            return message
    return fallback


# ------------------------------------------------------------------
# Service
# ------------------------------------------------------------------

class CoachingService:
    """Produces accent / language / executive rewrites of a message."""

    def __init__(self, *, client: Any | None, model: str) -> None:
        """
        Args:
            client:
                openai.AsyncOpenAI (or compatible). None forces local rewrites.
            model:
                Chat completion model identifier.
        """
        self._client = client
        self._model = model

    async def rewrite(self, message: str) -> ServiceResult[CoachingRewrites]:
        """Rewrite message in every coaching style."""
        if self._client is None:
            log_event({
                "event_type": "COACHING_FALLBACK",
                "reason": "no_client",
            }, level="WARNING")
            return Fallback(local_rewrites(message), reason="no_client")

        try:
            with timed("coaching_rewrites", details={"model": self._model}):
                accent, language, executive = await asyncio.gather(
                    *(self._rewrite_one(style, message) for style in COACHING_STYLES)
                )
        except (OpenAIError, IndexError, AttributeError) as e:
            reason = f"provider_error:{type(e).__name__}"
            log_event({
                "event_type": "COACHING_FALLBACK",
                "reason": reason,
                "error": str(e),
            }, level="ERROR")
            return Fallback(local_rewrites(message), reason=reason)

        return Generated(CoachingRewrites(accent=accent, language=language, executive=executive))

    async def _rewrite_one(self, style: str, message: str) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": COACHING_PROMPTS[style]},
                {"role": "user", "content": message},
            ],
            response_format={"type": "json_object"},
        )
        return parse_rewrite(response.choices[0].message.content, message)
