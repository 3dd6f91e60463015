"""
Text-to-speech with an in-process, content-addressed cache.

Cache:
- Key: md5 of "<text>-<voice>-<speed>-<model>"
- Owned by the synthesizer instance (no module globals)
- Unbounded; cleared explicitly via clear_cache()
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any

from openai import OpenAIError

from constants import TTS_DEFAULT_SPEED, TTS_DEFAULT_VOICE, TTS_SPEEDS, TTS_VOICES
from observability.logger import log_event
from observability.metrics import timed
from services.errors import InvalidRequestError, ProviderUnavailableError, SpeechSynthesisError


@dataclass(frozen=True)
class SynthesizedSpeech:
    """Encoded speech (MP3) plus where it came from."""
    audio: bytes
    cache_key: str
    cached: bool


def tts_cache_key(text: str, voice: str, speed: float, model: str) -> str:
    return hashlib.md5(f"{text}-{voice}-{speed}-{model}".encode("utf-8")).hexdigest()


class SpeechSynthesizer:
    """Synthesizes speech via the provider, memoizing identical requests."""

    def __init__(self, *, client: Any | None, model: str) -> None:
        self._client = client
        self._model = model
        self._cache: dict[str, bytes] = {}

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> int:
        """Drop every cached clip. Returns how many were dropped."""
        dropped = len(self._cache)
        self._cache.clear()
        log_event({"event_type": "TTS_CACHE_CLEARED", "entries": dropped})
        return dropped

    async def synthesize(
        self,
        text: str,
        *,
        voice: str = TTS_DEFAULT_VOICE,
        speed: float = TTS_DEFAULT_SPEED,
    ) -> SynthesizedSpeech:
        """
        Return speech for text, from cache when possible.

        Raises:
            InvalidRequestError for empty text, unknown voice or unsupported speed.
            ProviderUnavailableError if no client is configured.
            SpeechSynthesisError if the provider call fails.
        """
        if not text.strip():
            raise InvalidRequestError("text is empty")
        if voice not in TTS_VOICES:
            raise InvalidRequestError(f"unsupported voice: {voice}")
        if speed not in TTS_SPEEDS:
            raise InvalidRequestError(f"unsupported speed: {speed}")

        key = tts_cache_key(text, voice, float(speed), self._model)
        cached = self._cache.get(key)
        if cached is not None:
            log_event({"event_type": "TTS_CACHE_HIT", "cache_key": key[:8]}, level="DEBUG")
            return SynthesizedSpeech(audio=cached, cache_key=key, cached=True)

        if self._client is None:
            raise ProviderUnavailableError("OpenAI API key not configured")

        try:
            with timed("tts_synthesis", details={"model": self._model, "voice": voice}):
                response = await self._client.audio.speech.create(
                    model=self._model,
                    voice=voice,
                    input=text,
                    speed=speed,
                )
        except OpenAIError as e:
            log_event({
                "event_type": "TTS_FAILED",
                "exception": type(e).__name__,
                "error": str(e),
            }, level="ERROR")
            raise SpeechSynthesisError("Failed to generate speech") from e

        audio = response.content
        self._cache[key] = audio
        log_event({
            "event_type": "TTS_CACHED",
            "cache_key": key[:8],
            "bytes": len(audio),
        })
        return SynthesizedSpeech(audio=audio, cache_key=key, cached=False)
