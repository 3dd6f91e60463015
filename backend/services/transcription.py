"""
Whole-file speech-to-text.

Uploaded recordings are transcribed in one request; there is no streaming
and no local model.
"""

from __future__ import annotations

from typing import Any

from openai import OpenAIError

from observability.logger import log_event
from observability.metrics import timed
from services.errors import InvalidRequestError, ProviderUnavailableError, TranscriptionError


class TranscriptionService:
    """Transcribes an uploaded audio buffer."""

    def __init__(self, *, client: Any | None, model: str) -> None:
        self._client = client
        self._model = model

    async def transcribe(
        self,
        audio: bytes,
        *,
        filename: str = "recording.wav",
        content_type: str = "audio/wav",
    ) -> str:
        """
        Return the transcript of audio.

        Raises:
            InvalidRequestError if audio is empty.
            ProviderUnavailableError if no client is configured.
            TranscriptionError if the provider call fails.
        """
        if not audio:
            raise InvalidRequestError("audio is empty")
        if self._client is None:
            raise ProviderUnavailableError("OpenAI API key not available")

        try:
            with timed("transcription", details={"model": self._model, "bytes": len(audio)}):
                result = await self._client.audio.transcriptions.create(
                    file=(filename, audio, content_type),
                    model=self._model,
                )
        except OpenAIError as e:
            log_event({
                "event_type": "TRANSCRIPTION_FAILED",
                "exception": type(e).__name__,
                "error": str(e),
            }, level="ERROR")
            raise TranscriptionError("Failed to transcribe audio") from e

        return result.text
