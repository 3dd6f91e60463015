"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No session logic
- No protocol constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import DEFAULT_REALTIME_INSTRUCTIONS


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the app factory, services and realtime sessions.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Provider credentials
    # ------------------------------------------------------------------

    openai_api_key: str | None = None

    # ------------------------------------------------------------------
    # Realtime (speech-to-speech) session
    # ------------------------------------------------------------------

    realtime_url: str = "wss://api.openai.com/v1/realtime"
    realtime_model: str = "gpt-4o-realtime-preview"
    realtime_voice: str = "alloy"
    realtime_instructions: str = DEFAULT_REALTIME_INSTRUCTIONS
    realtime_transcription_model: str = "whisper-1"

    # ------------------------------------------------------------------
    # Request/response providers
    # ------------------------------------------------------------------

    coaching_model: str = "gpt-4o-mini"
    chat_model: str = "gpt-4o-mini"
    transcription_model: str = "whisper-1"
    tts_model: str = "tts-1"

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool = True

    # ------------------------------------------------------------------
    # Derived
    # ------------------------------------------------------------------

    @property
    def realtime_endpoint(self) -> str:
        """Full websocket URL of the realtime model."""
        return f"{self.realtime_url}?model={self.realtime_model}"

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Missing credentials are allowed here; consumers decide whether
        a missing key is fatal (realtime) or triggers a fallback (coaching).
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            openai_api_key=os.environ.get("OPENAI_API_KEY") or None,

            realtime_url=os.environ.get("REALTIME_URL", "wss://api.openai.com/v1/realtime"),
            realtime_model=os.environ.get("REALTIME_MODEL", "gpt-4o-realtime-preview"),
            realtime_voice=os.environ.get("REALTIME_VOICE", "alloy"),
            realtime_instructions=os.environ.get(
                "REALTIME_INSTRUCTIONS", DEFAULT_REALTIME_INSTRUCTIONS
            ),
            realtime_transcription_model=os.environ.get(
                "REALTIME_TRANSCRIPTION_MODEL", "whisper-1"
            ),

            coaching_model=os.environ.get("COACHING_MODEL", "gpt-4o-mini"),
            chat_model=os.environ.get("CHAT_MODEL", "gpt-4o-mini"),
            transcription_model=os.environ.get("TRANSCRIPTION_MODEL", "whisper-1"),
            tts_model=os.environ.get("TTS_MODEL", "tts-1"),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",
        )
