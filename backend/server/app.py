"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up logging and middleware
- Initialize shared resources (OpenAI client, services, stores)
- Register routes
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from config import AppConfig
from observability.logger import configure_logging, log_event
from realtime.transport import Connector, connect_websocket
from services.coaching import CoachingService
from services.conversation import ConversationService
from services.storage import SessionStore, VoiceMessageStore
from services.transcription import TranscriptionService
from services.tts import SpeechSynthesizer

from server.routes import register_routes


@dataclass(frozen=True)
class AppServices:
    """Process-wide services, built once and shared by every request."""
    coaching: CoachingService
    conversation: ConversationService
    transcription: TranscriptionService
    tts: SpeechSynthesizer
    voice_messages: VoiceMessageStore
    sessions: SessionStore


def build_services(config: AppConfig, *, client: Any | None = None) -> AppServices:
    """
    Wire services to one provider client.

    Without an API key the client is None: coaching and conversation fall
    back to local output, transcription and TTS report the provider as
    unavailable.
    """
    if client is None and config.openai_api_key:
        client = AsyncOpenAI(api_key=config.openai_api_key)

    return AppServices(
        coaching=CoachingService(client=client, model=config.coaching_model),
        conversation=ConversationService(client=client, model=config.chat_model),
        transcription=TranscriptionService(client=client, model=config.transcription_model),
        tts=SpeechSynthesizer(client=client, model=config.tts_model),
        voice_messages=VoiceMessageStore(),
        sessions=SessionStore(),
    )


def create_app(
    config: AppConfig | None = None,
    *,
    services: AppServices | None = None,
    realtime_connector: Connector = connect_websocket,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with different configurations and fake providers
    - Environment-specific setup
    - ASGI server compatibility
    """
    if config is None:
        config = AppConfig.load_from_env()

    configure_logging(level=config.log_level, json_lines=config.enable_json_logs)

    app = FastAPI(title="Voice Coach API")

    app.state.config = config
    app.state.services = services or build_services(config)
    app.state.realtime_connector = realtime_connector

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if not config.openai_api_key:
        log_event({
            "event_type": "OPENAI_KEY_MISSING",
            "env": config.env,
        }, level="WARNING")

    # Routes
    register_routes(app)

    return app
