"""
Route registration for the voice coach API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Map service errors to HTTP status codes
- Wire the realtime relay gateway to the browser WebSocket lifecycle
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from fastapi import FastAPI, File, Form, Request, Response, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from constants import TTS_DEFAULT_SPEED, TTS_DEFAULT_VOICE, TTS_MEDIA_TYPE
from observability.logger import log_event
from services.errors import InvalidRequestError, ProviderUnavailableError, ServiceError
from services.storage import StoredSession
from session.gateway import GatewayResult, SessionGateway


# ------------------------------------------------------------------
# Request bodies
# ------------------------------------------------------------------

class CoachingRequest(BaseModel):
    message: str = ""


class TTSRequest(BaseModel):
    text: str
    voice: str = TTS_DEFAULT_VOICE
    speed: float = TTS_DEFAULT_SPEED


class SessionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_message: str = Field(alias="userMessage")
    responses: dict[str, str]
    timestamp: int
    audio_key: str = Field(alias="audioKey")
    from_live_mode: bool = Field(default=False, alias="fromLiveMode")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _service_error_response(exc: ServiceError, default_message: str) -> JSONResponse:
    if isinstance(exc, InvalidRequestError):
        return _error_response(400, str(exc))
    if isinstance(exc, ProviderUnavailableError):
        return _error_response(503, str(exc))
    return _error_response(500, default_message)


async def _coach(services: Any, message: str) -> dict[str, Any]:
    """Coaching rewrites and conversational reply, computed concurrently."""
    rewrites, reply = await asyncio.gather(
        services.coaching.rewrite(message),
        services.conversation.reply(message),
    )

    fallbacks: dict[str, str] = {}
    if rewrites.is_fallback:
        fallbacks["coaching"] = rewrites.reason
    if reply.is_fallback:
        fallbacks["ai"] = reply.reason

    return {
        "responses": {**rewrites.value.to_dict(), "ai": reply.value},
        "fallbacks": fallbacks,
    }


# ------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------

def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    # ---- Coaching ----

    @app.post("/api/coaching")
    async def coaching(body: CoachingRequest, request: Request) -> Any: # pyright: ignore[reportUnusedFunction]
        message = body.message.strip()
        if not message:
            return _error_response(400, "Message is required")

        coached = await _coach(request.app.state.services, message)
        return {"userMessage": message, **coached}

    @app.post("/api/voice-message")
    async def voice_message( # pyright: ignore[reportUnusedFunction]
        request: Request,
        audio: UploadFile | None = File(default=None),
        transcript: str | None = Form(default=None),
    ) -> Any:
        services = request.app.state.services
        audio_bytes: bytes | None = None

        if audio is not None:
            audio_bytes = await audio.read()
            try:
                text = await services.transcription.transcribe(
                    audio_bytes,
                    filename=audio.filename or "recording.wav",
                    content_type=audio.content_type or "audio/wav",
                )
            except ServiceError as exc:
                return _service_error_response(exc, "Failed to process voice message")
        elif transcript and transcript.strip():
            text = transcript.strip()
        else:
            return _error_response(400, "Audio file or transcript required")

        coached = await _coach(services, text)
        message = services.voice_messages.create(
            user_message=text,
            responses=coached["responses"],
            audio=audio_bytes,
        )
        return {**message.to_dict(), "fallbacks": coached["fallbacks"]}

    @app.get("/api/voice-messages")
    async def list_voice_messages(request: Request) -> list[dict[str, Any]]: # pyright: ignore[reportUnusedFunction]
        return [m.to_dict() for m in request.app.state.services.voice_messages.list_messages()]

    @app.get("/api/voice-messages/{message_id}")
    async def get_voice_message(message_id: str, request: Request) -> Any: # pyright: ignore[reportUnusedFunction]
        message = request.app.state.services.voice_messages.get(message_id)
        if message is None:
            return _error_response(404, "Voice message not found")
        return message.to_dict()

    # ---- Text-to-speech ----

    @app.post("/api/tts")
    async def tts(body: TTSRequest, request: Request) -> Any: # pyright: ignore[reportUnusedFunction]
        services = request.app.state.services
        try:
            speech = await services.tts.synthesize(body.text, voice=body.voice, speed=body.speed)
        except ServiceError as exc:
            return _service_error_response(exc, "Failed to generate speech")

        audio_key = services.sessions.put_tts_audio(body.text, body.voice, body.speed, speech.audio)
        return Response(
            content=speech.audio,
            media_type=TTS_MEDIA_TYPE,
            headers={
                "X-TTS-Cache": "hit" if speech.cached else "miss",
                "X-Audio-Key": audio_key,
            },
        )

    @app.get("/api/tts/cache")
    async def tts_cache_size(request: Request) -> dict[str, int]: # pyright: ignore[reportUnusedFunction]
        return {"size": request.app.state.services.tts.cache_size}

    @app.delete("/api/tts/cache")
    async def clear_tts_cache(request: Request) -> dict[str, int]: # pyright: ignore[reportUnusedFunction]
        return {"cleared": request.app.state.services.tts.clear_cache()}

    # ---- Sessions + audio blobs ----

    @app.put("/api/sessions/{session_id}")
    async def put_session(session_id: str, body: SessionPayload, request: Request) -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        stored = request.app.state.services.sessions.put_session(
            StoredSession(
                id=session_id,
                user_message=body.user_message,
                responses=body.responses,
                timestamp_ms=body.timestamp,
                audio_key=body.audio_key,
                from_live_mode=body.from_live_mode,
            )
        )
        return stored.to_dict()

    @app.get("/api/sessions")
    async def list_sessions(request: Request) -> list[dict[str, Any]]: # pyright: ignore[reportUnusedFunction]
        return [s.to_dict() for s in request.app.state.services.sessions.list_sessions()]

    @app.get("/api/sessions/{session_id}")
    async def get_session(session_id: str, request: Request) -> Any: # pyright: ignore[reportUnusedFunction]
        stored = request.app.state.services.sessions.get_session(session_id)
        if stored is None:
            return _error_response(404, "Session not found")
        return stored.to_dict()

    @app.delete("/api/sessions/{session_id}")
    async def delete_session(session_id: str, request: Request) -> Any: # pyright: ignore[reportUnusedFunction]
        if not request.app.state.services.sessions.delete_session(session_id):
            return _error_response(404, "Session not found")
        return {"deleted": session_id}

    @app.put("/api/audio/{key}")
    async def put_audio(key: str, request: Request) -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        audio = await request.body()
        request.app.state.services.sessions.put_audio(key, audio)
        return {"key": key, "bytes": len(audio)}

    @app.get("/api/audio/{key}")
    async def get_audio(key: str, request: Request) -> Response: # pyright: ignore[reportUnusedFunction]
        audio = request.app.state.services.sessions.get_audio(key)
        if audio is None:
            return _error_response(404, "Audio not found")
        return Response(content=audio, media_type="application/octet-stream")

    # ---- Realtime relay ----

    @app.websocket("/api/realtime")
    async def realtime_relay(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        gateway = SessionGateway(
            config=app.state.config,
            connector=app.state.realtime_connector,
        )
        pump: asyncio.Task[None] | None = None

        try:
            result = await gateway.on_ws_connect()
            await _flush_gateway_result(ws, result)
            pump = asyncio.create_task(_pump_outbound(ws, gateway))

            while True:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect()

                if msg.get("text") is not None:
                    result = await gateway.on_json_message(msg["text"])
                    await _flush_gateway_result(ws, result)

        except WebSocketDisconnect:
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "session_id": gateway.session.session_id if gateway.session else None,
                "exception": type(exc).__name__,
                "message": str(exc),
            }, level="ERROR")
            await gateway.on_ws_disconnect(reason="server_error")

        finally:
            if pump is not None:
                pump.cancel()


async def _flush_gateway_result(
    ws: WebSocket,
    result: GatewayResult,
) -> None:
    for msg in result.outbound_json:
        await ws.send_text(json.dumps(msg))


async def _pump_outbound(ws: WebSocket, gateway: SessionGateway) -> None:
    """Push realtime events to the browser as they arrive."""
    while True:
        msg = await gateway.next_outbound()
        try:
            await ws.send_text(json.dumps(msg))
        except (WebSocketDisconnect, RuntimeError):
            # Browser went away; the receive loop handles teardown
            return
