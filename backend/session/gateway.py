"""
Realtime relay gateway.

Responsibilities:
- Own one RealtimeSession per browser connection
- Translate browser control messages into session commands:
    {"type": "audio", "audio": <base64 pcm16>}
    {"type": "commit"}
    {"type": "text", "text": <str>}
- Forward every accepted realtime event to the browser unchanged
- Report connection failures to the browser as {"type": "error", "message": ...}
  (a remote `error` event is already forwarded as is and is not repeated)

NOT responsible for:
- Socket I/O (the route owns the browser websocket)
- Audio devices (the browser captures and plays audio itself)
- Any realtime protocol logic (RealtimeSession owns it)
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Mapping
from uuid import uuid4

from config import AppConfig
from constants import LOG_PREVIEW_CHARS
from observability.logger import log_event
from realtime.errors import ConfigurationError, HandshakeError, ProtocolError
from realtime.session import RealtimeSession
from realtime.state import ConnectionState
from realtime.transport import Connector, connect_websocket


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


def _error(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}


# ------------------------------------------------------------------
# Gateway result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """
    Return value for gateway boundary methods.

    outbound_json:
        JSON messages to send to the browser immediately
    """
    outbound_json: tuple[dict[str, Any], ...] = ()


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """
    One gateway == one browser connection == one realtime session.

    Realtime events arrive asynchronously; they are queued here and the
    route pumps them out with next_outbound().
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        connector: Connector = connect_websocket,
    ) -> None:
        self._config = config
        self._connector = connector
        self.session: RealtimeSession | None = None
        self._outbound: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    async def on_ws_connect(self) -> GatewayResult:
        """Called when the browser connects: open the realtime session."""
        session = RealtimeSession(
            config=self._config,
            connector=self._connector,
            session_id=_new_session_id(),
        )
        session.add_listener(self._forward_event)
        session.add_state_listener(self._on_state_changed)
        self.session = session

        log_event({
            "event_type": "RELAY_CONNECTED",
            "session_id": session.session_id,
        })

        try:
            await session.connect()
        except ConfigurationError as e:
            return GatewayResult(outbound_json=(_error(str(e)),))
        except HandshakeError:
            # Already queued by the FAILED state transition
            return GatewayResult()

        return GatewayResult(outbound_json=({
            "type": "session.ready",
            "session_id": session.session_id,
        },))

    async def on_ws_disconnect(self, reason: str | None = None) -> GatewayResult:
        """Called when the browser disconnects."""
        if self.session is None:
            log_event({
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return GatewayResult()

        await self.session.disconnect()
        log_event({
            "event_type": "RELAY_DISCONNECTED",
            "session_id": self.session.session_id,
            "reason": reason,
        })
        return GatewayResult()

    async def on_json_message(self, payload: str) -> GatewayResult:
        """Route one browser message to the realtime session."""
        if self.session is None:
            log_event({
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:LOG_PREVIEW_CHARS],
            })
            return GatewayResult()

        session_id = self.session.session_id
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "event_type": "JSON_DECODE_ERROR",
                "session_id": session_id,
                "error": str(e),
                "payload_preview": payload[:LOG_PREVIEW_CHARS],
            }, level="WARNING")
            return GatewayResult(outbound_json=(_error("Invalid JSON message"),))

        if not isinstance(data, dict):
            return GatewayResult(outbound_json=(_error("Message must be a JSON object"),))

        if not self.session.is_connected:
            return GatewayResult(outbound_json=(_error("Realtime session is not connected"),))

        msg_type = data.get("type")

        if msg_type == "audio":
            audio = data.get("audio")
            if not isinstance(audio, str):
                return GatewayResult(outbound_json=(_error("audio message requires base64 'audio'"),))
            self.session.send_audio(audio)

        elif msg_type == "commit":
            self.session.commit_audio()

        elif msg_type == "text":
            text = data.get("text")
            if not isinstance(text, str) or not text.strip():
                return GatewayResult(outbound_json=(_error("text message requires 'text'"),))
            self.session.send_text(text)

        else:
            log_event({
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "msg_type": msg_type,
                "session_id": session_id,
            }, level="WARNING")
            return GatewayResult(outbound_json=(_error(f"Unknown message type: {msg_type}"),))

        return GatewayResult()

    async def next_outbound(self) -> dict[str, Any]:
        """Wait for the next message to push to the browser."""
        return await self._outbound.get()

    # ------------------------------------------------------------------
    # Session callbacks
    # ------------------------------------------------------------------

    def _forward_event(self, event: Mapping[str, Any]) -> None:
        self._outbound.put_nowait(dict(event))

    def _on_state_changed(self, state: ConnectionState) -> None:
        if state is not ConnectionState.FAILED or self.session is None:
            return
        if isinstance(self.session.last_error, ProtocolError):
            return
        self._outbound.put_nowait(_error(self.session.error_message or "Realtime connection failed"))
