"""
In-memory stores.

VoiceMessageStore:
    Coached voice messages created by the HTTP API (server-assigned ids).

SessionStore:
    Client-owned coaching sessions (client-assigned ids) plus audio blobs,
    including synthesized speech keyed by (text, voice, speed).

Both live for the lifetime of the process; nothing is persisted.
"""

from __future__ import annotations

import base64
import itertools
from dataclasses import dataclass
from typing import Any, Mapping
from uuid import uuid4

from observability.logger import log_event, now_ms


# ------------------------------------------------------------------
# Records
# ------------------------------------------------------------------

@dataclass(frozen=True)
class VoiceMessage:
    id: str
    user_message: str
    responses: Mapping[str, str]
    timestamp_ms: int
    has_audio: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userMessage": self.user_message,
            "responses": dict(self.responses),
            "timestamp": self.timestamp_ms,
            "hasAudio": self.has_audio,
        }


@dataclass(frozen=True)
class StoredSession:
    """
    One coaching exchange saved by the client.

    audio_key points into the audio blob store (may be absent there).
    """
    id: str
    user_message: str
    responses: Mapping[str, str]
    timestamp_ms: int
    audio_key: str
    from_live_mode: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userMessage": self.user_message,
            "responses": dict(self.responses),
            "timestamp": self.timestamp_ms,
            "audioKey": self.audio_key,
            "fromLiveMode": self.from_live_mode,
        }


def tts_audio_key(text: str, voice: str, speed: float) -> str:
    """Blob key of synthesized speech for (text, voice, speed)."""
    encoded = base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii")
    return f"tts-{encoded}-{voice}-{speed}"


# ------------------------------------------------------------------
# Voice messages
# ------------------------------------------------------------------

class VoiceMessageStore:
    """Server-side history of coached voice messages."""

    def __init__(self) -> None:
        self._messages: dict[str, VoiceMessage] = {}
        self._audio: dict[str, bytes] = {}
        self._order: dict[str, int] = {}
        self._seq = itertools.count()

    def create(
        self,
        *,
        user_message: str,
        responses: Mapping[str, str],
        audio: bytes | None = None,
    ) -> VoiceMessage:
        message = VoiceMessage(
            id=str(uuid4()),
            user_message=user_message,
            responses=dict(responses),
            timestamp_ms=now_ms(),
            has_audio=bool(audio),
        )
        self._messages[message.id] = message
        self._order[message.id] = next(self._seq)
        if audio:
            self._audio[message.id] = audio

        log_event({
            "event_type": "VOICE_MESSAGE_STORED",
            "message_id": message.id,
            "has_audio": message.has_audio,
        })
        return message

    def list_messages(self) -> list[VoiceMessage]:
        """Every message, newest first."""
        return sorted(
            self._messages.values(),
            key=lambda m: (m.timestamp_ms, self._order[m.id]),
            reverse=True,
        )

    def get(self, message_id: str) -> VoiceMessage | None:
        return self._messages.get(message_id)

    def get_audio(self, message_id: str) -> bytes | None:
        return self._audio.get(message_id)


# ------------------------------------------------------------------
# Sessions + audio blobs
# ------------------------------------------------------------------

class SessionStore:
    """Client sessions and audio blobs, keyed by caller-chosen ids."""

    def __init__(self) -> None:
        self._sessions: dict[str, StoredSession] = {}
        self._audio: dict[str, bytes] = {}
        self._order: dict[str, int] = {}
        self._seq = itertools.count()

    # Sessions

    def put_session(self, session: StoredSession) -> StoredSession:
        """Insert or replace a session by id."""
        if session.id not in self._order:
            self._order[session.id] = next(self._seq)
        self._sessions[session.id] = session
        return session

    def get_session(self, session_id: str) -> StoredSession | None:
        return self._sessions.get(session_id)

    def list_sessions(self) -> list[StoredSession]:
        """Every session, newest timestamp first."""
        return sorted(
            self._sessions.values(),
            key=lambda s: (s.timestamp_ms, self._order[s.id]),
            reverse=True,
        )

    def delete_session(self, session_id: str) -> bool:
        self._order.pop(session_id, None)
        return self._sessions.pop(session_id, None) is not None

    # Audio blobs

    def put_audio(self, key: str, audio: bytes) -> None:
        self._audio[key] = audio

    def get_audio(self, key: str) -> bytes | None:
        return self._audio.get(key)

    def put_tts_audio(self, text: str, voice: str, speed: float, audio: bytes) -> str:
        key = tts_audio_key(text, voice, speed)
        self._audio[key] = audio
        return key

    def get_tts_audio(self, text: str, voice: str, speed: float) -> bytes | None:
        return self._audio.get(tts_audio_key(text, voice, speed))
