"""
Outbound command definitions for the realtime speech model.

Rules:
- Commands are declarative, immutable value objects.
- to_wire() renders the exact JSON object sent on the socket.
- No I/O, no clocks, no connection state checks (the session owns those).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from constants import (
    DEFAULT_VAD,
    REALTIME_MODALITIES,
    VADSettings,
    WIRE_AUDIO_FORMAT,
)


# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """Wire `type` values of outbound commands."""

    SESSION_UPDATE = "session.update"
    APPEND_AUDIO = "input_audio_buffer.append"
    COMMIT_AUDIO = "input_audio_buffer.commit"
    CREATE_ITEM = "conversation.item.create"
    CREATE_RESPONSE = "response.create"
    RAW = "raw"


# =============================================================================
# Session configuration
# =============================================================================

@dataclass(frozen=True)
class SessionConfig:
    """
    Negotiated session parameters sent in session.update.
    """
    voice: str
    instructions: str
    transcription_model: str
    modalities: tuple[str, ...] = REALTIME_MODALITIES
    input_audio_format: str = WIRE_AUDIO_FORMAT
    output_audio_format: str = WIRE_AUDIO_FORMAT
    turn_detection: VADSettings = DEFAULT_VAD

    def to_wire(self) -> dict[str, Any]:
        """Return the `session` object of session.update."""
        return {
            "modalities": list(self.modalities),
            "voice": self.voice,
            "instructions": self.instructions,
            "input_audio_format": self.input_audio_format,
            "output_audio_format": self.output_audio_format,
            "input_audio_transcription": {"model": self.transcription_model},
            "turn_detection": self.turn_detection.to_wire(),
        }


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType

    def to_wire(self) -> dict[str, Any]:
        """Render the JSON object for the socket."""
        return {"type": self.command_type.value}


# =============================================================================
# Concrete commands
# =============================================================================

@dataclass(frozen=True)
class SessionUpdate(Command):
    """Configure the session; sent once immediately after the socket opens."""
    config: SessionConfig
    command_type: CommandType = field(default=CommandType.SESSION_UPDATE, init=False)

    def to_wire(self) -> dict[str, Any]:
        return {"type": self.command_type.value, "session": self.config.to_wire()}


@dataclass(frozen=True)
class AppendAudio(Command):
    """Append one base64 PCM16 frame to the input audio buffer."""
    audio: str
    command_type: CommandType = field(default=CommandType.APPEND_AUDIO, init=False)

    def to_wire(self) -> dict[str, Any]:
        return {"type": self.command_type.value, "audio": self.audio}


@dataclass(frozen=True)
class CommitAudio(Command):
    """Mark the end of the current user utterance."""
    command_type: CommandType = field(default=CommandType.COMMIT_AUDIO, init=False)


@dataclass(frozen=True)
class CreateTextItem(Command):
    """Add a typed user message to the conversation."""
    text: str
    command_type: CommandType = field(default=CommandType.CREATE_ITEM, init=False)

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": self.command_type.value,
            "item": {
                "type": "message",
                "role": "user",
                "content": [{"type": "input_text", "text": self.text}],
            },
        }


@dataclass(frozen=True)
class CreateResponse(Command):
    """Ask the model to respond to the conversation so far."""
    command_type: CommandType = field(default=CommandType.CREATE_RESPONSE, init=False)


@dataclass(frozen=True)
class RawCommand(Command):
    """Passthrough of a caller-built message (must carry its own `type`)."""
    payload: Mapping[str, Any]
    command_type: CommandType = field(default=CommandType.RAW, init=False)

    def to_wire(self) -> dict[str, Any]:
        return dict(self.payload)
