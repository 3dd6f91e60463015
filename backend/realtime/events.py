"""
Inbound event definitions for the realtime speech model.

Rules:
- Events describe facts reported by the remote model.
- Events carry data only (no behavior).
- Parsing validates only the fields the session acts on; everything else
  is kept verbatim in `raw`.
- Unknown types parse to OtherEvent (logged, not acted on).

Text extraction helpers at the bottom are pure functions, one per event
type that can surface a conversation message.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from realtime.errors import MalformedEventError


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Wire `type` values the session handles explicitly.
    """

    ITEM_CREATED = "conversation.item.created"
    RESPONSE_DONE = "response.done"
    TRANSCRIPTION_COMPLETED = "conversation.item.input_audio_transcription.completed"
    AUDIO_DELTA = "response.audio.delta"
    ERROR = "error"

    # Anything else in the vocabulary
    OTHER = "other"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class RealtimeEvent:
    """
    Base event type.

    event_type:
        Discriminant (OTHER for unhandled wire types).
    wire_type:
        The `type` string exactly as received.
    event_id:
        Remote event id, if the model supplied one.
    timestamp:
        Remote timestamp field, if present (used for de-duplication keys).
    raw:
        The decoded message, for the ordered event log and listeners.
    """

    event_type: EventType
    wire_type: str
    event_id: str | None
    timestamp: Any = field(default=None, compare=False)
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class ItemCreated(RealtimeEvent):
    """A conversation item was added (user or assistant)."""
    role: str | None = None
    content: tuple[Mapping[str, Any], ...] = ()


@dataclass(frozen=True)
class ResponseDone(RealtimeEvent):
    """A model response completed."""
    output: tuple[Mapping[str, Any], ...] = ()


@dataclass(frozen=True)
class TranscriptionCompleted(RealtimeEvent):
    """Transcription of one user utterance finished."""
    item_id: str | None = None
    transcript: str = ""


@dataclass(frozen=True)
class AudioDelta(RealtimeEvent):
    """A chunk of synthesized speech (base64 PCM16)."""
    delta: str = ""


@dataclass(frozen=True)
class ErrorEvent(RealtimeEvent):
    """The model reported an error."""
    message: str = ""


@dataclass(frozen=True)
class OtherEvent(RealtimeEvent):
    """Any event type the session does not act on."""


# =============================================================================
# Parsing
# =============================================================================

def decode_message(raw: str | bytes) -> Mapping[str, Any]:
    """
    Decode a raw websocket message into a JSON object.

    Raises:
        MalformedEventError if the payload is not a JSON object.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedEventError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedEventError(f"expected JSON object, got {type(data).__name__}")
    return data


def _optional_str(message: Mapping[str, Any], key: str) -> str | None:
    value = message.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedEventError(f"{key} must be a string")
    return value


def _parts(value: Any, where: str) -> tuple[Mapping[str, Any], ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise MalformedEventError(f"{where} must be a list")
    return tuple(p for p in value if isinstance(p, dict))


def _error_message(message: Mapping[str, Any]) -> str:
    # The model nests the message under `error`; relays flatten it.
    if isinstance(message.get("message"), str):
        return message["message"]
    error = message.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(error, str):
        return error
    return "Unknown error"


def parse_event(message: Mapping[str, Any]) -> RealtimeEvent:
    """
    Convert a decoded message into a typed event.

    Raises:
        MalformedEventError if required structure is missing or mistyped.
    """
    if not isinstance(message, Mapping):
        raise MalformedEventError("event must be a JSON object")

    wire_type = message.get("type")
    if not isinstance(wire_type, str) or not wire_type:
        raise MalformedEventError("event has no type")

    base: dict[str, Any] = {
        "wire_type": wire_type,
        "event_id": _optional_str(message, "event_id"),
        "timestamp": message.get("timestamp"),
        "raw": message,
    }

    if wire_type == EventType.ITEM_CREATED.value:
        item = message.get("item")
        if not isinstance(item, dict):
            raise MalformedEventError("conversation.item.created without item")
        role = item.get("role")
        return ItemCreated(
            event_type=EventType.ITEM_CREATED,
            role=role if isinstance(role, str) else None,
            content=_parts(item.get("content"), "item.content"),
            **base,
        )

    if wire_type == EventType.RESPONSE_DONE.value:
        response = message.get("response")
        if not isinstance(response, dict):
            raise MalformedEventError("response.done without response")
        return ResponseDone(
            event_type=EventType.RESPONSE_DONE,
            output=_parts(response.get("output"), "response.output"),
            **base,
        )

    if wire_type == EventType.TRANSCRIPTION_COMPLETED.value:
        transcript = message.get("transcript", "")
        if not isinstance(transcript, str):
            raise MalformedEventError("transcript must be a string")
        return TranscriptionCompleted(
            event_type=EventType.TRANSCRIPTION_COMPLETED,
            item_id=_optional_str(message, "item_id"),
            transcript=transcript,
            **base,
        )

    if wire_type == EventType.AUDIO_DELTA.value:
        delta = message.get("delta")
        if not isinstance(delta, str):
            raise MalformedEventError("response.audio.delta without delta")
        return AudioDelta(event_type=EventType.AUDIO_DELTA, delta=delta, **base)

    if wire_type == EventType.ERROR.value:
        return ErrorEvent(
            event_type=EventType.ERROR,
            message=_error_message(message),
            **base,
        )

    return OtherEvent(event_type=EventType.OTHER, **base)


# =============================================================================
# Text extraction (pure)
# =============================================================================

def user_text(event: ItemCreated) -> str | None:
    """
    Text of a user item, or None.

    Accepts the first content part of type input_text or text with a
    non-empty text field. Audio-only items carry no text here; their words
    arrive later as a transcription event.
    """
    if event.role != "user":
        return None
    for part in event.content:
        if part.get("type") in ("input_text", "text"):
            text = part.get("text")
            if isinstance(text, str) and text:
                return text
    return None


def assistant_text(event: ResponseDone) -> str | None:
    """
    Text of the first output item of a completed response, or None.

    A `text` part wins; the transcript of an `audio` part is used when the
    response was spoken only.
    """
    if not event.output:
        return None
    first = event.output[0]
    content = first.get("content")
    if not isinstance(content, list):
        return None

    for part in content:
        if isinstance(part, dict) and part.get("type") == "text":
            text = part.get("text")
            if isinstance(text, str) and text:
                return text

    for part in content:
        if isinstance(part, dict) and part.get("type") == "audio":
            transcript = part.get("transcript")
            if isinstance(transcript, str) and transcript:
                return transcript

    return None
