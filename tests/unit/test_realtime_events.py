# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from realtime.errors import MalformedEventError
from realtime.events import (
    AudioDelta,
    ErrorEvent,
    EventType,
    ItemCreated,
    OtherEvent,
    ResponseDone,
    TranscriptionCompleted,
    assistant_text,
    decode_message,
    parse_event,
    user_text,
)


def user_item(*parts: dict, role: str = "user") -> dict:
    return {
        "type": "conversation.item.created",
        "event_id": "evt_1",
        "item": {"role": role, "content": list(parts)},
    }


def response_done(*content: dict) -> dict:
    return {
        "type": "response.done",
        "event_id": "evt_2",
        "response": {"output": [{"content": list(content)}]},
    }


# ---------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------

def test_parse_dispatches_on_type():
    assert isinstance(parse_event(user_item()), ItemCreated)
    assert isinstance(parse_event(response_done()), ResponseDone)
    assert isinstance(parse_event({"type": "response.audio.delta", "delta": ""}), AudioDelta)
    assert isinstance(parse_event({"type": "error", "error": {"message": "x"}}), ErrorEvent)
    assert isinstance(
        parse_event({
            "type": "conversation.item.input_audio_transcription.completed",
            "item_id": "item_1",
            "transcript": "hi",
        }),
        TranscriptionCompleted,
    )


def test_unknown_type_is_other_event():
    event = parse_event({"type": "session.created", "event_id": "evt_9"})

    assert isinstance(event, OtherEvent)
    assert event.event_type is EventType.OTHER
    assert event.wire_type == "session.created"
    assert event.event_id == "evt_9"


def test_raw_message_is_kept():
    message = {"type": "rate_limits.updated", "rate_limits": []}

    assert parse_event(message).raw is message


@pytest.mark.parametrize(
    "message",
    [
        {},
        {"type": ""},
        {"type": "conversation.item.created"},
        {"type": "response.done", "response": "nope"},
        {"type": "response.audio.delta"},
        {"type": "conversation.item.input_audio_transcription.completed", "transcript": 3},
        {"type": "error", "event_id": 12},
    ],
)
def test_malformed_events_raise(message):
    with pytest.raises(MalformedEventError):
        parse_event(message)


def test_error_message_sources():
    assert parse_event({"type": "error", "message": "flat"}).message == "flat"
    assert parse_event({"type": "error", "error": {"message": "nested"}}).message == "nested"
    assert parse_event({"type": "error"}).message == "Unknown error"


def test_decode_message_rejects_non_objects():
    with pytest.raises(MalformedEventError):
        decode_message("[1, 2]")
    with pytest.raises(MalformedEventError):
        decode_message("{not json")

    assert decode_message(b'{"type": "x"}') == {"type": "x"}


# ---------------------------------------------------------------------
# Text extraction
# ---------------------------------------------------------------------

def test_user_text_takes_first_text_part():
    event = parse_event(user_item(
        {"type": "input_audio"},
        {"type": "input_text", "text": "hello"},
        {"type": "text", "text": "ignored"},
    ))

    assert user_text(event) == "hello"


def test_user_text_ignores_assistant_items_and_audio_only_items():
    assert user_text(parse_event(user_item({"type": "text", "text": "hi"}, role="assistant"))) is None
    assert user_text(parse_event(user_item({"type": "input_audio"}))) is None


def test_assistant_text_prefers_text_part():
    event = parse_event(response_done(
        {"type": "audio", "transcript": "spoken"},
        {"type": "text", "text": "written"},
    ))

    assert assistant_text(event) == "written"


def test_assistant_text_falls_back_to_audio_transcript():
    event = parse_event(response_done({"type": "audio", "transcript": "spoken"}))

    assert assistant_text(event) == "spoken"


def test_assistant_text_absent_without_output():
    event = parse_event({"type": "response.done", "response": {"output": []}})

    assert assistant_text(event) is None
