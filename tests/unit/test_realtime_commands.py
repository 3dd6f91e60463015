# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from realtime.commands import (
    AppendAudio,
    CommitAudio,
    CreateResponse,
    CreateTextItem,
    RawCommand,
    SessionConfig,
    SessionUpdate,
)


def test_session_update_declares_formats_and_vad():
    config = SessionConfig(voice="echo", instructions="Be brief.", transcription_model="whisper-1")

    wire = SessionUpdate(config=config).to_wire()

    assert wire == {
        "type": "session.update",
        "session": {
            "modalities": ["text", "audio"],
            "voice": "echo",
            "instructions": "Be brief.",
            "input_audio_format": "pcm16",
            "output_audio_format": "pcm16",
            "input_audio_transcription": {"model": "whisper-1"},
            "turn_detection": {
                "type": "server_vad",
                "threshold": 0.5,
                "prefix_padding_ms": 300,
                "silence_duration_ms": 500,
            },
        },
    }


def test_audio_commands():
    assert AppendAudio(audio="AAAA").to_wire() == {
        "type": "input_audio_buffer.append",
        "audio": "AAAA",
    }
    assert CommitAudio().to_wire() == {"type": "input_audio_buffer.commit"}


def test_text_item_and_response_trigger():
    assert CreateTextItem(text="hello").to_wire() == {
        "type": "conversation.item.create",
        "item": {
            "type": "message",
            "role": "user",
            "content": [{"type": "input_text", "text": "hello"}],
        },
    }
    assert CreateResponse().to_wire() == {"type": "response.create"}


def test_raw_command_is_passed_through():
    payload = {"type": "response.cancel", "response_id": "resp_1"}

    assert RawCommand(payload=payload).to_wire() == payload


def test_command_type_is_not_an_init_argument():
    with pytest.raises(TypeError):
        CommitAudio(command_type="x")  # type: ignore[call-arg]
