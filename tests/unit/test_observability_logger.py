# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger
from observability.metrics import timed


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    lines: list[str] = []
    # Patch the explicit output sink used by logger
    monkeypatch.setattr(logger, "_print", lines.append)
    return lines


def test_log_event_emits_valid_jsonl(captured: list[str]) -> None:
    """
    Contract:
    - log_event emits exactly one JSONL line
    - payload keys are preserved as-is
    - ts_ms and level are added when missing
    """
    payload: dict[str, Any] = {
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    assert len(captured) == 1

    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "TEST"
    assert decoded["value"] == 123
    assert decoded["level"] == "INFO"
    assert isinstance(decoded["ts_ms"], int)

    # Caller's dict is not mutated
    assert payload == {"event_type": "TEST", "value": 123}


def test_events_below_configured_level_are_dropped(captured: list[str]) -> None:
    logger.configure_logging(level="WARNING")

    logger.log_event({"event_type": "QUIET"}, level="INFO")
    logger.log_event({"event_type": "LOUD"}, level="ERROR")

    assert [json.loads(line)["event_type"] for line in captured] == ["LOUD"]


def test_unserializable_payload_falls_back(captured: list[str]) -> None:
    logger.log_event({"event_type": "BAD", "value": object()})

    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert "BAD" in decoded["original_event_repr"]


def test_text_mode_renders_key_value_pairs(captured: list[str]) -> None:
    logger.configure_logging(json_lines=False)

    logger.log_event({"event_type": "PLAIN", "ts_ms": 1, "level": "INFO"})

    assert captured == ["event_type=PLAIN ts_ms=1 level=INFO"]


def test_timed_records_outcome_even_when_block_raises(captured: list[str]) -> None:
    with pytest.raises(RuntimeError):
        with timed("work", session_id="s1"):
            raise RuntimeError("boom")

    decoded = json.loads(captured[-1])
    assert decoded["event_type"] == "METRIC_TIMER"
    assert decoded["metric"] == "work"
    assert decoded["outcome"] == "RuntimeError"
    assert decoded["session_id"] == "s1"
