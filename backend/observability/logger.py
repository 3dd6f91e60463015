"""
JSONL event logger.

- Write one structured event per line
- Output to stdout
- No buffering, no batching
- Level filtering configured once at startup
- No side effects beyond logging
"""

from __future__ import annotations

import json
import sys
import time
from typing import Any, Mapping, Callable


_LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
}

_min_level: int = _LEVELS["INFO"]
_json_lines: bool = True


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print


def now_ms() -> int:
    """Wall-clock milliseconds, used for log correlation only."""
    return time.time_ns() // 1_000_000


def configure_logging(*, level: str = "INFO", json_lines: bool = True) -> None:
    """
    Set the minimum level and output format.

    Unknown level names fall back to INFO.
    """
    global _min_level, _json_lines  # pylint: disable=global-statement
    _min_level = _LEVELS.get(level.upper(), _LEVELS["INFO"])
    _json_lines = json_lines


def _render_text(event: Mapping[str, Any]) -> str:
    parts = [f"{key}={value}" for key, value in event.items()]
    return " ".join(parts)


def log_event(event: Mapping[str, Any], *, level: str = "INFO") -> None:
    """
    Write a single structured event.

    The caller is responsible for:
    - Supplying a fully-formed event dict
    - Including event_type, session_id, state, etc.

    This function:
    - Drops events below the configured level
    - Adds ts_ms and level when missing
    - Writes exactly one line
    - Never raises
    """
    if _LEVELS.get(level, _LEVELS["INFO"]) < _min_level:
        return

    payload: dict[str, Any] = dict(event)
    payload.setdefault("ts_ms", now_ms())
    payload.setdefault("level", level)

    if not _json_lines:
        _print(_render_text(payload))
        return

    try:
        line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Last-resort fallback: logging must never crash the session
        fallback: dict[str, Any] = {
            "ts_ms": payload.get("ts_ms"),
            "level": "ERROR",
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
