"""
Timing helpers for observability.

Responsibilities:
- Measure durations using monotonic time (immune to clock changes)
- Emit metrics as log events via observability.logger
- Never aggregate: one metric = one log event

Design notes:
- Durations use monotonic time for correctness
- Event timestamps (ts_ms) use wall-clock time for human readability
- The block outcome ("ok" / exception name) is recorded with the duration
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event


@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Context manager measuring the duration of a block.

    Guarantees:
    - Metric is emitted exactly once, even when the block raises
    - Exceptions inside the block are NOT suppressed

    Usage:
        with timed("realtime_handshake", session_id=session.session_id):
            transport = await connector(url, headers)
    """
    start_ns = time.monotonic_ns()
    outcome = "ok"
    try:
        yield
    except BaseException as exc:
        outcome = type(exc).__name__
        raise
    finally:
        log_event({
            "event_type": "METRIC_TIMER",
            "metric": name,
            "value_ms": (time.monotonic_ns() - start_ns) // 1_000_000,
            "outcome": outcome,
            "session_id": session_id,
            "details": details or {},
        })
