"""
Timing helpers for observability.

Responsibilities:
- Measure durations using monotonic time (immune to clock changes)
- Emit one METRIC_TIMER log event per measurement
- Prefer the `timed()` context manager so timers never leak
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event, now_ms


@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[dict[str, Any]]:
    """
    Measure the duration of the enclosed block.

    Guarantees:
    - Metric is emitted exactly once
    - Exceptions inside the block are NOT suppressed; the metric records
      outcome="error" and the exception type

    The yielded dict is merged into the metric's details, so callers can
    attach facts learned inside the block.

    Usage:
        with timed("live_connect", session_id=sid) as extra:
            await adapter.connect()
            extra["model"] = model
    """
    extra: dict[str, Any] = dict(details or {})
    start_ns = time.monotonic_ns()
    outcome = "ok"
    try:
        yield extra
    except BaseException as exc:
        outcome = "error"
        extra["exception"] = type(exc).__name__
        raise
    finally:
        log_event({
            "ts_ms": now_ms(),
            "event_type": "METRIC_TIMER",
            "metric": name,
            "value_ms": (time.monotonic_ns() - start_ns) // 1_000_000,
            "outcome": outcome,
            "session_id": session_id,
            "details": extra,
        })
