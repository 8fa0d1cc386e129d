"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging

configure() is called once at startup from AppConfig. Events may carry an
optional "level" field (DEBUG/INFO/WARNING/ERROR); events without one are
treated as INFO.
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


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_min_level: int = _LEVELS["INFO"]
_json_lines: bool = True


def now_ms() -> int:
    """Wall-clock milliseconds for ts_ms fields."""
    return time.time_ns() // 1_000_000


def configure(*, log_level: str = "INFO", json_lines: bool = True) -> None:
    """Set the minimum level and output format for subsequent events."""
    global _min_level, _json_lines  # pylint: disable=global-statement
    _min_level = _LEVELS.get(log_level.upper(), _LEVELS["INFO"])
    _json_lines = json_lines


def _format_plain(event: Mapping[str, Any]) -> str:
    return " ".join(
        f"{key}={json.dumps(value, ensure_ascii=False, default=str)}"
        for key, value in event.items()
    )


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single event line to stdout.

    The caller is responsible for:
    - Supplying a fully-formed event dict
    - Including ts_ms, session_id, status, etc.

    This function:
    - Drops events below the configured level
    - Serializes to JSON (or key=value when JSON logs are disabled)
    - Writes exactly one line
    - Never raises
    """
    level = _LEVELS.get(str(event.get("level", "INFO")).upper(), _LEVELS["INFO"])
    if level < _min_level:
        return

    try:
        if _json_lines:
            line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
        else:
            line = _format_plain(event)
    except (TypeError, ValueError) as e:
        # Last-resort fallback: logging must never crash the runtime
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
