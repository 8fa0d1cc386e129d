"""
Turn-segmented keyword counting (pure).

(count_state, input) -> count_state

Rules:
- Pure: no side effects, no IO, no clocks.
- committed only advances in on_turn_complete / on_stop, by exactly the
  occurrences in the turn buffer, and the buffer resets at the same time.
  A turn's text therefore contributes to committed exactly once.
- Matching always rescans the whole turn buffer, so a keyword split across
  two deltas of the same turn is still found.
- A whole word is bounded by non-word characters or string edges, so
  keywords such as "c++" match too.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from functools import lru_cache


@dataclass(frozen=True)
class CountState:
    """Committed tally plus the text of the turn still in progress."""
    committed: int = 0
    turn_buffer: str = ""


@lru_cache(maxsize=32)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(keyword)}(?!\w)", re.IGNORECASE)


def occurrences(text: str, keyword: str) -> int:
    """Whole-word, case-insensitive occurrences of keyword in text."""
    if not text or not keyword:
        return 0
    return sum(1 for _ in _keyword_pattern(keyword).finditer(text))


def reported_count(state: CountState, keyword: str) -> int:
    """Externally visible count: committed + matches in the open turn."""
    return state.committed + occurrences(state.turn_buffer, keyword)


def on_delta(state: CountState, text: str) -> CountState:
    """Append a transcript delta to the open turn."""
    if not text:
        return state
    return replace(state, turn_buffer=state.turn_buffer + text)


def on_turn_complete(state: CountState, keyword: str) -> CountState:
    """Commit the open turn's matches and start a new turn."""
    return CountState(
        committed=state.committed + occurrences(state.turn_buffer, keyword),
        turn_buffer="",
    )


def on_stop(state: CountState, keyword: str) -> CountState:
    """Commit whatever the interrupted turn matched so far."""
    return on_turn_complete(state, keyword)


def trim_display(display: str, text: str, max_chars: int) -> str:
    """Append text to the display window, keeping the last max_chars."""
    full = display + text
    return full[-max_chars:] if max_chars > 0 else ""
