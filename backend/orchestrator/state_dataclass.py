"""
Authoritative session state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers beyond read-only derived values.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from orchestrator.counting import CountState, reported_count
from orchestrator.enums.state import SessionStatus
from constants import DEFAULT_KEYWORD, TRANSCRIPT_DISPLAY_MAX_CHARS


# =============================================================================
# Pipeline counters (observability only)
# =============================================================================

@dataclass(frozen=True)
class PipelineStats:
    """Per-handle counters. Reset when a new handle is created."""
    frames_sent: int = 0
    frames_dropped: int = 0
    chunks_played: int = 0
    chunks_rejected: int = 0
    turns_completed: int = 0


# =============================================================================
# Session State
# =============================================================================

@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of all session-owned state."""

    # ------------------------------------------------------------------
    # Configuration carried in state so the reducer stays pure
    # ------------------------------------------------------------------
    keyword: str = DEFAULT_KEYWORD
    display_max_chars: int = TRANSCRIPT_DISPLAY_MAX_CHARS

    # ------------------------------------------------------------------
    # Handle lifecycle
    # ------------------------------------------------------------------
    status: SessionStatus = SessionStatus.IDLE
    session_id: str | None = None

    # ------------------------------------------------------------------
    # Counting (survives across handles)
    # ------------------------------------------------------------------
    count: CountState = field(default_factory=CountState)

    # Trailing window of every transcript delta received (display only)
    transcript_display: str = ""

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------
    last_error: str | None = None

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------
    stats: PipelineStats = field(default_factory=PipelineStats)

    @property
    def reported_count(self) -> int:
        return reported_count(self.count, self.keyword)

    @property
    def is_live(self) -> bool:
        return self.status in (
            SessionStatus.CONNECTING,
            SessionStatus.OPEN,
            SessionStatus.CLOSING,
        )
