"""
Read model for the user-facing surface.

- Derived from SessionState only
- Immutable, JSON-ready
- Contains no session logic
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from orchestrator.enums.state import SessionStatus
from orchestrator.state_dataclass import SessionState


@dataclass(frozen=True)
class SessionSnapshot:
    """What the start/stop control, counter, transcript and error area show."""

    session_id: str | None
    status: str
    is_recording: bool
    keyword: str
    count: int
    committed_count: int
    transcript: str
    error: str | None
    frames_sent: int
    frames_dropped: int
    chunks_played: int
    chunks_rejected: int
    turns_completed: int

    @staticmethod
    def from_state(state: SessionState) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=state.session_id,
            status=state.status.value,
            is_recording=state.status is SessionStatus.OPEN,
            keyword=state.keyword,
            count=state.reported_count,
            committed_count=state.count.committed,
            transcript=state.transcript_display,
            error=state.last_error,
            frames_sent=state.stats.frames_sent,
            frames_dropped=state.stats.frames_dropped,
            chunks_played=state.stats.chunks_played,
            chunks_rejected=state.stats.chunks_rejected,
            turns_completed=state.stats.turns_completed,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
