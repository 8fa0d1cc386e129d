"""
Pure session reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (status, event) pair is handled or explicitly ignored (logged).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from orchestrator.commands import (
    AttachCapture,
    Command,
    LogEvent,
    PlayAudio,
    ReleaseResources,
    SendAudio,
)
from orchestrator.counting import (
    occurrences,
    on_delta,
    on_stop,
    on_turn_complete,
    trim_display,
)
from orchestrator.enums.state import SessionStatus
from orchestrator.events import (
    AudioChunkReceived,
    AudioChunkRejected,
    AudioFrameCaptured,
    ConnectRequested,
    ConnectSucceeded,
    Event,
    RemoteClosed,
    StartFailed,
    StopCompleted,
    StopRequested,
    TranscriptDelta,
    TransportFailed,
    TurnComplete,
)
from orchestrator.state_dataclass import PipelineStats, SessionState
from constants import TRANSPORT_ERROR_MESSAGE


# =============================================================================
# Status groups
# =============================================================================

_STARTABLE = frozenset({
    SessionStatus.IDLE,
    SessionStatus.CLOSED,
    SessionStatus.ERRORED,
})

_STOPPABLE = frozenset({
    SessionStatus.CONNECTING,
    SessionStatus.OPEN,
})

# Errored is reachable from every state that still holds a live handle
_ERRORABLE = frozenset({
    SessionStatus.CONNECTING,
    SessionStatus.OPEN,
    SessionStatus.CLOSING,
})


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: SessionState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
    *,
    level: str = "INFO",
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "level": level,
            "status": state.status.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "count": {
                "reported": state.reported_count,
                "committed": state.count.committed,
            },
            "details": details or {},
        }
    )


def _state_changed(
    old: SessionState,
    new: SessionState,
    event: Event,
    source: str,
) -> LogEvent:
    return _log(
        new,
        event,
        "state_changed",
        {
            "from_status": old.status.value,
            "to_status": new.status.value,
            "source": source,
        },
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    """Side effects first, then decision logs, then state-change logs."""
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _ignore(
    state: SessionState, event: Event, reason: str
) -> tuple[SessionState, tuple[Command, ...]]:
    return state, (_log(state, event, "ignore", {"reason": reason}, level="DEBUG"),)


def _flush_turn(state: SessionState) -> SessionState:
    return replace(state, count=on_stop(state.count, state.keyword))


def _enter_errored(
    state: SessionState,
    event: Event,
    *,
    reason: str,
    message: str,
) -> tuple[SessionState, tuple[Command, ...]]:
    new_state = replace(
        _flush_turn(state),
        status=SessionStatus.ERRORED,
        last_error=message,
    )
    return new_state, _logs_last((
        ReleaseResources(reason=reason),
        _log(new_state, event, "enter_errored", {"reason": reason}, level="ERROR"),
        _state_changed(state, new_state, event, "enter_errored"),
    ))


# =============================================================================
# Lifecycle handlers
# =============================================================================

def _on_connect_requested(
    state: SessionState, event: ConnectRequested
) -> tuple[SessionState, tuple[Command, ...]]:
    if state.status not in _STARTABLE:
        return _ignore(state, event, "session_already_live")

    new_state = replace(
        state,
        status=SessionStatus.CONNECTING,
        session_id=event.session_id,
        last_error=None,
        stats=PipelineStats(),
    )
    return new_state, (_state_changed(state, new_state, event, "connect_requested"),)


def _on_start_failed(
    state: SessionState, event: StartFailed
) -> tuple[SessionState, tuple[Command, ...]]:
    # OPEN is included: the microphone is started only once the stream opens
    if state.status not in _STOPPABLE:
        return _ignore(state, event, "not_live")
    return _enter_errored(state, event, reason=event.reason, message=event.message)


def _on_connect_succeeded(
    state: SessionState, event: ConnectSucceeded
) -> tuple[SessionState, tuple[Command, ...]]:
    if state.status is not SessionStatus.CONNECTING:
        return _ignore(state, event, "not_connecting")

    new_state = replace(state, status=SessionStatus.OPEN)
    return new_state, _logs_last((
        AttachCapture(),
        _state_changed(state, new_state, event, "connect_succeeded"),
    ))


def _on_stop_requested(
    state: SessionState, event: StopRequested
) -> tuple[SessionState, tuple[Command, ...]]:
    if state.status not in _STOPPABLE:
        return _ignore(state, event, "not_live")

    new_state = replace(state, status=SessionStatus.CLOSING)
    return new_state, _logs_last((
        ReleaseResources(reason="stop", close_transport=False),
        _state_changed(state, new_state, event, "stop_requested"),
    ))


def _on_stop_completed(
    state: SessionState, event: StopCompleted
) -> tuple[SessionState, tuple[Command, ...]]:
    if state.status is not SessionStatus.CLOSING:
        return _ignore(state, event, "not_closing")

    flushed = occurrences(state.count.turn_buffer, state.keyword)
    new_state = replace(_flush_turn(state), status=SessionStatus.CLOSED)
    return new_state, _logs_last((
        _log(new_state, event, "turn_flushed", {"committed_added": flushed}),
        _state_changed(state, new_state, event, "stop_completed"),
    ))


# =============================================================================
# Remote service handlers
# =============================================================================

def _on_transcript_delta(
    state: SessionState, event: TranscriptDelta
) -> tuple[SessionState, tuple[Command, ...]]:
    if state.status is not SessionStatus.OPEN:
        return _ignore(state, event, "session_not_open")

    new_state = replace(
        state,
        count=on_delta(state.count, event.text),
        transcript_display=trim_display(
            state.transcript_display, event.text, state.display_max_chars
        ),
    )
    return new_state, (
        _log(new_state, event, "transcript_delta", {"chars": len(event.text)}),
    )


def _on_turn_complete(
    state: SessionState, event: TurnComplete
) -> tuple[SessionState, tuple[Command, ...]]:
    if state.status is not SessionStatus.OPEN:
        return _ignore(state, event, "session_not_open")

    added = occurrences(state.count.turn_buffer, state.keyword)
    new_state = replace(
        state,
        count=on_turn_complete(state.count, state.keyword),
        stats=replace(state.stats, turns_completed=state.stats.turns_completed + 1),
    )
    return new_state, (
        _log(new_state, event, "turn_committed", {"committed_added": added}),
    )


def _on_audio_chunk_received(
    state: SessionState, event: AudioChunkReceived
) -> tuple[SessionState, tuple[Command, ...]]:
    if state.status is not SessionStatus.OPEN:
        return _ignore(state, event, "session_not_open")

    new_state = replace(
        state,
        stats=replace(state.stats, chunks_played=state.stats.chunks_played + 1),
    )
    return new_state, (PlayAudio(chunk=event.chunk),)


def _on_remote_closed(
    state: SessionState, event: RemoteClosed
) -> tuple[SessionState, tuple[Command, ...]]:
    if state.status not in _STOPPABLE:
        return _ignore(state, event, "not_live")

    new_state = replace(_flush_turn(state), status=SessionStatus.CLOSED)
    return new_state, _logs_last((
        ReleaseResources(reason="remote_closed"),
        _log(new_state, event, "remote_closed", {"code": event.code, "reason": event.reason}),
        _state_changed(state, new_state, event, "remote_closed"),
    ))


def _on_transport_failed(
    state: SessionState, event: TransportFailed
) -> tuple[SessionState, tuple[Command, ...]]:
    if state.status not in _ERRORABLE:
        return _ignore(state, event, "no_live_handle")
    return _enter_errored(
        state,
        event,
        reason=event.reason,
        message=TRANSPORT_ERROR_MESSAGE,
    )


# =============================================================================
# Audio pipeline handlers
# =============================================================================

def _on_audio_frame_captured(
    state: SessionState, event: AudioFrameCaptured
) -> tuple[SessionState, tuple[Command, ...]]:
    if state.status is not SessionStatus.OPEN:
        # Dropped, never queued for a later Open
        new_state = replace(
            state,
            stats=replace(state.stats, frames_dropped=state.stats.frames_dropped + 1),
        )
        return new_state, (
            _log(
                new_state,
                event,
                "session_not_ready",
                {"sequence_num": event.sequence_num},
                level="WARNING",
            ),
        )

    new_state = replace(
        state,
        stats=replace(state.stats, frames_sent=state.stats.frames_sent + 1),
    )
    return new_state, (
        SendAudio(sequence_num=event.sequence_num, chunk=event.chunk),
    )


def _on_audio_chunk_rejected(
    state: SessionState, event: AudioChunkRejected
) -> tuple[SessionState, tuple[Command, ...]]:
    new_state = replace(
        state,
        stats=replace(state.stats, chunks_rejected=state.stats.chunks_rejected + 1),
    )
    return new_state, (
        _log(new_state, event, "audio_chunk_rejected", {"reason": event.reason}, level="WARNING"),
    )


# =============================================================================
# Entry point
# =============================================================================

def reduce(
    state: SessionState, event: Event
) -> tuple[SessionState, tuple[Command, ...]]:
    """Apply one event. Unknown event classes are ignored and logged."""
    if isinstance(event, AudioFrameCaptured):
        return _on_audio_frame_captured(state, event)
    if isinstance(event, TranscriptDelta):
        return _on_transcript_delta(state, event)
    if isinstance(event, TurnComplete):
        return _on_turn_complete(state, event)
    if isinstance(event, AudioChunkReceived):
        return _on_audio_chunk_received(state, event)
    if isinstance(event, AudioChunkRejected):
        return _on_audio_chunk_rejected(state, event)
    if isinstance(event, ConnectRequested):
        return _on_connect_requested(state, event)
    if isinstance(event, ConnectSucceeded):
        return _on_connect_succeeded(state, event)
    if isinstance(event, StartFailed):
        return _on_start_failed(state, event)
    if isinstance(event, StopRequested):
        return _on_stop_requested(state, event)
    if isinstance(event, StopCompleted):
        return _on_stop_completed(state, event)
    if isinstance(event, RemoteClosed):
        return _on_remote_closed(state, event)
    if isinstance(event, TransportFailed):
        return _on_transport_failed(state, event)
    return _ignore(state, event, "unhandled_event")
