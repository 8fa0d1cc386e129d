"""
Unified event definitions for the session reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no async, no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from audio.frames import WireChunk


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (status, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Lifecycle (controller)
    # ------------------------------------------------------------------
    CONNECT_REQUESTED = "CONNECT_REQUESTED"
    START_FAILED = "START_FAILED"
    STOP_REQUESTED = "STOP_REQUESTED"
    STOP_COMPLETED = "STOP_COMPLETED"

    # ------------------------------------------------------------------
    # Remote service (transport adapter)
    # ------------------------------------------------------------------
    CONNECT_SUCCEEDED = "CONNECT_SUCCEEDED"
    TRANSCRIPT_DELTA = "TRANSCRIPT_DELTA"
    TURN_COMPLETE = "TURN_COMPLETE"
    AUDIO_CHUNK_RECEIVED = "AUDIO_CHUNK_RECEIVED"
    REMOTE_CLOSED = "REMOTE_CLOSED"
    TRANSPORT_FAILED = "TRANSPORT_FAILED"

    # ------------------------------------------------------------------
    # Audio pipelines
    # ------------------------------------------------------------------
    AUDIO_FRAME_CAPTURED = "AUDIO_FRAME_CAPTURED"
    AUDIO_CHUNK_REJECTED = "AUDIO_CHUNK_REJECTED"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# Lifecycle Events
# =============================================================================

@dataclass(frozen=True)
class ConnectRequested(Event):
    """start_session() called; a new handle is being created."""
    session_id: str


@dataclass(frozen=True)
class StartFailed(Event):
    """An audio device could not be acquired or started (e.g. microphone refused)."""
    reason: str
    message: str


@dataclass(frozen=True)
class StopRequested(Event):
    """stop_session() called."""


@dataclass(frozen=True)
class StopCompleted(Event):
    """Every resource of the stopping handle has been released."""


# =============================================================================
# Remote Service Events
# =============================================================================

@dataclass(frozen=True)
class ConnectSucceeded(Event):
    """Remote acknowledged the setup message; the stream is open."""


@dataclass(frozen=True)
class TranscriptDelta(Event):
    """Incremental input transcription text for the current turn."""
    text: str


@dataclass(frozen=True)
class TurnComplete(Event):
    """Remote marked the end of the current turn."""


@dataclass(frozen=True)
class AudioChunkReceived(Event):
    """Synthesized audio from the remote."""
    chunk: WireChunk


@dataclass(frozen=True)
class RemoteClosed(Event):
    """Remote closed the stream cleanly."""
    code: int | None = None
    reason: str = ""


@dataclass(frozen=True)
class TransportFailed(Event):
    """Connection failure: connect, receive or send."""
    reason: str


# =============================================================================
# Audio Pipeline Events
# =============================================================================

@dataclass(frozen=True)
class AudioFrameCaptured(Event):
    """One encoded microphone frame, ready to send."""
    sequence_num: int
    chunk: WireChunk


@dataclass(frozen=True)
class AudioChunkRejected(Event):
    """An inbound audio chunk failed to decode and was skipped."""
    reason: str
