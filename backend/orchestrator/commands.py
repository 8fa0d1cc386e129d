"""
Side-effect command definitions for the session runtime.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from audio.frames import WireChunk

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Capture
    ATTACH_CAPTURE = "ATTACH_CAPTURE"

    # Transport
    SEND_AUDIO = "SEND_AUDIO"

    # Playback
    PLAY_AUDIO = "PLAY_AUDIO"

    # Session / lifecycle
    RELEASE_RESOURCES = "RELEASE_RESOURCES"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Capture / Transport / Playback
# =============================================================================

@dataclass(frozen=True)
class AttachCapture(Command):
    """Start delivering microphone frames into the session."""
    command_type: CommandType = CommandType.ATTACH_CAPTURE


@dataclass(frozen=True)
class SendAudio(Command):
    """Hand one encoded frame to the transport's ordered send queue."""
    sequence_num: int
    chunk: WireChunk
    command_type: CommandType = CommandType.SEND_AUDIO


@dataclass(frozen=True)
class PlayAudio(Command):
    """Decode and schedule one inbound chunk on the output device."""
    chunk: WireChunk
    command_type: CommandType = CommandType.PLAY_AUDIO


# =============================================================================
# Lifecycle
# =============================================================================

@dataclass(frozen=True)
class ReleaseResources(Command):
    """
    Release audio devices: microphone first, then the output device.

    close_transport:
        Also abort the transport. False on the explicit stop path, where
        the controller awaits a clean transport close itself.
    """
    reason: str
    close_transport: bool = True
    command_type: CommandType = CommandType.RELEASE_RESOURCES


# =============================================================================
# Observability
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Emit one structured log event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
