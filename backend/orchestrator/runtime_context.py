"""
Runtime execution context.

Provides Runtime with access to the imperative resources owned by the
current session handle (capture, playback, transport).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- The per-handle resource bundle
- Zero session logic
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from audio.frames import WireChunk


# ---------------------------------------------------------------------
# Resource Protocols
# ---------------------------------------------------------------------

@runtime_checkable
class CaptureProtocol(Protocol):
    def start(self) -> None: ...
    def close(self) -> None: ...


@runtime_checkable
class PlaybackProtocol(Protocol):
    def play(self, chunk: WireChunk) -> bool: ...
    def close(self) -> None: ...


@runtime_checkable
class LiveTransportProtocol(Protocol):
    def send_audio(self, chunk: WireChunk) -> None:
        """
        Enqueue one chunk for ordered delivery. Must not block.

        Raises SessionNotReady if the stream is not open.
        """

    def abort(self) -> None:
        """Tear the connection down without awaiting. Idempotent."""

    async def close(self) -> None: ...


# ---------------------------------------------------------------------
# Resource bundle
# ---------------------------------------------------------------------

@dataclass
class SessionResources:
    """
    Everything acquired for one session handle.

    Built by SessionController.start_session(), released exactly once by
    release() on every exit path (stop, remote close, error).
    """

    session_id: str
    capture: CaptureProtocol | None = None
    playback: PlaybackProtocol | None = None
    transport: LiveTransportProtocol | None = None
    released: bool = False

    def release_devices(self) -> None:
        """Microphone first, then the output device. Idempotent."""
        if self.capture is not None:
            self.capture.close()
        if self.playback is not None:
            self.playback.close()

    def release(self, *, close_transport: bool) -> None:
        self.release_devices()
        if close_transport and self.transport is not None:
            self.transport.abort()
        self.released = True
