"""
Live transport adapter contract.

This module defines the *interface only*: no session state, no counting, no
audio device handling lives here.

Key invariants:
- The adapter emits events; it never calls the reducer or makes state
  transitions.
- send_audio() never blocks and never reorders: chunks reach the remote in
  the order send_audio() accepted them.
- Failures after connect() returns are reported as TransportFailed events,
  not raised through the receive loop.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from audio.frames import WireChunk


class SessionNotReady(Exception):
    """
    Raised when audio is offered to a stream that is not open.

    Non-fatal: the chunk is dropped (never queued) and the drop is logged.
    """


class TransportError(Exception):
    """
    Raised when the connection to the remote service cannot be established.

    Fatal to the session handle; there is no automatic retry.
    """


class LiveAdapter(ABC):
    """
    Abstract interface for a bidirectional live speech stream.

    Implementations are responsible for:
    - Opening the stream and sending the setup request (connect)
    - Accepting outbound audio in order (send_audio)
    - Translating inbound messages into session events
    - Closing the stream (close / abort)

    Non-responsibilities:
    - No lifecycle state machine (IDLE/OPEN/...)
    - No keyword counting
    - No audio decoding or playback
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the stream and send the setup request.

        The stream counts as open only when the remote acknowledges the
        setup; the adapter emits ConnectSucceeded at that point.

        Raises:
            TransportError if the connection cannot be established.
        """
        raise NotImplementedError

    @abstractmethod
    def send_audio(self, chunk: WireChunk) -> None:
        """
        Enqueue one chunk for delivery.

        Raises:
            SessionNotReady if the stream is not open.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """
        Close the stream cleanly and stop emitting events.

        MUST be idempotent.
        """
        raise NotImplementedError

    @abstractmethod
    def abort(self) -> None:
        """
        Emergency teardown without awaiting.

        Must:
        - Not await
        - Not emit events
        - Be idempotent
        """
        raise NotImplementedError
