"""
Runtime execution shell for a single session controller.

Responsibilities:
- Own session state
- Call pure reducer
- Execute commands with side effects (capture, transport, playback, release)
- Publish state changes to observers

Threading:
- Everything here runs on the event-loop thread. Audio device threads never
  call into the runtime directly (see audio/capture.py).
- handle_event() is synchronous: reducing and executing commands is cheap and
  never awaits, so events are processed strictly one at a time.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque

from adapters.live.base import SessionNotReady
from audio.pcm import MalformedAudioError
from orchestrator.commands import (
    AttachCapture,
    Command,
    LogEvent,
    PlayAudio,
    ReleaseResources,
    SendAudio,
)
from orchestrator.events import AudioChunkRejected, Event, EventType, StartFailed
from orchestrator.reducer import reduce
from orchestrator.runtime_context import SessionResources
from orchestrator.state_dataclass import SessionState

from observability.logger import log_event, now_ms


StateListener = Callable[[SessionState], None]


class Runtime:
    """
    Runtime execution boundary between the pure reducer and the devices.

    Guarantees:
    - Reducer is always called exactly once per incoming event
    - State transitions are serialized and deterministic
    - All side effects occur *after* state has been updated
    - Events raised while a command executes are queued and processed after
      the current event, in arrival order
    - Runtime never performs session logic itself
    """

    def __init__(self, *, initial_state: SessionState) -> None:
        self._state = initial_state
        self._resources: SessionResources | None = None
        self._pending: Deque[Event] = deque()
        self._dispatching = False
        self._listeners: list[StateListener] = []
        self._sends_accepted = 0

    @property
    def state(self) -> SessionState:
        """
        Current immutable session state.

        Consumers must never modify this state directly.
        """
        return self._state

    @property
    def sends_accepted(self) -> int:
        """Chunks the transport has accepted since this runtime was created."""
        return self._sends_accepted

    @property
    def resources(self) -> SessionResources | None:
        return self._resources

    def bind(self, resources: SessionResources) -> None:
        """Attach the resource bundle of a new session handle."""
        self._resources = resources

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a state observer. Returns an unsubscribe callable.

        Observers are called synchronously after every state change.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Event entry point
    # ------------------------------------------------------------------

    def handle_event(self, event: Event) -> None:
        """
        Process one event through the reducer and execute its commands.

        This method is the *only* entry point for events affecting session
        state. All event sources converge here:
        - Controller (start / stop)
        - Capture pipeline (frames)
        - Transport adapter (open, transcript, audio, close, error)
        """
        self._pending.append(event)
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._pending:
                self._process(self._pending.popleft())
        finally:
            self._dispatching = False

    def _process(self, event: Event) -> None:
        prev_state = self._state
        new_state, commands = reduce(prev_state, event)
        self._state = new_state

        for cmd in commands:
            self._execute_command(cmd)

        if new_state is not prev_state:
            self._notify(new_state)

    def _notify(self, state: SessionState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": now_ms(),
                    "level": "ERROR",
                    "event_type": "STATE_LISTENER_FAILED",
                    "session_id": state.session_id,
                    "error": repr(e),
                })

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._state.session_id,
            })
            return

        res = self._resources

        if isinstance(cmd, SendAudio):
            if res is None or res.transport is None:
                self._log_drop(cmd.sequence_num, "no_transport")
                return
            try:
                res.transport.send_audio(cmd.chunk)
            except SessionNotReady as e:
                self._log_drop(cmd.sequence_num, str(e))
            else:
                self._sends_accepted += 1

        elif isinstance(cmd, PlayAudio):
            if res is None or res.playback is None:
                return
            try:
                res.playback.play(cmd.chunk)
            except MalformedAudioError as e:
                self.handle_event(
                    AudioChunkRejected(
                        event_type=EventType.AUDIO_CHUNK_REJECTED,
                        ts_ms=now_ms(),
                        reason=str(e),
                    )
                )

        elif isinstance(cmd, AttachCapture):
            if res is None or res.capture is None:
                return
            try:
                res.capture.start()
            except Exception as e:  # pylint: disable=broad-exception-caught
                self.handle_event(
                    StartFailed(
                        event_type=EventType.START_FAILED,
                        ts_ms=now_ms(),
                        reason="capture_start_failed",
                        message=str(e),
                    )
                )

        elif isinstance(cmd, ReleaseResources):
            if res is None or res.released:
                return
            res.release(close_transport=cmd.close_transport)
            log_event({
                "ts_ms": now_ms(),
                "event_type": "RESOURCES_RELEASED",
                "session_id": res.session_id,
                "reason": cmd.reason,
                "transport_closed": cmd.close_transport,
            })

        else:
            raise TypeError(f"unknown command: {cmd!r}")

    def _log_drop(self, sequence_num: int, reason: str) -> None:
        log_event({
            "ts_ms": now_ms(),
            "level": "WARNING",
            "event_type": "SESSION_NOT_READY",
            "session_id": self._state.session_id,
            "sequence_num": sequence_num,
            "reason": reason,
        })
