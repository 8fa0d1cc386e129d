"""
Session controller.

Responsibilities:
- Own the single live session handle and its resource bundle
- Acquire devices and the transport on start, in order:
  output device, microphone (permission point), remote stream
- Encode captured frames and route them into the runtime
- Tear everything down on stop, in order:
  microphone, output device, transport, counter flush
- Surface start failures to the caller (PermissionDenied, TransportError)

NOT responsible for:
- Session state transitions (reducer)
- Keyword counting (orchestrator/counting.py)
- Wire message formats (protocol/live_messages.py)
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable
from uuid import uuid4

from adapters.live.base import LiveAdapter, TransportError
from adapters.live.gemini_live import GeminiLiveAdapter
from audio.capture import CapturePipeline, PermissionDenied
from audio.frames import AudioFrame, WireChunk
from audio.pcm import encode_frame
from audio.playback import AudioOutputUnavailable, PlaybackPipeline
from constants import START_FAILED_MESSAGE
from observability.logger import log_event, now_ms
from observability.metrics import timed
from orchestrator.enums.state import SessionStatus
from orchestrator.events import (
    AudioFrameCaptured,
    ConnectRequested,
    Event,
    EventType,
    StartFailed,
    StopCompleted,
    StopRequested,
    TransportFailed,
)
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import SessionResources
from orchestrator.state_dataclass import SessionState
from session.snapshot import SessionSnapshot

from config import AppConfig


CaptureFactory = Callable[..., Any]
PlaybackFactory = Callable[[], Any]
AdapterFactory = Callable[..., LiveAdapter]


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


# ------------------------------------------------------------------
# SessionController
# ------------------------------------------------------------------

class SessionController:
    """
    One controller == one keyword tally; at most one live handle at a time.

    The tally (committed count, open turn, display transcript) survives
    stop/start cycles. Each start creates a fresh handle and resources.
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        capture_factory: CaptureFactory | None = None,
        playback_factory: PlaybackFactory | None = None,
        adapter_factory: AdapterFactory | None = None,
    ) -> None:
        self._config = config
        self._runtime = Runtime(initial_state=SessionState(keyword=config.keyword))

        self._capture_factory = capture_factory or self._default_capture
        self._playback_factory = playback_factory or self._default_playback
        self._adapter_factory = adapter_factory or self._default_adapter

        # Serializes start/stop; never held while events are processed
        self._lifecycle_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Default factories (real devices / real transport)
    # ------------------------------------------------------------------

    def _default_capture(self, **kwargs: Any) -> CapturePipeline:
        return CapturePipeline(device=self._config.input_device, **kwargs)

    def _default_playback(self) -> PlaybackPipeline:
        return PlaybackPipeline(device=self._config.output_device)

    def _default_adapter(self, **kwargs: Any) -> LiveAdapter:
        if not self._config.gemini_api_key:
            raise TransportError("GEMINI_API_KEY is not set")
        return GeminiLiveAdapter(
            api_key=self._config.gemini_api_key,
            model=self._config.live_model,
            system_instruction=self._config.system_instruction,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._runtime.state

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot.from_state(self._runtime.state)

    def subscribe(self, listener: Callable[[SessionSnapshot], None]) -> Callable[[], None]:
        """Call listener with a fresh snapshot after every state change."""
        return self._runtime.subscribe(
            lambda state: listener(SessionSnapshot.from_state(state))
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start_session(self) -> SessionSnapshot:
        """
        Create a new handle and connect it.

        Returns once the setup request is sent; the handle becomes OPEN when
        the remote acknowledges it. No-op if a handle is already live.

        The lifecycle lock is released before the handshake is awaited, so
        stop_session() can cancel a handle that is still CONNECTING. A start
        cancelled that way returns the current snapshot instead of raising.

        Raises:
            PermissionDenied if the microphone cannot be acquired.
            TransportError if the remote cannot be reached.
        """
        async with self._lifecycle_lock:
            if self.state.is_live:
                return self.snapshot()

            # A handle that errored was only aborted; finish its socket close
            previous = self._runtime.resources
            if previous is not None and previous.transport is not None:
                await previous.transport.close()

            session_id = _new_session_id()
            self._emit(ConnectRequested(
                event_type=EventType.CONNECT_REQUESTED,
                ts_ms=now_ms(),
                session_id=session_id,
            ))

            resources = SessionResources(session_id=session_id)
            self._runtime.bind(resources)
            loop = asyncio.get_running_loop()

            try:
                resources.transport = self._adapter_factory(
                    emit_event=self._runtime.handle_event,
                    session_id=session_id,
                )

                resources.playback = self._playback_factory()
                resources.playback.open()

                resources.capture = self._capture_factory(
                    on_frame=self._on_frame,
                    loop=loop,
                )
                resources.capture.open()
            except (PermissionDenied, AudioOutputUnavailable, TransportError) as e:
                self._start_failed(e)
                raise

            transport = resources.transport

        try:
            with timed("live_connect", session_id=session_id) as extra:
                extra["model"] = self._config.live_model
                await transport.connect()
        except TransportError as e:
            if not self._is_current_live(session_id):
                log_event({
                    "ts_ms": now_ms(),
                    "event_type": "SESSION_START_CANCELLED",
                    "session_id": session_id,
                    "message": str(e),
                })
                return self.snapshot()
            self._emit(TransportFailed(
                event_type=EventType.TRANSPORT_FAILED,
                ts_ms=now_ms(),
                reason=str(e),
            ))
            raise

        return self.snapshot()

    async def stop_session(self) -> SessionSnapshot:
        """
        Stop the live handle, if any. Idempotent.

        Order: microphone released, capture detached, output device closed,
        transport closed, open turn flushed into the committed count.
        """
        async with self._lifecycle_lock:
            if self.state.status not in (SessionStatus.CONNECTING, SessionStatus.OPEN):
                return self.snapshot()

            self._emit(StopRequested(event_type=EventType.STOP_REQUESTED, ts_ms=now_ms()))

            resources = self._runtime.resources
            if resources is not None and resources.transport is not None:
                await resources.transport.close()

            self._emit(StopCompleted(event_type=EventType.STOP_COMPLETED, ts_ms=now_ms()))
            return self.snapshot()

    async def shutdown(self) -> None:
        """
        Process exit: stop the live handle and finish any pending socket close
        left behind by an error path.
        """
        await self.stop_session()
        resources = self._runtime.resources
        if resources is not None:
            resources.release_devices()
            if resources.transport is not None:
                await resources.transport.close()

    # ------------------------------------------------------------------
    # Send path
    # ------------------------------------------------------------------

    def send(self, chunk: WireChunk, *, sequence_num: int = 0) -> bool:
        """
        Submit one outbound chunk.

        Returns True only if the transport accepted the chunk; otherwise the
        chunk is dropped (logged as session_not_ready), never queued.
        """
        accepted_before = self._runtime.sends_accepted
        self._emit(AudioFrameCaptured(
            event_type=EventType.AUDIO_FRAME_CAPTURED,
            ts_ms=now_ms(),
            sequence_num=sequence_num,
            chunk=chunk,
        ))
        return self._runtime.sends_accepted > accepted_before

    def _on_frame(self, frame: AudioFrame) -> None:
        """Capture pipeline callback (event-loop thread)."""
        self.send(encode_frame(frame.samples), sequence_num=frame.sequence_num)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _emit(self, event: Event) -> None:
        self._runtime.handle_event(event)

    def _is_current_live(self, session_id: str) -> bool:
        return self.state.session_id == session_id and self.state.status in (
            SessionStatus.CONNECTING,
            SessionStatus.OPEN,
        )

    def _start_failed(self, exc: Exception) -> None:
        log_event({
            "ts_ms": now_ms(),
            "level": "ERROR",
            "event_type": "SESSION_START_FAILED",
            "session_id": self.state.session_id,
            "exception": type(exc).__name__,
            "message": str(exc),
        })
        self._emit(StartFailed(
            event_type=EventType.START_FAILED,
            ts_ms=now_ms(),
            reason=type(exc).__name__,
            message=str(exc) or START_FAILED_MESSAGE,
        ))


def build_controller(config: AppConfig) -> SessionController:
    """Controller wired to real audio devices and the Gemini Live transport."""
    return SessionController(config=config)
