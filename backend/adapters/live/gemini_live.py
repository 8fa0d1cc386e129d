"""
Gemini Live streaming adapter (one WebSocket per session handle).

Core model:
- connect() opens the socket and sends the setup request. The stream is
  *open* only once the remote answers with setupComplete; that is when
  ConnectSucceeded is emitted and send_audio() starts accepting chunks.
- Outbound audio goes through one asyncio.Queue drained by a single sender
  task, so chunks reach the remote in the order they were accepted.
- Inbound messages are translated to events in a single receiver task, in
  the order: transcript delta, turn complete, audio chunks.

Event behavior:
- Clean close by the remote => RemoteClosed
- Receive/send failure      => TransportFailed
- Nothing is emitted once close()/abort() has been called.

Design constraints:
- Adapter must not call the reducer directly (emit_event only).
- Adapter must not own session state transitions.
- No reconnect: a failed stream stays failed.
"""

from __future__ import annotations

import asyncio
import urllib.parse
from typing import Any, Awaitable, Callable

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed

from adapters.live.base import LiveAdapter, SessionNotReady, TransportError
from audio.frames import WireChunk
from constants import (
    LIVE_CLOSE_TIMEOUT_S,
    LIVE_WS_MAX_MESSAGE_BYTES,
    LIVE_WS_URL,
)
from observability.logger import log_event, now_ms
from orchestrator.events import (
    AudioChunkReceived,
    ConnectSucceeded,
    Event,
    EventType,
    RemoteClosed,
    TranscriptDelta,
    TransportFailed,
    TurnComplete,
)
from protocol.live_messages import (
    LiveProtocolError,
    build_realtime_input,
    build_setup_message,
    encode_message,
    parse_server_message,
)


Connector = Callable[..., Awaitable[Any]]


class GeminiLiveAdapter(LiveAdapter):
    """
    Bidirectional Gemini Live stream for one session handle.

    Public interface:
    - connect(): open socket + send setup
    - send_audio(chunk): non-blocking, ordered
    - close(): clean shutdown (awaits)
    - abort(): teardown without awaiting (error paths)
    """

    def __init__(
        self,
        *,
        emit_event: Callable[[Event], None],
        api_key: str,
        model: str,
        system_instruction: str,
        session_id: str | None = None,
        url: str = LIVE_WS_URL,
        connector: Connector | None = None,
    ) -> None:
        self._emit = emit_event
        self._api_key = api_key
        self._model = model
        self._system_instruction = system_instruction
        self._session_id = session_id
        self._url = url
        self._connector = connector or ws_connect

        self._ws: Any = None
        self._outbound: asyncio.Queue[WireChunk] | None = None
        self._recv_task: asyncio.Task[None] | None = None
        self._send_task: asyncio.Task[None] | None = None
        self._close_task: asyncio.Task[None] | None = None

        self._open = False
        self._closing = False

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._open and not self._closing

    def _build_url(self) -> str:
        qs = urllib.parse.urlencode({"key": self._api_key})
        return f"{self._url}?{qs}"

    async def connect(self) -> None:
        if self._closing:
            raise TransportError("adapter already closed")
        if self._ws is not None:
            return

        try:
            ws = await self._connector(
                self._build_url(),
                max_size=LIVE_WS_MAX_MESSAGE_BYTES,
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            raise TransportError(f"live_connect_failed: {e!r}") from e

        setup = build_setup_message(
            model=self._model,
            system_instruction=self._system_instruction,
        )
        try:
            await ws.send(encode_message(setup))
        except Exception as e:  # pylint: disable=broad-exception-caught
            await self._close_socket(ws)
            raise TransportError(f"live_setup_failed: {e!r}") from e

        if self._closing:
            # close()/abort() ran while we were connecting
            await self._close_socket(ws)
            raise TransportError("adapter closed during connect")

        self._ws = ws
        self._outbound = asyncio.Queue()
        self._recv_task = asyncio.create_task(self._recv_loop(ws))
        self._send_task = asyncio.create_task(self._send_loop(ws, self._outbound))

        log_event({
            "ts_ms": now_ms(),
            "event_type": "LIVE_SETUP_SENT",
            "session_id": self._session_id,
            "model": self._model,
        })

    def send_audio(self, chunk: WireChunk) -> None:
        if not self.is_open or self._outbound is None:
            raise SessionNotReady("live stream is not open")
        self._outbound.put_nowait(chunk)

    async def close(self) -> None:
        self._closing = True
        self._open = False

        ws = self._ws
        self._ws = None
        tasks = [t for t in (self._send_task, self._recv_task) if t is not None]
        self._send_task = None
        self._recv_task = None

        current = asyncio.current_task()
        for task in tasks:
            if task is not current and not task.done():
                task.cancel()
        await asyncio.gather(
            *(t for t in tasks if t is not current),
            return_exceptions=True,
        )

        if ws is not None:
            await self._close_socket(ws)

        if self._close_task is not None:
            await asyncio.gather(self._close_task, return_exceptions=True)
            self._close_task = None

    def abort(self) -> None:
        """
        Teardown without awaiting.

        The socket close is scheduled as a task (awaited later by close()).
        """
        self._closing = True
        self._open = False

        ws = self._ws
        self._ws = None

        for task in (self._send_task, self._recv_task):
            if task is not None and not task.done():
                task.cancel()
        self._send_task = None
        self._recv_task = None

        if ws is not None:
            self._close_task = asyncio.create_task(self._close_socket(ws))

    # -------------------------------------------------------------------------
    # Background loops
    # -------------------------------------------------------------------------

    async def _recv_loop(self, ws: Any) -> None:
        try:
            async for raw in ws:
                self._dispatch(raw)
                if self._closing:
                    return
        except asyncio.CancelledError:
            return
        except ConnectionClosed as e:
            self._fail(f"live_connection_lost: {e!r}")
            return
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._fail(f"live_recv_failed: {e!r}")
            return

        if not self._closing:
            self._open = False
            self._emit(
                RemoteClosed(
                    event_type=EventType.REMOTE_CLOSED,
                    ts_ms=now_ms(),
                    code=getattr(ws, "close_code", None),
                    reason=getattr(ws, "close_reason", None) or "",
                )
            )

    async def _send_loop(self, ws: Any, outbound: asyncio.Queue[WireChunk]) -> None:
        try:
            while True:
                chunk = await outbound.get()
                await ws.send(encode_message(build_realtime_input(chunk)))
        except asyncio.CancelledError:
            return
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._fail(f"live_send_failed: {e!r}")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            msg = parse_server_message(raw)
        except LiveProtocolError as e:
            log_event({
                "ts_ms": now_ms(),
                "level": "WARNING",
                "event_type": "LIVE_MESSAGE_DROPPED",
                "session_id": self._session_id,
                "error": str(e),
            })
            return

        if msg.setup_complete and not self._open:
            self._open = True
            self._emit(
                ConnectSucceeded(event_type=EventType.CONNECT_SUCCEEDED, ts_ms=now_ms())
            )

        if msg.transcript_delta:
            self._emit(
                TranscriptDelta(
                    event_type=EventType.TRANSCRIPT_DELTA,
                    ts_ms=now_ms(),
                    text=msg.transcript_delta,
                )
            )

        if msg.turn_complete:
            self._emit(TurnComplete(event_type=EventType.TURN_COMPLETE, ts_ms=now_ms()))

        for chunk in msg.audio_chunks:
            self._emit(
                AudioChunkReceived(
                    event_type=EventType.AUDIO_CHUNK_RECEIVED,
                    ts_ms=now_ms(),
                    chunk=chunk,
                )
            )

        if msg.go_away:
            log_event({
                "ts_ms": now_ms(),
                "level": "WARNING",
                "event_type": "LIVE_GO_AWAY",
                "session_id": self._session_id,
            })

    def _fail(self, reason: str) -> None:
        self._open = False
        if self._closing:
            return
        self._emit(
            TransportFailed(
                event_type=EventType.TRANSPORT_FAILED,
                ts_ms=now_ms(),
                reason=reason,
            )
        )

    async def _close_socket(self, ws: Any) -> None:
        try:
            await asyncio.wait_for(ws.close(), timeout=LIVE_CLOSE_TIMEOUT_S)
        except Exception as e:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": now_ms(),
                "level": "WARNING",
                "event_type": "LIVE_CLOSE_FAILED",
                "session_id": self._session_id,
                "error": repr(e),
            })
