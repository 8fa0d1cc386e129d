"""
Route registration for the keyword counter API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Translate start failures into HTTP status codes
- Push snapshots to WebSocket observers
- Pull the controller from app.state
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from adapters.live.base import TransportError
from audio.capture import PermissionDenied
from audio.playback import AudioOutputUnavailable
from observability.logger import log_event, now_ms
from session.controller import SessionController
from session.snapshot import SessionSnapshot


def _error_response(
    status_code: int,
    exc: Exception,
    controller: SessionController,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": type(exc).__name__,
            "message": str(exc),
            "session": controller.snapshot().to_dict(),
        },
    )


async def _start(controller: SessionController) -> tuple[int, Exception | None]:
    """Start a session; map failures to an HTTP-style status code."""
    try:
        await controller.start_session()
    except (PermissionDenied, AudioOutputUnavailable) as e:
        return 403, e
    except TransportError as e:
        return 502, e
    return 200, None


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.get("/session")
    async def get_session() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        controller: SessionController = app.state.controller
        return controller.snapshot().to_dict()

    @app.post("/session/start", response_model=None)
    async def start_session() -> dict[str, Any] | JSONResponse: # pyright: ignore[reportUnusedFunction]
        controller: SessionController = app.state.controller
        status_code, exc = await _start(controller)
        if exc is not None:
            return _error_response(status_code, exc, controller)
        return controller.snapshot().to_dict()

    @app.post("/session/stop")
    async def stop_session() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        controller: SessionController = app.state.controller
        snapshot = await controller.stop_session()
        return snapshot.to_dict()

    @app.websocket("/ws/session")
    async def session_stream(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        """
        Live snapshot feed.

        Server -> client: one JSON snapshot per state change.
        Client -> server: {"type": "START"} / {"type": "STOP"}.
        """
        await ws.accept()
        controller: SessionController = app.state.controller

        updates: asyncio.Queue[SessionSnapshot] = asyncio.Queue()
        unsubscribe = controller.subscribe(updates.put_nowait)
        await updates.put(controller.snapshot())

        sender = asyncio.create_task(_pump_snapshots(ws, updates))
        try:
            while True:
                msg = await ws.receive_text()
                await _handle_control(ws, controller, msg)

        except WebSocketDisconnect:
            pass

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": now_ms(),
                "level": "ERROR",
                "event_type": "WS_FATAL_ERROR",
                "session_id": controller.state.session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

        finally:
            unsubscribe()
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)


async def _pump_snapshots(ws: WebSocket, updates: asyncio.Queue[SessionSnapshot]) -> None:
    while True:
        snapshot = await updates.get()
        await ws.send_json({"type": "SNAPSHOT", "session": snapshot.to_dict()})


async def _handle_control(ws: WebSocket, controller: SessionController, raw: str) -> None:
    try:
        msg = json.loads(raw)
    except ValueError:
        await ws.send_json({"type": "ERROR", "message": "invalid JSON"})
        return

    msg_type = msg.get("type") if isinstance(msg, dict) else None
    if msg_type == "START":
        _, exc = await _start(controller)
        if exc is not None:
            await ws.send_json({
                "type": "ERROR",
                "error": type(exc).__name__,
                "message": str(exc),
            })
    elif msg_type == "STOP":
        await controller.stop_session()
    else:
        await ws.send_json({"type": "ERROR", "message": f"unknown message type: {msg_type!r}"})
