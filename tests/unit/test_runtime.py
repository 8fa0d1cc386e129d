# pylint: disable=missing-module-docstring,missing-function-docstring

import json

import pytest

from audio.frames import WireChunk
from observability import logger
from orchestrator.enums.state import SessionStatus
from orchestrator.events import (
    AudioChunkReceived,
    AudioFrameCaptured,
    ConnectRequested,
    ConnectSucceeded,
    EventType,
    TranscriptDelta,
    TurnComplete,
)
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import SessionResources
from orchestrator.state_dataclass import SessionState

from fakes import FakeAdapter, FakeCapture, FakePlayback, pcm_chunk


@pytest.fixture
def logs(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    events: list[dict] = []

    def _collect(line: str) -> None:
        events.append(json.loads(line))

    monkeypatch.setattr(logger, "_print", _collect)
    monkeypatch.setattr(logger, "_min_level", 0)
    monkeypatch.setattr(logger, "_json_lines", True)
    return events


def _connect(runtime: Runtime) -> None:
    runtime.handle_event(ConnectRequested(
        event_type=EventType.CONNECT_REQUESTED, ts_ms=0, session_id="s1",
    ))


def _wired_runtime(*, log: list[str] | None = None) -> tuple[Runtime, FakeAdapter, FakeCapture, FakePlayback]:
    runtime = Runtime(initial_state=SessionState())
    log = log if log is not None else []
    adapter = FakeAdapter(emit_event=runtime.handle_event, session_id="s1", log=log)
    capture = FakeCapture(on_frame=lambda frame: None, log=log)
    playback = FakePlayback(log=log)
    runtime.bind(SessionResources(
        session_id="s1", capture=capture, playback=playback, transport=adapter,
    ))
    _connect(runtime)
    return runtime, adapter, capture, playback


def test_connect_succeeded_starts_capture() -> None:
    runtime, adapter, capture, _ = _wired_runtime()

    adapter.open_stream()

    assert runtime.state.status is SessionStatus.OPEN
    assert capture.started


def test_capture_start_failure_errors_the_session() -> None:
    runtime, adapter, capture, playback = _wired_runtime()

    def _boom() -> None:
        raise RuntimeError("device vanished")

    capture.start = _boom  # type: ignore[method-assign]
    adapter.open_stream()

    assert runtime.state.status is SessionStatus.ERRORED
    assert runtime.state.last_error == "device vanished"
    assert capture.closed == 1
    assert playback.closed == 1
    assert adapter.aborted == 1


def test_malformed_chunk_is_rejected_and_next_chunk_plays(logs: list[dict]) -> None:
    runtime, adapter, _, playback = _wired_runtime()
    adapter.open_stream()

    bad = WireChunk(data="AQID", mime_type="audio/pcm;rate=24000")  # 3 bytes
    good = pcm_chunk([0.5, -0.5])
    for chunk in (bad, good):
        adapter.deliver(AudioChunkReceived(
            event_type=EventType.AUDIO_CHUNK_RECEIVED, ts_ms=0, chunk=chunk,
        ))

    assert runtime.state.status is SessionStatus.OPEN
    assert runtime.state.stats.chunks_rejected == 1
    assert len(playback.played) == 1
    assert playback.played[0].tolist() == [0.5, -0.5]
    assert any(e.get("decision") == "audio_chunk_rejected" for e in logs)


def test_send_failure_is_logged_as_not_ready(logs: list[dict]) -> None:
    runtime, adapter, _, _ = _wired_runtime()
    adapter.open_stream()
    adapter.is_open = False  # transport lost the stream before the reducer heard about it

    runtime.handle_event(AudioFrameCaptured(
        event_type=EventType.AUDIO_FRAME_CAPTURED, ts_ms=0, sequence_num=7,
        chunk=pcm_chunk([0.0]),
    ))

    drops = [e for e in logs if e.get("event_type") == "SESSION_NOT_READY"]
    assert drops and drops[0]["sequence_num"] == 7
    assert adapter.sent == []
    assert runtime.sends_accepted == 0


def test_sends_accepted_counts_only_transport_accepts() -> None:
    runtime, adapter, _, _ = _wired_runtime()

    def _frame(seq: int) -> AudioFrameCaptured:
        return AudioFrameCaptured(
            event_type=EventType.AUDIO_FRAME_CAPTURED, ts_ms=0, sequence_num=seq,
            chunk=pcm_chunk([0.0]),
        )

    runtime.handle_event(_frame(1))
    assert runtime.sends_accepted == 0

    adapter.open_stream()
    runtime.handle_event(_frame(2))
    runtime.handle_event(_frame(3))

    assert runtime.sends_accepted == 2
    assert len(adapter.sent) == 2


def test_events_raised_during_commands_are_processed_in_order() -> None:
    runtime, adapter, _, _ = _wired_runtime()
    seen: list[str] = []
    runtime.subscribe(lambda state: seen.append(state.count.turn_buffer))

    def _emit_two() -> None:
        # A transport emitting from inside command execution
        adapter.deliver(TranscriptDelta(event_type=EventType.TRANSCRIPT_DELTA, ts_ms=0, text="a "))
        adapter.deliver(TranscriptDelta(event_type=EventType.TRANSCRIPT_DELTA, ts_ms=0, text="b"))

    runtime.resources.capture.start = _emit_two  # type: ignore[union-attr,method-assign]
    adapter.open_stream()

    assert runtime.state.count.turn_buffer == "a b"
    assert seen == ["", "a ", "a b"]


def test_listener_failure_does_not_stop_processing(logs: list[dict]) -> None:
    runtime, adapter, _, _ = _wired_runtime()

    def _bad(_state: SessionState) -> None:
        raise RuntimeError("listener broke")

    runtime.subscribe(_bad)
    adapter.open_stream()
    adapter.deliver(TranscriptDelta(event_type=EventType.TRANSCRIPT_DELTA, ts_ms=0, text="practice"))
    adapter.deliver(TurnComplete(event_type=EventType.TURN_COMPLETE, ts_ms=0))

    assert runtime.state.count.committed == 1
    assert any(e.get("event_type") == "STATE_LISTENER_FAILED" for e in logs)


def test_unsubscribe_stops_notifications() -> None:
    runtime = Runtime(initial_state=SessionState())
    seen: list[SessionStatus] = []
    unsubscribe = runtime.subscribe(lambda state: seen.append(state.status))

    _connect(runtime)
    unsubscribe()
    runtime.handle_event(ConnectSucceeded(event_type=EventType.CONNECT_SUCCEEDED, ts_ms=0))

    assert seen == [SessionStatus.CONNECTING]
    assert runtime.state.status is SessionStatus.OPEN
