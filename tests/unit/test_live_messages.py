# pylint: disable=missing-module-docstring,missing-function-docstring

import json

import pytest

from audio.frames import WireChunk
from protocol.live_messages import (
    LiveProtocolError,
    ServerMessage,
    build_realtime_input,
    build_setup_message,
    encode_message,
    parse_server_message,
)


def test_setup_message_prefixes_model_once() -> None:
    assert build_setup_message(model="abc", system_instruction="x")["setup"]["model"] == "models/abc"
    assert build_setup_message(model="models/abc", system_instruction="x")["setup"]["model"] == "models/abc"


def test_realtime_input_wraps_chunk() -> None:
    chunk = WireChunk(data="AAA=", mime_type="audio/pcm;rate=16000")

    assert build_realtime_input(chunk) == {
        "realtimeInput": {"mediaChunks": [{"mimeType": "audio/pcm;rate=16000", "data": "AAA="}]}
    }


def test_encode_message_is_compact_json() -> None:
    assert encode_message({"a": [1, 2]}) == '{"a":[1,2]}'


def test_parse_setup_complete() -> None:
    assert parse_server_message('{"setupComplete": {}}') == ServerMessage(setup_complete=True)


def test_parse_accepts_binary_frames() -> None:
    raw = json.dumps({"serverContent": {"turnComplete": True}}).encode("utf-8")

    assert parse_server_message(raw).turn_complete


def test_parse_full_server_content() -> None:
    msg = parse_server_message(json.dumps({
        "serverContent": {
            "inputTranscription": {"text": " practice"},
            "turnComplete": True,
            "modelTurn": {"parts": [
                {"text": "ignored"},
                {"inlineData": {"mimeType": "audio/pcm;rate=24000", "data": "AAA="}},
                {"inlineData": {"mimeType": "audio/pcm;rate=24000", "data": ""}},
            ]},
        },
        "goAway": {"timeLeft": "10s"},
    }))

    assert msg.transcript_delta == " practice"
    assert msg.turn_complete
    assert msg.audio_chunks == (WireChunk(data="AAA=", mime_type="audio/pcm;rate=24000"),)
    assert msg.go_away
    assert not msg.setup_complete


def test_parse_ignores_empty_and_unexpected_shapes() -> None:
    msg = parse_server_message(json.dumps({
        "serverContent": {
            "inputTranscription": {"text": ""},
            "modelTurn": {"parts": "nope"},
        },
    }))

    assert msg == ServerMessage()


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", "42", b"\xff\xfe"])
def test_parse_rejects_non_objects(raw: str | bytes) -> None:
    with pytest.raises(LiveProtocolError):
        parse_server_message(raw)
