# backend/protocol/live_messages.py
"""
JSON message helpers for the Gemini Live stream.

Client -> Server:
    {"setup": {"model": "models/<id>",
               "generationConfig": {"responseModalities": ["AUDIO"]},
               "systemInstruction": {"parts": [{"text": "..."}]},
               "inputAudioTranscription": {}}}
    {"realtimeInput": {"mediaChunks": [{"mimeType": "audio/pcm;rate=16000",
                                        "data": "<base64>"}]}}

Server -> Client (any subset per message):
    {"setupComplete": {}}
    {"serverContent": {"inputTranscription": {"text": "..."},
                       "turnComplete": true,
                       "modelTurn": {"parts": [{"inlineData": {"mimeType": ..., "data": ...}}]}}}
    {"goAway": {"timeLeft": "..."}}

Usage example:

    msg = parse_server_message(raw)
    if msg.setup_complete:
        ...
    if msg.transcript_delta:
        ...
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from audio.frames import WireChunk
from constants import LIVE_RESPONSE_MODALITY


# -------------------------
# Exceptions
# -------------------------

class LiveProtocolError(Exception):
    """
    Raised when an inbound message is not a JSON object.

    The message is unsafe to interpret and must be dropped.
    """


# -------------------------
# Client -> Server
# -------------------------

def _model_resource(model: str) -> str:
    return model if model.startswith("models/") else f"models/{model}"


def build_setup_message(*, model: str, system_instruction: str) -> dict[str, Any]:
    """First message on a new stream: model, audio responses, input transcription."""
    return {
        "setup": {
            "model": _model_resource(model),
            "generationConfig": {
                "responseModalities": [LIVE_RESPONSE_MODALITY],
            },
            "systemInstruction": {
                "parts": [{"text": system_instruction}],
            },
            "inputAudioTranscription": {},
        }
    }


def build_realtime_input(chunk: WireChunk) -> dict[str, Any]:
    """Wrap one captured chunk as a realtime media message."""
    return {"realtimeInput": {"mediaChunks": [chunk.to_json()]}}


def encode_message(message: dict[str, Any]) -> str:
    return json.dumps(message, separators=(",", ":"))


# -------------------------
# Server -> Client
# -------------------------

@dataclass(frozen=True)
class ServerMessage:
    """
    Decoded inbound message.

    Field order mirrors the order consumers must apply them in:
    transcript first, then the turn boundary, then audio.
    """
    setup_complete: bool = False
    transcript_delta: str | None = None
    turn_complete: bool = False
    audio_chunks: tuple[WireChunk, ...] = ()
    go_away: bool = False


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_server_message(raw: str | bytes) -> ServerMessage:
    """
    Decode one inbound frame (text or binary JSON).

    Raises:
        LiveProtocolError if the frame is not a JSON object.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, UnicodeDecodeError) as e:
        raise LiveProtocolError(f"invalid JSON frame: {e}") from e
    if not isinstance(data, dict):
        raise LiveProtocolError(f"expected JSON object, got {type(data).__name__}")

    content = _as_dict(data.get("serverContent"))

    transcript: str | None = None
    transcription = _as_dict(content.get("inputTranscription"))
    text = transcription.get("text")
    if isinstance(text, str) and text:
        transcript = text

    chunks: list[WireChunk] = []
    parts = _as_dict(content.get("modelTurn")).get("parts")
    if isinstance(parts, list):
        for part in parts:
            inline = _as_dict(_as_dict(part).get("inlineData"))
            audio = inline.get("data")
            if isinstance(audio, str) and audio:
                chunks.append(
                    WireChunk(data=audio, mime_type=str(inline.get("mimeType") or ""))
                )

    return ServerMessage(
        setup_complete="setupComplete" in data,
        transcript_delta=transcript,
        turn_complete=bool(content.get("turnComplete")),
        audio_chunks=tuple(chunks),
        go_away="goAway" in data,
    )
