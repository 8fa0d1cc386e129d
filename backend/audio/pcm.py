"""
PCM16 wire codec.

Converts between float32 samples and base64 PCM16 little-endian WireChunks.
Pure functions. No resampling here (see audio/playback.py).
"""

from __future__ import annotations

import base64
import binascii

import numpy as np

from audio.frames import PlayableBuffer, WireChunk
from constants import (
    CAPTURE_MIME_TYPE,
    PCM_INT16_MAX,
    PCM_INT16_MIN,
    PCM_SAMPLE_WIDTH_BYTES,
    PCM_SCALE,
)


class MalformedAudioError(ValueError):
    """
    Raised when an inbound chunk cannot be decoded into whole sample frames.

    The chunk must be dropped; the session carries on.
    """


def encode_frame(samples: np.ndarray, *, mime_type: str = CAPTURE_MIME_TYPE) -> WireChunk:
    """
    Encode float32 samples into a WireChunk.

    Each sample is scaled by 32768, clamped to the int16 range and truncated
    toward zero, so 1.0 maps to 32767 and -1.0 to -32768. Out-of-range input
    is clamped, never rejected.
    """
    scaled = np.asarray(samples, dtype=np.float32).astype(np.float64) * PCM_SCALE
    pcm = np.clip(scaled, PCM_INT16_MIN, PCM_INT16_MAX).astype("<i2")
    return WireChunk(
        data=base64.b64encode(pcm.tobytes()).decode("ascii"),
        mime_type=mime_type,
    )


def decode_chunk(data: str, *, sample_rate: int, channels: int) -> PlayableBuffer:
    """
    Decode base64 PCM16 LE into a planar PlayableBuffer.

    Raises:
        MalformedAudioError if the payload is not valid base64, or its byte
        length is not a whole number of interleaved frames.
        ValueError if sample_rate or channels is not positive.
    """
    if sample_rate <= 0:
        raise ValueError("sample_rate must be > 0")
    if channels <= 0:
        raise ValueError("channels must be > 0")

    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedAudioError(f"invalid base64 audio payload: {e}") from e

    bytes_per_frame = PCM_SAMPLE_WIDTH_BYTES * channels
    if len(raw) % bytes_per_frame != 0:
        raise MalformedAudioError(
            f"payload of {len(raw)} bytes is not a multiple of {bytes_per_frame} "
            f"({channels} channel(s) of PCM16)"
        )

    interleaved = np.frombuffer(raw, dtype="<i2").astype(np.float32) / PCM_SCALE
    planar = interleaved.reshape(-1, channels).T.copy()
    return PlayableBuffer(channels=planar, sample_rate=sample_rate)


def parse_pcm_rate(mime_type: str | None, default: int) -> int:
    """
    Read the rate parameter from a descriptor like "audio/pcm;rate=24000".

    Missing or unparsable rates fall back to default.
    """
    if not mime_type:
        return default
    for param in mime_type.split(";")[1:]:
        key, _, value = param.strip().partition("=")
        if key.strip().lower() == "rate":
            try:
                rate = int(value.strip())
            except ValueError:
                return default
            return rate if rate > 0 else default
    return default
