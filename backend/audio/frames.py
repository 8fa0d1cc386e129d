"""
Audio data primitives.

Pure data containers only.
No behavior beyond trivial derived properties, no queues, no timing logic.
"""

from __future__ import annotations
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class AudioFrame:
    """
    One fixed-size block of captured microphone audio.

    sequence_num:
        Monotonic per capture session, starting at 1.
        Used for ordering checks and debugging only.

    samples:
        float32 mono samples, nominally in [-1.0, 1.0].
        Length equals constants.CAPTURE_FRAME_SAMPLES.

    ts_ms:
        Wall-clock timestamp (milliseconds) when the frame was completed.
        Used for observability only (not control logic).
    """
    sequence_num: int
    samples: np.ndarray
    ts_ms: int


@dataclass(frozen=True)
class WireChunk:
    """
    Transport unit exchanged with the remote service.

    data:
        base64 text of PCM16 signed little-endian samples.

    mime_type:
        Format descriptor, e.g. "audio/pcm;rate=16000".
    """
    data: str
    mime_type: str

    def to_json(self) -> dict[str, str]:
        return {"mimeType": self.mime_type, "data": self.data}


@dataclass(frozen=True)
class PlayableBuffer:
    """
    Decoded audio ready for an output device.

    channels:
        Planar float32 array shaped (channel_count, frame_count).
    """
    channels: np.ndarray
    sample_rate: int

    @property
    def channel_count(self) -> int:
        return int(self.channels.shape[0])

    @property
    def frame_count(self) -> int:
        return int(self.channels.shape[1])

    @property
    def duration_s(self) -> float:
        return self.frame_count / self.sample_rate
