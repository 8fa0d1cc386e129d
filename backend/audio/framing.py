"""
Fixed-size frame assembly for captured audio.

Purpose:
- Turn host-delivered sample blocks (whatever size PortAudio hands us) into
  fixed CAPTURE_FRAME_SAMPLES frames before encoding.

Invariants:
- float32 mono
- Every emitted frame has exactly frame_samples samples
- Samples are emitted in the order they were added; nothing is padded
- A partial trailing frame is held until more audio arrives, and dropped by
  reset()
"""

from __future__ import annotations

import numpy as np

from constants import CAPTURE_FRAME_SAMPLES


class FrameAssembler:
    """Rechunk mono float32 blocks into fixed-size frames without loss."""

    def __init__(self, frame_samples: int = CAPTURE_FRAME_SAMPLES) -> None:
        if frame_samples <= 0:
            raise ValueError("frame_samples must be > 0")
        self._frame_samples = frame_samples
        self._pending = np.empty(0, dtype=np.float32)

    @property
    def frame_samples(self) -> int:
        return self._frame_samples

    @property
    def pending_samples(self) -> int:
        return int(self._pending.shape[0])

    def add(self, block: np.ndarray) -> list[np.ndarray]:
        """
        Add one block of samples and return every frame it completes.

        Multi-channel blocks (frames, channels) keep channel 0 only.
        """
        block = np.asarray(block, dtype=np.float32)
        if block.ndim > 1:
            block = block[:, 0]

        # Fast path: host already delivers exact frames
        if self._pending.shape[0] == 0 and block.shape[0] == self._frame_samples:
            return [block.copy()]

        buf = np.concatenate((self._pending, block)) if self._pending.size else block
        whole = buf.shape[0] // self._frame_samples
        end = whole * self._frame_samples

        frames = [
            buf[offset: offset + self._frame_samples].copy()
            for offset in range(0, end, self._frame_samples)
        ]
        self._pending = buf[end:].copy()
        return frames

    def reset(self) -> None:
        """Discard any partial frame."""
        self._pending = np.empty(0, dtype=np.float32)
