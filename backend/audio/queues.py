"""
Bounded playback queue with canonical depth measurement.

Requirements:
- Depth measured in seconds (not chunk count)
- Explicit drop behavior: overflow drops the NEWEST block
- FIFO: blocks are read back in the order they were enqueued
- Readable from the PortAudio output thread (internal lock)
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque

import numpy as np


@dataclass
class DropCounters:
    """
    Drop counters for observability.
    """
    overflow: int = 0


class PlaybackQueue:
    """
    Bounded FIFO of interleaved sample blocks shaped (frames, channels).

    Writers: event-loop thread (enqueue).
    Reader: output device callback (read_into).
    """

    def __init__(self, *, sample_rate: int, channels: int, max_depth_s: float) -> None:
        if max_depth_s <= 0:
            raise ValueError("max_depth_s must be > 0")
        if sample_rate <= 0:
            raise ValueError("sample_rate must be > 0")
        if channels <= 0:
            raise ValueError("channels must be > 0")

        self._sample_rate = sample_rate
        self._channels = channels
        self._max_frames = int(max_depth_s * sample_rate)
        self._blocks: Deque[np.ndarray] = deque()
        self._queued_frames = 0
        # Offset into the head block already consumed by the reader
        self._head_offset = 0
        self._lock = threading.Lock()
        self.drops: DropCounters = DropCounters()

    # -------------------------
    # Core queue operations
    # -------------------------

    def enqueue(self, block: np.ndarray) -> bool:
        """
        Append one block.

        Returns:
            True if enqueued
            False if dropped (would exceed max depth)
        """
        block = np.asarray(block, dtype=np.float32)
        if block.ndim == 1:
            block = block.reshape(-1, 1)
        if block.shape[1] != self._channels:
            raise ValueError(
                f"block has {block.shape[1]} channel(s), queue expects {self._channels}"
            )
        if block.shape[0] == 0:
            return True

        with self._lock:
            if self._queued_frames + block.shape[0] > self._max_frames:
                self.drops.overflow += 1
                return False
            self._blocks.append(block)
            self._queued_frames += block.shape[0]
            return True

    def read_into(self, out: np.ndarray) -> int:
        """
        Fill out (frames, channels) from the head of the queue.

        Unfilled frames are zeroed (silence). Returns frames written.
        """
        wanted = out.shape[0]
        written = 0
        with self._lock:
            while written < wanted and self._blocks:
                head = self._blocks[0]
                available = head.shape[0] - self._head_offset
                take = min(available, wanted - written)
                out[written: written + take] = head[self._head_offset: self._head_offset + take]
                written += take
                self._head_offset += take
                self._queued_frames -= take
                if self._head_offset >= head.shape[0]:
                    self._blocks.popleft()
                    self._head_offset = 0
        if written < wanted:
            out[written:] = 0.0
        return written

    def clear(self) -> None:
        """
        Drop all queued audio without counting it as drops.

        Used during teardown.
        """
        with self._lock:
            self._blocks.clear()
            self._queued_frames = 0
            self._head_offset = 0

    # -------------------------
    # Introspection helpers
    # -------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._blocks)

    def is_empty(self) -> bool:
        """Check if the queue is empty."""
        with self._lock:
            return not self._blocks

    def depth_seconds(self) -> float:
        """
        Canonical queue depth in seconds.

        depth_s = queued_frames / sample_rate
        """
        with self._lock:
            return self._queued_frames / self._sample_rate

    def snapshot(self) -> dict[str, float | int]:
        """
        Lightweight snapshot for logging.
        """
        with self._lock:
            return {
                "blocks": len(self._blocks),
                "depth_s": self._queued_frames / self._sample_rate,
                "dropped_overflow": self.drops.overflow,
            }
