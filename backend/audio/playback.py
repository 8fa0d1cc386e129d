"""
Synthesized-audio playback pipeline.

Responsibilities:
- Decode inbound WireChunks (audio/pcm.py)
- Conform them to the output device format (rate, channel count)
- Queue them in receive order for the sounddevice output callback

The output callback is the only consumer, so playback starts are serialized
and chunks play back-to-back in the order play() was called.
"""

from __future__ import annotations

from typing import Any, Callable

import numpy as np

from audio.frames import PlayableBuffer, WireChunk
from audio.pcm import decode_chunk, parse_pcm_rate
from audio.queues import PlaybackQueue
from constants import (
    PLAYBACK_CHANNELS,
    PLAYBACK_QUEUE_MAX_S,
    PLAYBACK_SAMPLE_RATE_HZ,
)
from observability.logger import log_event, now_ms

try:
    import sounddevice as sd
except (ImportError, OSError) as _sd_exc:  # PortAudio shared library missing
    sd = None  # type: ignore[assignment]
    _SD_IMPORT_ERROR: str | None = repr(_sd_exc)
else:
    _SD_IMPORT_ERROR = None


StreamFactory = Callable[..., Any]


class AudioOutputUnavailable(Exception):
    """Raised when the output device cannot be opened."""


def _default_output_stream(**kwargs: Any) -> Any:
    if sd is None:
        raise AudioOutputUnavailable(f"audio output unavailable: {_SD_IMPORT_ERROR}")
    return sd.OutputStream(**kwargs)


def conform(buffer: PlayableBuffer, *, sample_rate: int, channels: int) -> np.ndarray:
    """
    Return buffer as interleaved (frames, channels) float32 at sample_rate.

    Channel mismatch: average to mono, then repeat across output channels.
    Rate mismatch: linear interpolation.
    """
    planar = buffer.channels
    if buffer.channel_count != channels:
        mono = planar.mean(axis=0, keepdims=True)
        planar = np.repeat(mono, channels, axis=0)

    if buffer.sample_rate != sample_rate and buffer.frame_count > 0:
        out_frames = max(1, int(round(buffer.frame_count * sample_rate / buffer.sample_rate)))
        src_t = np.arange(buffer.frame_count) / buffer.sample_rate
        dst_t = np.arange(out_frames) / sample_rate
        planar = np.vstack([np.interp(dst_t, src_t, ch) for ch in planar])

    return np.ascontiguousarray(planar.T, dtype=np.float32)


class PlaybackPipeline:
    """
    Owns one output stream and its playback queue.

    Lifecycle:
        open()   acquire and start the output device
        play()   decode + enqueue one chunk
        close()  stop the device and drop queued audio; idempotent
    """

    def __init__(
        self,
        *,
        sample_rate: int = PLAYBACK_SAMPLE_RATE_HZ,
        channels: int = PLAYBACK_CHANNELS,
        device: int | str | None = None,
        max_depth_s: float = PLAYBACK_QUEUE_MAX_S,
        stream_factory: StreamFactory | None = None,
    ) -> None:
        self._sample_rate = sample_rate
        self._channels = channels
        self._device = device
        self._stream_factory = stream_factory or _default_output_stream
        self.queue = PlaybackQueue(
            sample_rate=sample_rate,
            channels=channels,
            max_depth_s=max_depth_s,
        )

        self._stream: Any = None
        self._closed = False
        self.chunks_played = 0

    @property
    def is_open(self) -> bool:
        return self._stream is not None and not self._closed

    def open(self) -> None:
        """
        Acquire and start the output device.

        Raises:
            AudioOutputUnavailable if the device cannot be opened.
        """
        if self._closed:
            raise RuntimeError("playback pipeline already closed")
        if self._stream is not None:
            return

        try:
            stream = self._stream_factory(
                samplerate=self._sample_rate,
                channels=self._channels,
                dtype="float32",
                device=self._device,
                callback=self._on_output,
            )
            stream.start()
        except AudioOutputUnavailable:
            raise
        except Exception as e:  # pylint: disable=broad-exception-caught
            raise AudioOutputUnavailable(f"speaker unavailable: {e}") from e

        self._stream = stream
        log_event({
            "ts_ms": now_ms(),
            "event_type": "PLAYBACK_OPENED",
            "sample_rate": self._sample_rate,
            "channels": self._channels,
        })

    def play(self, chunk: WireChunk, *, channels: int = PLAYBACK_CHANNELS) -> bool:
        """
        Decode one chunk and schedule it after everything already queued.

        Returns:
            True if scheduled, False if the pipeline is closed or the queue
            is full.

        Raises:
            MalformedAudioError if the chunk cannot be decoded.
        """
        rate = parse_pcm_rate(chunk.mime_type, self._sample_rate)
        buffer = decode_chunk(chunk.data, sample_rate=rate, channels=channels)

        if self._closed:
            return False

        block = conform(buffer, sample_rate=self._sample_rate, channels=self._channels)
        if not self.queue.enqueue(block):
            log_event({
                "ts_ms": now_ms(),
                "level": "WARNING",
                "event_type": "PLAYBACK_OVERFLOW",
                "queue": self.queue.snapshot(),
            })
            return False

        self.chunks_played += 1
        return True

    def close(self) -> None:
        """Stop the output device and discard queued audio. Idempotent."""
        if self._closed:
            return
        self._closed = True

        stream = self._stream
        self._stream = None
        self.queue.clear()

        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as e:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": now_ms(),
                    "level": "WARNING",
                    "event_type": "PLAYBACK_CLOSE_FAILED",
                    "error": repr(e),
                })

        log_event({
            "ts_ms": now_ms(),
            "event_type": "PLAYBACK_CLOSED",
            "chunks_played": self.chunks_played,
            "dropped_overflow": self.queue.drops.overflow,
        })

    def _on_output(self, outdata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:  # pylint: disable=unused-argument
        """PortAudio output callback. Runs on the audio thread."""
        self.queue.read_into(outdata)
