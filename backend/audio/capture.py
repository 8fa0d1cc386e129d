"""
Microphone capture pipeline.

Responsibilities:
- Acquire the input device (16kHz mono float32) via sounddevice
- Re-chunk device blocks into fixed frames (audio/framing.py)
- Hand each completed frame to the owner on the event-loop thread

Threading model:
- PortAudio invokes _on_audio on its own thread.
- _on_audio only copies the block and schedules _deliver on the event loop
  with call_soon_threadsafe; all frame handling runs on the loop thread.
- close() flips _closed before stopping the stream, so a block already in
  flight is discarded by _deliver instead of reaching the owner.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import numpy as np

from audio.frames import AudioFrame
from audio.framing import FrameAssembler
from constants import (
    CAPTURE_CHANNELS,
    CAPTURE_FRAME_SAMPLES,
    CAPTURE_SAMPLE_RATE_HZ,
)
from observability.logger import log_event, now_ms

try:
    import sounddevice as sd
except (ImportError, OSError) as _sd_exc:  # PortAudio shared library missing
    sd = None  # type: ignore[assignment]
    _SD_IMPORT_ERROR: str | None = repr(_sd_exc)
else:
    _SD_IMPORT_ERROR = None


class PermissionDenied(Exception):
    """
    Raised when the microphone cannot be acquired.

    Covers refused access, missing devices and a missing PortAudio library.
    Fatal to session start; never retried.
    """


StreamFactory = Callable[..., Any]


def _default_input_stream(**kwargs: Any) -> Any:
    if sd is None:
        raise PermissionDenied(f"audio input unavailable: {_SD_IMPORT_ERROR}")
    return sd.InputStream(**kwargs)


class CapturePipeline:
    """
    Bridge a live input device to a stream of fixed-size AudioFrames.

    Lifecycle:
        open()   acquire the device (permission point)
        start()  begin delivering frames to on_frame
        close()  release the device; idempotent
    """

    def __init__(
        self,
        *,
        on_frame: Callable[[AudioFrame], None],
        loop: asyncio.AbstractEventLoop | None = None,
        device: int | str | None = None,
        sample_rate: int = CAPTURE_SAMPLE_RATE_HZ,
        frame_samples: int = CAPTURE_FRAME_SAMPLES,
        stream_factory: StreamFactory | None = None,
    ) -> None:
        self._on_frame = on_frame
        self._loop = loop
        self._device = device
        self._sample_rate = sample_rate
        self._assembler = FrameAssembler(frame_samples)
        self._stream_factory = stream_factory or _default_input_stream

        self._stream: Any = None
        self._started = False
        self._closed = False
        self._next_seq = 1
        self.overflow_count = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._stream is not None and not self._closed

    @property
    def is_running(self) -> bool:
        return self._started and not self._closed

    def open(self) -> None:
        """
        Acquire the input device without starting capture.

        Raises:
            PermissionDenied if the device cannot be opened.
            RuntimeError if the pipeline was already closed.
        """
        if self._closed:
            raise RuntimeError("capture pipeline already closed")
        if self._stream is not None:
            return

        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        try:
            self._stream = self._stream_factory(
                samplerate=self._sample_rate,
                channels=CAPTURE_CHANNELS,
                dtype="float32",
                blocksize=self._assembler.frame_samples,
                device=self._device,
                callback=self._on_audio,
            )
        except PermissionDenied:
            raise
        except Exception as e:  # pylint: disable=broad-exception-caught
            # sounddevice raises PortAudioError / ValueError for refused or missing devices
            raise PermissionDenied(f"microphone unavailable: {e}") from e

        log_event({
            "ts_ms": now_ms(),
            "event_type": "CAPTURE_OPENED",
            "sample_rate": self._sample_rate,
            "frame_samples": self._assembler.frame_samples,
            "device": self._device,
        })

    def start(self) -> None:
        """Start delivering frames. No-op if already running or closed."""
        if self._closed or self._started:
            return
        if self._stream is None:
            self.open()
        self._started = True
        self._stream.start()

    def close(self) -> None:
        """
        Release the input device and detach from the event loop.

        Safe to call any number of times.
        """
        if self._closed:
            return
        self._closed = True
        self._started = False

        stream = self._stream
        self._stream = None
        self._assembler.reset()

        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as e:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": now_ms(),
                    "level": "WARNING",
                    "event_type": "CAPTURE_CLOSE_FAILED",
                    "error": repr(e),
                })

        log_event({
            "ts_ms": now_ms(),
            "event_type": "CAPTURE_CLOSED",
            "frames_delivered": self._next_seq - 1,
            "overflows": self.overflow_count,
        })

    # ------------------------------------------------------------------
    # Device thread -> event loop
    # ------------------------------------------------------------------

    def _on_audio(self, indata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:  # pylint: disable=unused-argument
        """PortAudio callback. Runs on the audio thread; must not block."""
        if self._closed or self._loop is None:
            return
        if status:
            self.overflow_count += 1
        block = np.array(indata[:, 0] if indata.ndim > 1 else indata, dtype=np.float32)
        try:
            self._loop.call_soon_threadsafe(self._deliver, block)
        except RuntimeError:
            # Event loop already closed; nothing left to deliver to
            return

    def _deliver(self, block: np.ndarray) -> None:
        if self._closed or not self._started:
            return
        for samples in self._assembler.add(block):
            frame = AudioFrame(
                sequence_num=self._next_seq,
                samples=samples,
                ts_ms=now_ms(),
            )
            self._next_seq += 1
            self._on_frame(frame)
            if self._closed:
                # on_frame may have triggered teardown
                return
