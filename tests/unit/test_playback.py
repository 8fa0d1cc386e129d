# pylint: disable=missing-module-docstring,missing-function-docstring

import numpy as np
import pytest

from audio.frames import PlayableBuffer, WireChunk
from audio.pcm import MalformedAudioError
from audio.playback import AudioOutputUnavailable, PlaybackPipeline, conform
from audio.queues import PlaybackQueue

from fakes import StreamRecorder, pcm_chunk


# ---------------------------------------------------------------------
# PlaybackQueue
# ---------------------------------------------------------------------

def test_queue_depth_is_measured_in_seconds() -> None:
    q = PlaybackQueue(sample_rate=100, channels=1, max_depth_s=1.0)

    q.enqueue(np.zeros(50, dtype=np.float32))
    q.enqueue(np.zeros(25, dtype=np.float32))

    assert len(q) == 2
    assert q.depth_seconds() == pytest.approx(0.75)


def test_queue_overflow_drops_newest() -> None:
    q = PlaybackQueue(sample_rate=100, channels=1, max_depth_s=1.0)

    assert q.enqueue(np.full(80, 0.1, dtype=np.float32))
    assert not q.enqueue(np.full(30, 0.2, dtype=np.float32))

    assert q.drops.overflow == 1
    assert q.depth_seconds() == pytest.approx(0.8)


def test_queue_reads_fifo_across_blocks_and_pads_silence() -> None:
    q = PlaybackQueue(sample_rate=100, channels=1, max_depth_s=1.0)
    q.enqueue(np.array([1, 2, 3], dtype=np.float32))
    q.enqueue(np.array([4, 5], dtype=np.float32))

    out = np.full((4, 1), -1.0, dtype=np.float32)
    assert q.read_into(out) == 4
    assert out[:, 0].tolist() == [1, 2, 3, 4]

    out = np.full((3, 1), -1.0, dtype=np.float32)
    assert q.read_into(out) == 1
    assert out[:, 0].tolist() == [5, 0, 0]
    assert q.is_empty()


def test_queue_rejects_wrong_channel_count() -> None:
    q = PlaybackQueue(sample_rate=100, channels=1, max_depth_s=1.0)

    with pytest.raises(ValueError):
        q.enqueue(np.zeros((4, 2), dtype=np.float32))


def test_queue_clear_is_not_a_drop() -> None:
    q = PlaybackQueue(sample_rate=100, channels=1, max_depth_s=1.0)
    q.enqueue(np.zeros(10, dtype=np.float32))

    q.clear()

    assert q.is_empty()
    assert q.snapshot() == {"blocks": 0, "depth_s": 0.0, "dropped_overflow": 0}


# ---------------------------------------------------------------------
# conform
# ---------------------------------------------------------------------

def test_conform_downmixes_and_resamples() -> None:
    buffer = PlayableBuffer(
        channels=np.array([[0.2, 0.4, 0.6, 0.8], [0.0, 0.0, 0.0, 0.0]], dtype=np.float32),
        sample_rate=12_000,
    )

    out = conform(buffer, sample_rate=24_000, channels=1)

    assert out.shape == (8, 1)
    assert out.dtype == np.float32
    assert out[0, 0] == pytest.approx(0.1)
    assert out[-1, 0] == pytest.approx(0.4)


def test_conform_passes_matching_format_through() -> None:
    buffer = PlayableBuffer(channels=np.array([[0.5, -0.5]], dtype=np.float32), sample_rate=24_000)

    out = conform(buffer, sample_rate=24_000, channels=1)

    assert out[:, 0].tolist() == [0.5, -0.5]


# ---------------------------------------------------------------------
# PlaybackPipeline
# ---------------------------------------------------------------------

def test_open_starts_output_stream() -> None:
    recorder = StreamRecorder()
    pipeline = PlaybackPipeline(stream_factory=recorder)

    pipeline.open()

    stream = recorder.streams[0]
    assert stream.kwargs["samplerate"] == 24_000
    assert stream.kwargs["channels"] == 1
    assert stream.started == 1
    assert pipeline.is_open


def test_open_failure_raises_output_unavailable() -> None:
    pipeline = PlaybackPipeline(stream_factory=StreamRecorder(fail_on_start=True))

    with pytest.raises(AudioOutputUnavailable):
        pipeline.open()


def test_chunks_play_back_to_back_in_receive_order() -> None:
    recorder = StreamRecorder()
    pipeline = PlaybackPipeline(stream_factory=recorder)
    pipeline.open()

    assert pipeline.play(pcm_chunk([0.5, 0.25]))
    assert pipeline.play(pcm_chunk([-0.5]))

    out = np.zeros((4, 1), dtype=np.float32)
    recorder.streams[0].callback(out, 4, None, None)

    assert out[:, 0].tolist() == [0.5, 0.25, -0.5, 0.0]
    assert pipeline.chunks_played == 2


def test_malformed_chunk_raises_and_leaves_queue_untouched() -> None:
    pipeline = PlaybackPipeline(stream_factory=StreamRecorder())
    pipeline.open()

    with pytest.raises(MalformedAudioError):
        pipeline.play(WireChunk(data="AQID", mime_type="audio/pcm;rate=24000"))

    assert pipeline.queue.is_empty()
    assert pipeline.play(pcm_chunk([0.1]))


def test_play_after_close_is_refused() -> None:
    recorder = StreamRecorder()
    pipeline = PlaybackPipeline(stream_factory=recorder)
    pipeline.open()
    pipeline.play(pcm_chunk([0.1] * 10))

    pipeline.close()
    pipeline.close()

    assert not pipeline.play(pcm_chunk([0.1]))
    assert pipeline.queue.is_empty()
    assert recorder.streams[0].stopped == 1
    assert recorder.streams[0].closed == 1
