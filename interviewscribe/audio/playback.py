"""
PlaybackGraph: re-renders a decoded recording faster than real time and feeds
it, frame by frame, into a synthetic input stream for the recognizer.

Graph: decoded samples -> rate change (PLAYBACK_RATE, pitch shifts like a
sped-up tape) -> gain (PLAYBACK_GAIN, clipped) -> PCM16 frames -> InputStream.

Clock: current_time is the playback clock in scaled seconds. It advances by
PLAYBACK_RATE for every second of original audio consumed, so
current_time / PLAYBACK_RATE is the position in the original recording and the
clock reads duration * PLAYBACK_RATE when playback is exhausted.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

import numpy as np

from interviewscribe.audio.decoder import float32_to_pcm_bytes
from interviewscribe.config import Settings, get_settings
from interviewscribe.models import DecodedAudio

logger = logging.getLogger(__name__)


def render_playback(audio: DecodedAudio, rate: float, gain: float, target_rate: int) -> np.ndarray:
    """Resample to target_rate at `rate`x speed and apply gain. Returns float32 in [-1, 1]."""
    if len(audio.samples) == 0:
        return np.zeros(0, dtype=np.float32)
    out_len = max(1, int(round(audio.duration / rate * target_rate)))
    # Source sample position consumed by each rendered sample
    positions = np.arange(out_len, dtype=np.float64) * rate * audio.sample_rate / target_rate
    source_index = np.arange(len(audio.samples), dtype=np.float64)
    rendered = np.interp(positions, source_index, audio.samples.astype(np.float64))
    return np.clip(rendered * gain, -1.0, 1.0).astype(np.float32)


class InputStream:
    """
    Closable frame stream consumed by a recognition engine. read() returns None
    once the stream is closed and drained.
    """

    def __init__(self, sample_rate: int, frame_bytes: int) -> None:
        self.sample_rate = sample_rate
        self.frame_bytes = frame_bytes
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        self._closed = False

    def put(self, frame: bytes) -> None:
        if self._closed:
            return
        self._queue.put_nowait(frame)

    async def read(self) -> bytes | None:
        """Next frame, or None at end of stream."""
        if self._closed and self._queue.empty():
            return None
        frame = await self._queue.get()
        if frame is None:
            # Keep the sentinel for other readers
            self._queue.put_nowait(None)
        return frame

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    @property
    def closed(self) -> bool:
        return self._closed


class PlaybackGraph:
    """
    One recording = one graph. start() begins real-time delivery of frames;
    on_ended fires once when the rendered buffer is exhausted. close() is idempotent
    and releases the delivery task and the input stream.
    """

    def __init__(
        self,
        audio: DecodedAudio,
        settings: Settings | None = None,
        on_ended: Callable[[], None] | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._rate = settings.PLAYBACK_RATE
        self._duration = audio.duration
        self._frame_sec = settings.FRAME_MS / 1000.0
        self._on_ended = on_ended
        rendered = render_playback(audio, self._rate, settings.PLAYBACK_GAIN, settings.SAMPLE_RATE)
        frame_samples = settings.FRAME_BYTES // settings.SAMPLE_WIDTH
        pcm = float32_to_pcm_bytes(rendered)
        frame_bytes = frame_samples * settings.SAMPLE_WIDTH
        self._frames = [pcm[i : i + frame_bytes] for i in range(0, len(pcm), frame_bytes)]
        self.stream = InputStream(settings.SAMPLE_RATE, frame_bytes)
        self._task: asyncio.Task | None = None
        self._started_at: float | None = None
        self._closed = False

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def duration(self) -> float:
        """Duration of the original recording in seconds."""
        return self._duration

    @property
    def current_time(self) -> float:
        """Playback clock in scaled seconds (see module docstring)."""
        if self._started_at is None:
            return 0.0
        elapsed = asyncio.get_running_loop().time() - self._started_at
        position = min(elapsed * self._rate, self._duration)
        return position * self._rate

    def start(self) -> None:
        if self._task is not None or self._closed:
            return
        loop = asyncio.get_running_loop()
        self._started_at = loop.time()
        self._task = asyncio.create_task(self._pump())

    async def _pump(self) -> None:
        """Deliver frames paced to the rendered timeline, then signal end of playback."""
        loop = asyncio.get_running_loop()
        for index, frame in enumerate(self._frames):
            due = self._started_at + index * self._frame_sec
            delay = due - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            self.stream.put(frame)
        remaining = self._started_at + len(self._frames) * self._frame_sec - loop.time()
        if remaining > 0:
            await asyncio.sleep(remaining)
        self.stream.close()
        logger.debug("Playback exhausted after %d frames", len(self._frames))
        if self._on_ended is not None:
            self._on_ended()

    def close(self) -> None:
        """Stop delivery and close the input stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.stream.close()
