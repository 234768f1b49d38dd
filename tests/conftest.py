"""
Pytest fixtures for interviewscribe tests.

FakeEngine replays scripted recognition sessions; FakePlayback exposes a
settable clock and a manual end, so capture-loop behavior can be driven
without real audio timing or an ASR model.
"""
from __future__ import annotations

import asyncio
import io
import wave
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
import pytest

from interviewscribe.asr.base import (
    EngineStarted,
    RecognitionEngine,
    RecognitionEngineError,
    RecognitionError,
)
from interviewscribe.config import Settings
from interviewscribe.models import DecodedAudio


@dataclass(frozen=True)
class SetClock:
    """Script step: move the fake playback clock (scaled seconds)."""

    value: float


@dataclass(frozen=True)
class EndPlayback:
    """Script step: exhaust the fake playback."""


class FakeStream:
    def __init__(self, playback: "FakePlayback") -> None:
        self.playback = playback


class FakePlayback:
    """Stand-in for PlaybackGraph with a manually driven clock."""

    def __init__(self, audio: DecodedAudio, settings: Settings | None = None, on_ended=None) -> None:
        self.rate = settings.PLAYBACK_RATE if settings else 1.5
        self.duration = audio.duration
        self.current_time = 0.0
        self.on_ended = on_ended
        self.started = False
        self.close_calls = 0
        self.stream = FakeStream(self)

    def start(self) -> None:
        self.started = True

    def end(self) -> None:
        self.current_time = self.duration * self.rate
        if self.on_ended is not None:
            self.on_ended()

    def close(self) -> None:
        self.close_calls += 1


class FakeEngine(RecognitionEngine):
    """
    Each start() plays the next scripted session (a list of engine events and
    SetClock/EndPlayback steps). Once the scripts run out, idle is played.
    A RecognitionError and the step after it are delivered back to back.
    """

    def __init__(self, sessions: Sequence[Sequence[Any]] = (), idle: Sequence[Any] = ()) -> None:
        super().__init__()
        self.sessions = [list(s) for s in sessions]
        self.idle = list(idle)
        self.start_calls = 0
        self.stop_calls = 0
        self._task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, stream) -> None:
        if self.active:
            raise RecognitionEngineError("recognition already started")
        self.start_calls += 1
        script = self.sessions.pop(0) if self.sessions else list(self.idle)
        self._task = asyncio.create_task(self._play(stream, script))
        self.emit(EngineStarted())

    async def _play(self, stream, script: list[Any]) -> None:
        await asyncio.sleep(0.001)
        for index, step in enumerate(script):
            if isinstance(step, SetClock):
                stream.playback.current_time = step.value
                continue
            if isinstance(step, EndPlayback):
                stream.playback.end()
            else:
                self.emit(step)
            if isinstance(step, RecognitionError) or index == len(script) - 1:
                continue
            await asyncio.sleep(0.001)

    async def stop(self) -> None:
        self.stop_calls += 1
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


@pytest.fixture
def fast_settings() -> Settings:
    """Default behavior with short timers and small retry caps."""
    return Settings(
        CAPTURE_START_DELAY_SEC=0.0,
        RESTART_NO_SPEECH_SEC=0.005,
        RESTART_ABORTED_SEC=0.005,
        RESTART_NETWORK_SEC=0.005,
        RESTART_END_SEC=0.005,
        PLAYBACK_GRACE_SEC=0.05,
        PROGRESS_INTERVAL_SEC=0.01,
        NO_SPEECH_MAX=3,
        NETWORK_ERROR_MAX=3,
        STORE_BACKEND="memory",
    )


@pytest.fixture
def ten_second_audio() -> DecodedAudio:
    """Ten seconds of silence at 16 kHz."""
    return DecodedAudio(sample_rate=16000, samples=np.zeros(160000, dtype=np.float32), duration=10.0)


@pytest.fixture
def wav_bytes() -> bytes:
    """One second of a 440 Hz tone as a 16-bit mono WAV file."""
    t = np.arange(16000) / 16000
    pcm = (np.sin(2 * np.pi * 440 * t) * 0.5 * 32767).astype(np.int16)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(16000)
        w.writeframes(pcm.tobytes())
    return buf.getvalue()
