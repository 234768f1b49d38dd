"""
Messages the capture loop consumes from its queue.

Engine events (EngineStarted, RecognitionResult, RecognitionError, EngineEnded)
come from the recognition engine; the rest are posted by timers, the playback
graph and stop().
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from interviewscribe.asr.base import EngineEvent


@dataclass(frozen=True)
class BeginCapture:
    """Start delay elapsed: start playback and the first recognition session."""


@dataclass(frozen=True)
class RestartDue:
    """Restart timer fired."""


@dataclass(frozen=True)
class EngineStartFailed:
    """engine.start() raised; the session never began."""

    reason: str


@dataclass(frozen=True)
class PlaybackEnded:
    """Synthetic source exhausted its buffer."""


@dataclass(frozen=True)
class GraceExpired:
    """Grace period after playback end is over."""


@dataclass(frozen=True)
class ProgressTick:
    """Periodic progress sample."""


@dataclass(frozen=True)
class StopRequested:
    """External stop()."""


LoopMessage = Union[
    EngineEvent,
    BeginCapture,
    RestartDue,
    EngineStartFailed,
    PlaybackEnded,
    GraceExpired,
    ProgressTick,
    StopRequested,
]
