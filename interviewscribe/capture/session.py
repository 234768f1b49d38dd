"""
CaptureSession: all mutable state of one transcription call.

Created when CaptureLoop.capture() starts, passed through every handler,
and dropped when the call returns or raises. Nothing here outlives the call.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from interviewscribe.models import DecodedAudio, Segment

ProgressCallback = Callable[[float], None]
SegmentCallback = Callable[[Segment], None]


@dataclass
class CaptureResult:
    """What one capture produced: the decoded recording and its segments in order."""

    audio: DecodedAudio
    segments: list[Segment]


class CaptureState(str, Enum):
    IDLE = "idle"
    PRIMING = "priming"
    LISTENING = "listening"
    RESTARTING = "restarting"
    FINISHED = "finished"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (CaptureState.FINISHED, CaptureState.FAILED)


@dataclass
class CaptureSession:
    on_progress: Optional[ProgressCallback] = None
    on_segment: Optional[SegmentCallback] = None

    state: CaptureState = CaptureState.IDLE
    segments: list[Segment] = field(default_factory=list)
    cursor: float = 0.0  # original-audio seconds where the next segment starts
    pending_text: str = ""  # recognized before the clock left 0; opens the first segment
    no_speech_count: int = 0
    network_error_count: int = 0
    should_continue: bool = True
    engine_active: bool = False
    halt_handled: bool = False  # error already decided this halt; absorb the following end
    last_progress: float = 0.0
    completed_reported: bool = False
    error: Optional[BaseException] = None

    # Timers and tasks owned by the session
    start_handle: Optional[asyncio.TimerHandle] = None
    restart_handle: Optional[asyncio.TimerHandle] = None
    grace_handle: Optional[asyncio.TimerHandle] = None
    sampler_task: Optional[asyncio.Task] = None

    def report_progress(self, percent: float) -> None:
        self.last_progress = percent
        if self.on_progress is not None:
            self.on_progress(percent)

    def cancel_restart(self) -> None:
        if self.restart_handle is not None:
            self.restart_handle.cancel()
            self.restart_handle = None

    def cancel_timers(self) -> None:
        for handle in (self.start_handle, self.restart_handle, self.grace_handle):
            if handle is not None:
                handle.cancel()
        self.start_handle = None
        self.restart_handle = None
        self.grace_handle = None
