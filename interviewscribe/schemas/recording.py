"""Schemas for the recordings API and WebSocket messages."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from interviewscribe.models import RecordingStatus, Segment


class SegmentOut(BaseModel):
    """One transcript segment in API responses."""

    text: str
    start_time: float = Field(..., description="Start time in seconds")
    end_time: float = Field(..., description="End time in seconds")
    speaker_label: str = Field(..., description="interviewer | interviewee | speaker_1 (placeholder)")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Recognition confidence 0–1")

    @classmethod
    def from_segment(cls, segment: Segment) -> "SegmentOut":
        return cls(
            text=segment.text,
            start_time=segment.start_time,
            end_time=segment.end_time,
            speaker_label=segment.speaker_label,
            confidence=segment.confidence,
        )


class RecordingResponse(BaseModel):
    """Recording status and, once completed, its segments."""

    recording_id: str
    filename: str
    status: RecordingStatus
    error: str | None = None
    segments: list[SegmentOut] = Field(default_factory=list)


class ProgressMessage(BaseModel):
    type: Literal["progress"] = "progress"
    progress: float


class SegmentMessage(BaseModel):
    type: Literal["segment"] = "segment"
    segment: SegmentOut


class FinalMessage(BaseModel):
    type: Literal["final"] = "final"
    recording_id: str
    segments: list[SegmentOut]


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    message: str
