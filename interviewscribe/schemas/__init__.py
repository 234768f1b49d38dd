"""Pydantic schemas for API request/response."""
from interviewscribe.schemas.recording import (
    ErrorMessage,
    FinalMessage,
    ProgressMessage,
    RecordingResponse,
    SegmentMessage,
    SegmentOut,
)

__all__ = [
    "ErrorMessage",
    "FinalMessage",
    "ProgressMessage",
    "RecordingResponse",
    "SegmentMessage",
    "SegmentOut",
]
