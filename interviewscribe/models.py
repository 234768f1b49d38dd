"""
Segment structures shared by capture, diarization and persistence.

Each transcript segment includes:
- start_time, end_time (seconds, original-audio time)
- speaker_label: "interviewer" / "interviewee" after diarization, placeholder before
- text, confidence (0.0–1.0)

Limitations (diarization-only, single channel):
- Speaker labels come from a pitch heuristic over two clusters; they are
  cluster names, not verified identities.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

INTERVIEWER = "interviewer"
INTERVIEWEE = "interviewee"


class RecordingStatus(str, Enum):
    """Recording processing status."""

    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class Segment:
    """
    One transcribed span of speech.

    start_time, end_time: seconds in the original recording.
    speaker_label: Settings.PLACEHOLDER_LABEL until diarization sets INTERVIEWER / INTERVIEWEE.
    confidence: recognizer score, or Settings.DEFAULT_CONFIDENCE when it reports none.
    """

    text: str
    start_time: float
    end_time: float
    speaker_label: str
    confidence: float


@dataclass(frozen=True)
class FeatureVector:
    """Acoustic descriptors of one segment window."""

    energy: float
    pitch: float
    zcr: float


@dataclass
class DecodedAudio:
    """Decoded recording: first channel as float32 [-1, 1] at its native rate."""

    sample_rate: int
    samples: np.ndarray
    duration: float
