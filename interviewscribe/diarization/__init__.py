"""
Speaker diarization for two-person interviews.

- No audio separation; single channel.
- Assigns "interviewer" / "interviewee" by clustering per-segment energy, pitch and
  zero-crossing rate, then naming clusters by mean pitch.

Limitations (see engine.py):
- Labels are a heuristic; no identity inference, no enrollment.
"""
from __future__ import annotations

from interviewscribe.diarization.clustering import two_means
from interviewscribe.diarization.engine import SpeakerDiarizer, diarize, get_speaker_diarizer, smooth_labels
from interviewscribe.diarization.features import extract_features

__all__ = [
    "SpeakerDiarizer",
    "diarize",
    "extract_features",
    "get_speaker_diarizer",
    "smooth_labels",
    "two_means",
]
