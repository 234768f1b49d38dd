"""
Two-speaker diarization over recognized segments.

- Features per segment window, two-means clustering, pitch-based naming:
  the cluster with the lower mean pitch is "interviewer", the other "interviewee".
- Short isolated flips (fewer than SMOOTHING_MAX_TOKENS words between two
  segments of the same speaker) are treated as mis-clustered interjections.

Limitations (MUST be kept in sync with product behavior):
- The pitch rule is a heuristic with no calibration; treat labels as cluster names.
- Exactly two speakers; more voices are folded into two clusters.
"""
from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Sequence

import numpy as np

from interviewscribe.diarization.clustering import two_means
from interviewscribe.diarization.features import extract_features
from interviewscribe.models import INTERVIEWEE, INTERVIEWER, FeatureVector, Segment

logger = logging.getLogger(__name__)

SMOOTHING_MAX_TOKENS = 3


def _mean_pitch(features: Sequence[FeatureVector], cluster: set[int]) -> float:
    """Mean pitch of a cluster; NaN for an empty cluster so it never compares lower."""
    if not cluster:
        return math.nan
    return sum(features[i].pitch for i in cluster) / len(cluster)


def _segment_window(samples: np.ndarray, sample_rate: int, segment: Segment) -> np.ndarray:
    start = int(math.floor(segment.start_time * sample_rate))
    end = int(math.floor(segment.end_time * sample_rate))
    return samples[start:end]


def assign_labels(features: Sequence[FeatureVector], cluster_a: set[int], cluster_b: set[int]) -> list[str]:
    """Name clusters by mean pitch: strictly lower mean -> interviewer."""
    pitch_a = _mean_pitch(features, cluster_a)
    pitch_b = _mean_pitch(features, cluster_b)
    interviewer = cluster_a if pitch_a < pitch_b else cluster_b
    return [INTERVIEWER if i in interviewer else INTERVIEWEE for i in range(len(features))]


def smooth_labels(segments: list[Segment]) -> list[Segment]:
    """
    Overwrite isolated single-segment flips with the surrounding label when the
    flipped segment is short. Runs left to right; first and last labels never change.
    """
    if len(segments) < 3:
        return segments
    for i in range(1, len(segments) - 1):
        prev = segments[i - 1].speaker_label
        curr = segments[i].speaker_label
        nxt = segments[i + 1].speaker_label
        if prev == nxt and curr != prev and len(segments[i].text.split()) < SMOOTHING_MAX_TOKENS:
            segments[i].speaker_label = prev
    return segments


def diarize(samples: np.ndarray, sample_rate: int, segments: Sequence[Segment]) -> list[Segment]:
    """
    Label each segment interviewer / interviewee. Returns new segments in the
    same order; only speaker_label differs. Empty input is returned unchanged.
    """
    if not segments:
        return list(segments)

    samples = np.asarray(samples, dtype=np.float32)
    features = [extract_features(_segment_window(samples, sample_rate, s), sample_rate) for s in segments]
    cluster_a, cluster_b = two_means(features)
    labels = assign_labels(features, cluster_a, cluster_b)
    labelled = [replace(segment, speaker_label=label) for segment, label in zip(segments, labels)]
    return smooth_labels(labelled)


def get_speaker_diarizer() -> "SpeakerDiarizer":
    return SpeakerDiarizer()


class SpeakerDiarizer:
    """Runs diarize() and logs the resulting speaker split."""

    def diarize(self, samples: np.ndarray, sample_rate: int, segments: Sequence[Segment]) -> list[Segment]:
        result = diarize(samples, sample_rate, segments)
        if result:
            interviewer = sum(1 for s in result if s.speaker_label == INTERVIEWER)
            logger.info(
                "Diarized %d segments: %d interviewer, %d interviewee",
                len(result),
                interviewer,
                len(result) - interviewer,
            )
        return result
