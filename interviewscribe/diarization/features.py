"""
Per-segment acoustic descriptors for unsupervised speaker separation.

- energy: RMS amplitude of the window.
- zcr: fraction of adjacent samples whose sign class (< 0 vs >= 0) differs.
- pitch: coarse autocorrelation estimate (mean absolute difference over lags),
  limited to the first PITCH_WINDOW samples and lags [MIN_PITCH_LAG, n/2).

The pitch estimator is deliberately cheap; clustering only needs it to behave
the same way for every segment of a recording.
"""
from __future__ import annotations

import numpy as np

from interviewscribe.models import FeatureVector

PITCH_WINDOW = 2048
MIN_PITCH_LAG = 20


def rms_energy(samples: np.ndarray) -> float:
    """RMS of float samples; 0.0 for an empty window."""
    if len(samples) == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples.astype(np.float64) ** 2)))


def zero_crossing_rate(samples: np.ndarray) -> float:
    """Sign changes between adjacent samples divided by window length; 0.0 for an empty window."""
    n = len(samples)
    if n == 0:
        return 0.0
    negative = samples < 0
    crossings = int(np.count_nonzero(negative[1:] != negative[:-1]))
    return crossings / n


def estimate_pitch(samples: np.ndarray, sample_rate: int) -> float:
    """
    Period estimate from the lag with the best normalized mean-absolute-difference score.
    Returns sample_rate when no lag scores above zero (including windows too short to search).
    """
    buffer = samples[:PITCH_WINDOW].astype(np.float64)
    n = len(buffer)
    best_score = 0.0
    best_offset = 0
    # offset < n / 2, same bound for odd and even lengths
    for offset in range(MIN_PITCH_LAG, (n + 1) // 2):
        diff = np.abs(buffer[: n - offset] - buffer[offset:]).sum()
        score = 1.0 - diff / (n - offset)
        if score > best_score:
            best_score = score
            best_offset = offset
    return sample_rate / (best_offset or 1)


def extract_features(samples: np.ndarray, sample_rate: int) -> FeatureVector:
    """Energy, pitch and zero-crossing rate of one segment window."""
    samples = np.asarray(samples, dtype=np.float32)
    return FeatureVector(
        energy=rms_energy(samples),
        pitch=estimate_pitch(samples, sample_rate),
        zcr=zero_crossing_rate(samples),
    )
