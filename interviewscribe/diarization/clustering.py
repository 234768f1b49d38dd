"""Two-cluster k-means over min-max normalized (energy, pitch, zcr) features."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from interviewscribe.models import FeatureVector

MAX_ITERATIONS = 10

ClusterAssignment = tuple[set[int], set[int]]


def _normalize(values: np.ndarray) -> np.ndarray:
    """Rescale to [0, 1] with the batch's own min/max; constant columns map to 0."""
    low = values.min()
    span = values.max() - low
    if span == 0:
        return np.zeros_like(values)
    return (values - low) / span


def feature_matrix(vectors: Sequence[FeatureVector]) -> np.ndarray:
    """n x 3 matrix of normalized energy, pitch, zcr."""
    raw = np.array([[v.energy, v.pitch, v.zcr] for v in vectors], dtype=np.float64)
    return np.column_stack([_normalize(raw[:, col]) for col in range(raw.shape[1])])


def two_means(vectors: Sequence[FeatureVector]) -> ClusterAssignment:
    """
    Partition vector indices into two clusters (A, B).

    Seeds are fixed (A = index 0, B = index n // 2), so identical input always
    yields the same partition. An index joins B only when strictly nearer to B.
    A round that would empty either cluster stops iteration and the previous
    partition is kept; before the first round that is the seed partition.
    """
    n = len(vectors)
    if n == 0:
        return set(), set()
    if n < 2:
        return {0}, set()

    points = feature_matrix(vectors)
    mid = n // 2
    centroid_a = points[0].copy()
    centroid_b = points[mid].copy()

    in_b = np.zeros(n, dtype=bool)
    in_b[mid] = True

    for _ in range(MAX_ITERATIONS):
        dist_a = np.linalg.norm(points - centroid_a, axis=1)
        dist_b = np.linalg.norm(points - centroid_b, axis=1)
        assignment = dist_b < dist_a
        if assignment.all() or not assignment.any():
            break
        in_b = assignment
        centroid_a = points[~in_b].mean(axis=0)
        centroid_b = points[in_b].mean(axis=0)

    indices = np.arange(n)
    return set(indices[~in_b].tolist()), set(indices[in_b].tolist())
