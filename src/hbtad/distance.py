"""
Self-normalizing Euclidean distance between feature vectors.

Each axis is scaled by the spread between the two values being compared
(sample standard deviation of the two-point sample), so axes with large
magnitudes do not dominate axes with small ones. Equal values contribute 0.
"""

import numpy as np

from .exceptions import DimensionMismatchError


def _as_vector(values) -> np.ndarray:
    vector = np.asarray(values, dtype=np.float64)
    if vector.ndim != 1:
        raise ValueError(f"Expected a 1-D vector, got shape {vector.shape}")
    return vector


def _contributions(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Per-dimension contributions; broadcasts over leading axes of ``b``.

    With two points the sample variance is (a - b)^2 / 2, so a differing
    axis contributes (a - b)^2 / ((a - b)^2 / 2) = 2 exactly. Using the
    closed form keeps subnormal and huge values from underflowing to 0
    or overflowing to nan.
    """
    return np.where(a != b, 2.0, 0.0)


def distance(a, b) -> float:
    """
    Distance between two vectors of equal length.

    Raises:
        DimensionMismatchError: If the vectors have different lengths
    """
    a = _as_vector(a)
    b = _as_vector(b)
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(a.shape[0], b.shape[0])
    return float(np.sqrt(_contributions(a, b).sum()))


def distances_to_centroids(vector, centroids) -> np.ndarray:
    """
    Distance from one vector to every row of a centroid matrix.

    Produces the same values as calling distance() per centroid.
    """
    vector = _as_vector(vector)
    centroids = np.asarray(centroids, dtype=np.float64)
    if centroids.ndim != 2:
        raise ValueError(f"Expected a 2-D centroid matrix, got shape {centroids.shape}")
    if centroids.shape[1] != vector.shape[0]:
        raise DimensionMismatchError(centroids.shape[1], vector.shape[0])
    return np.sqrt(_contributions(vector, centroids).sum(axis=1))
