"""
Nearest-centroid classification against a finished clustering run.
"""

from typing import List, NamedTuple

import numpy as np

from .clustering import ClusterState, nearest_centroid
from .distance import distances_to_centroids
from .exceptions import DimensionMismatchError


class Classification(NamedTuple):
    """Nearest cluster for a vector and the distance to its centroid."""
    cluster: int
    distance: float


def classify(state: ClusterState, vector) -> Classification:
    """
    Map a feature vector to its nearest centroid.

    Ties are broken exactly as in the clustering assignment step (lowest
    index wins). The state is only read.

    Raises:
        DimensionMismatchError: If the vector length differs from the centroids'
    """
    vector = np.asarray(vector, dtype=np.float64).ravel()
    if vector.shape[0] != state.dimension:
        raise DimensionMismatchError(state.dimension, vector.shape[0])
    distances = distances_to_centroids(vector, state.centroids)
    index = nearest_centroid(distances)
    return Classification(cluster=index, distance=float(distances[index]))


def classify_many(state: ClusterState, vectors) -> List[Classification]:
    return [classify(state, vector) for vector in vectors]
