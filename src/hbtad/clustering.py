"""
Deterministic centroid-based clustering of feature vectors.

Lloyd-style iteration with the self-normalizing distance:
1. Centroids start as copies of the first k vectors (no random seeding)
2. Assignment: every vector joins its nearest centroid, ties to lowest index
3. Update: centroids become the mean of their members; empty clusters keep
   their previous centroid
4. Stop when an assignment pass changes nothing, or at the iteration cap
"""

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np
from sklearn.base import BaseEstimator, ClusterMixin
from sklearn.utils.validation import check_array, check_is_fitted

from .config import DEFAULT_CLUSTERS, DEFAULT_MAX_ITERATIONS
from .distance import distances_to_centroids
from .exceptions import DimensionMismatchError, InsufficientDataError

logger = logging.getLogger(__name__)

# Distances this close (relative) count as a tie
DISTANCE_TIE_RTOL: float = 1e-9


class ClusterStatus(Enum):
    """Lifecycle of a clustering run."""
    INITIALIZED = "initialized"
    ASSIGNING = "assigning"
    UPDATING = "updating"
    CONVERGED = "converged"
    ITERATION_CAP_REACHED = "iteration_cap_reached"


_TRANSITIONS = {
    ClusterStatus.INITIALIZED: {ClusterStatus.ASSIGNING},
    ClusterStatus.ASSIGNING: {
        ClusterStatus.UPDATING,
        ClusterStatus.CONVERGED,
        ClusterStatus.ITERATION_CAP_REACHED,
    },
    ClusterStatus.UPDATING: {
        ClusterStatus.ASSIGNING,
        ClusterStatus.ITERATION_CAP_REACHED,
    },
    ClusterStatus.CONVERGED: set(),
    ClusterStatus.ITERATION_CAP_REACHED: set(),
}

TERMINAL_STATUSES = frozenset({ClusterStatus.CONVERGED, ClusterStatus.ITERATION_CAP_REACHED})


@dataclass(eq=False)
class ClusterState:
    """Centroids, assignments and progress of a clustering run."""
    centroids: np.ndarray  # (k, d)
    assignments: np.ndarray  # (n,) centroid index per vector, -1 before first pass
    iterations: int = 0
    status: ClusterStatus = ClusterStatus.INITIALIZED

    @property
    def k(self) -> int:
        return self.centroids.shape[0]

    @property
    def dimension(self) -> int:
        return self.centroids.shape[1]

    @property
    def converged(self) -> bool:
        return self.status is ClusterStatus.CONVERGED

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def members(self, cluster_index: int) -> np.ndarray:
        """Indices of the vectors assigned to ``cluster_index``."""
        return np.flatnonzero(self.assignments == cluster_index)

    def advance(self, status: ClusterStatus):
        if status not in _TRANSITIONS[self.status]:
            raise RuntimeError(f"Illegal cluster state transition: {self.status.value} -> {status.value}")
        self.status = status
        if self.terminal:
            self.centroids.setflags(write=False)
            self.assignments.setflags(write=False)


def nearest_centroid(distances: np.ndarray) -> int:
    """Index of the minimal distance; near-equal distances go to the lowest index."""
    best = distances.min()
    candidates = np.isclose(distances, best, rtol=DISTANCE_TIE_RTOL, atol=0.0)
    return int(np.argmax(candidates))


def _as_matrix(vectors) -> np.ndarray:
    """Stack vectors into an (n, d) float matrix, rejecting ragged input."""
    if isinstance(vectors, np.ndarray) and vectors.ndim == 2:
        return vectors.astype(np.float64)
    rows = [np.asarray(v, dtype=np.float64).ravel() for v in vectors]
    if not rows:
        return np.empty((0, 0), dtype=np.float64)
    expected = rows[0].shape[0]
    for row in rows[1:]:
        if row.shape[0] != expected:
            raise DimensionMismatchError(expected, row.shape[0])
    return np.vstack(rows)


def _assign(data: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    return np.array(
        [nearest_centroid(distances_to_centroids(row, centroids)) for row in data],
        dtype=np.intp,
    )


def _update(data: np.ndarray, assignments: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    updated = centroids.copy()
    for index in range(centroids.shape[0]):
        members = data[assignments == index]
        if len(members) == 0:
            logger.debug(f"Cluster {index} is empty; keeping previous centroid")
            continue
        updated[index] = members.mean(axis=0)
    return updated


def cluster(vectors, k: int, max_iterations: int) -> ClusterState:
    """
    Partition feature vectors into k clusters.

    Args:
        vectors: Sequence of equal-length vectors (or an (n, d) array)
        k: Number of clusters
        max_iterations: Maximum number of assignment passes

    Returns:
        ClusterState in CONVERGED or ITERATION_CAP_REACHED status

    Raises:
        InsufficientDataError: If fewer than k vectors are supplied
        DimensionMismatchError: If the vectors have different lengths
        ValueError: If k or max_iterations is below 1
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    if max_iterations < 1:
        raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")

    data = _as_matrix(vectors)
    if data.shape[0] < k:
        raise InsufficientDataError(data.shape[0], k)

    state = ClusterState(
        centroids=data[:k].copy(),
        assignments=np.full(data.shape[0], -1, dtype=np.intp),
    )

    while True:
        state.advance(ClusterStatus.ASSIGNING)
        assignments = _assign(data, state.centroids)
        state.iterations += 1

        if np.array_equal(assignments, state.assignments):
            state.advance(ClusterStatus.CONVERGED)
            break

        state.assignments = assignments
        state.advance(ClusterStatus.UPDATING)
        state.centroids = _update(data, assignments, state.centroids)

        if state.iterations >= max_iterations:
            state.advance(ClusterStatus.ITERATION_CAP_REACHED)
            break

    if state.converged:
        logger.info(f"Clustering converged after {state.iterations} iterations (k={k}, n={data.shape[0]})")
    else:
        logger.warning(f"Clustering stopped at iteration cap {max_iterations} without converging (k={k})")
    return state


class CentroidClusterer(ClusterMixin, BaseEstimator):
    """
    scikit-learn style estimator around cluster().

    Attributes (after fit):
        cluster_centers_: (k, d) centroid matrix
        labels_: cluster index per training vector
        n_iter_: number of assignment passes
        converged_: whether the run converged before the cap
        state_: the full ClusterState
    """

    def __init__(self, n_clusters: int = DEFAULT_CLUSTERS, max_iter: int = DEFAULT_MAX_ITERATIONS):
        self.n_clusters = n_clusters
        self.max_iter = max_iter

    def fit(self, X, y=None):
        X = check_array(X, dtype=np.float64)
        self.state_ = cluster(X, self.n_clusters, self.max_iter)
        self.cluster_centers_ = self.state_.centroids
        self.labels_ = self.state_.assignments
        self.n_iter_ = self.state_.iterations
        self.converged_ = self.state_.converged
        self.n_features_in_ = X.shape[1]
        return self

    def predict(self, X) -> np.ndarray:
        check_is_fitted(self, 'cluster_centers_')
        X = check_array(X, dtype=np.float64)
        if X.shape[1] != self.n_features_in_:
            raise DimensionMismatchError(self.n_features_in_, X.shape[1])
        return _assign(X, self.cluster_centers_)
