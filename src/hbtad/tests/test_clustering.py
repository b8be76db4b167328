"""
Unit tests for the clustering engine.
"""

import unittest
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

import numpy as np

from src.hbtad.clustering import (
    CentroidClusterer,
    ClusterState,
    ClusterStatus,
    DISTANCE_TIE_RTOL,
    cluster,
    nearest_centroid,
)
from src.hbtad.distance import distances_to_centroids
from src.hbtad.exceptions import DimensionMismatchError, InsufficientDataError

TWO_GROUPS = [[0, 0], [0, 1], [10, 10], [10, 11]]


class TestTwoGroupScenario(unittest.TestCase):
    """Four 2-D vectors forming two obvious groups."""

    def setUp(self):
        self.state = cluster(TWO_GROUPS, k=2, max_iterations=10)

    def test_converges(self):
        self.assertEqual(self.state.status, ClusterStatus.CONVERGED)
        self.assertTrue(self.state.converged)
        self.assertLessEqual(self.state.iterations, 10)

    def test_grouping(self):
        labels = self.state.assignments
        self.assertEqual(labels[0], labels[1])
        self.assertEqual(labels[2], labels[3])
        self.assertNotEqual(labels[0], labels[2])

    def test_centroids(self):
        labels = self.state.assignments
        np.testing.assert_allclose(self.state.centroids[labels[0]], [0.0, 0.5])
        np.testing.assert_allclose(self.state.centroids[labels[2]], [10.0, 10.5])

    def test_members(self):
        group = self.state.assignments[0]
        self.assertEqual(self.state.members(group).tolist(), [0, 1])

    def test_state_is_frozen(self):
        self.assertTrue(self.state.terminal)
        with self.assertRaises(ValueError):
            self.state.centroids[0, 0] = 99.0
        with self.assertRaises(ValueError):
            self.state.assignments[0] = 1


class TestClusterProperties(unittest.TestCase):
    """Test determinism and assignment optimality."""

    def setUp(self):
        rng = np.random.default_rng(11)
        self.vectors = np.vstack([
            rng.integers(0, 3, size=(6, 8)),
            rng.integers(20, 40, size=(6, 8)),
            rng.integers(0, 3, size=(6, 8)) * 50,
        ]).astype(float)

    def test_deterministic(self):
        first = cluster(self.vectors, k=3, max_iterations=50)
        second = cluster(self.vectors, k=3, max_iterations=50)
        np.testing.assert_array_equal(first.assignments, second.assignments)
        np.testing.assert_array_equal(first.centroids, second.centroids)
        self.assertEqual(first.iterations, second.iterations)
        self.assertEqual(first.status, second.status)

    def test_converged_assignment_is_nearest(self):
        state = cluster(self.vectors, k=3, max_iterations=100)
        self.assertTrue(state.converged)
        for vector, assigned in zip(self.vectors, state.assignments):
            distances = distances_to_centroids(vector, state.centroids)
            self.assertLessEqual(distances[assigned], distances.min() * (1 + DISTANCE_TIE_RTOL))

    def test_input_not_modified(self):
        original = self.vectors.copy()
        cluster(self.vectors, k=3, max_iterations=5)
        np.testing.assert_array_equal(self.vectors, original)


class TestDegenerateStates(unittest.TestCase):
    """Test empty clusters, caps and invalid input."""

    def test_insufficient_data(self):
        with self.assertRaises(InsufficientDataError) as ctx:
            cluster([[1, 2], [3, 4], [5, 6]], k=5, max_iterations=10)
        self.assertEqual(ctx.exception.n_vectors, 3)
        self.assertEqual(ctx.exception.n_clusters, 5)

    def test_no_vectors(self):
        with self.assertRaises(InsufficientDataError):
            cluster([], k=1, max_iterations=10)

    def test_ragged_vectors(self):
        with self.assertRaises(DimensionMismatchError):
            cluster([[1, 2], [3, 4, 5]], k=1, max_iterations=10)

    def test_invalid_parameters(self):
        with self.assertRaises(ValueError):
            cluster(TWO_GROUPS, k=0, max_iterations=10)
        with self.assertRaises(ValueError):
            cluster(TWO_GROUPS, k=2, max_iterations=0)

    def test_empty_cluster_keeps_centroid(self):
        # Duplicate initial centroids: every vector ties to index 0 on the first pass
        state = cluster([[0, 0], [0, 0], [5, 5]], k=2, max_iterations=1)
        self.assertEqual(state.status, ClusterStatus.ITERATION_CAP_REACHED)
        self.assertFalse(state.converged)
        self.assertEqual(state.assignments.tolist(), [0, 0, 0])
        np.testing.assert_array_equal(state.centroids[1], [0.0, 0.0])
        np.testing.assert_allclose(state.centroids[0], [5 / 3, 5 / 3])

    def test_empty_cluster_recovers(self):
        state = cluster([[0, 0], [0, 0], [5, 5]], k=2, max_iterations=10)
        self.assertTrue(state.converged)
        self.assertEqual(state.assignments.tolist(), [1, 1, 0])
        np.testing.assert_allclose(state.centroids, [[5.0, 5.0], [0.0, 0.0]])

    def test_k_equals_n(self):
        state = cluster([[0], [1], [2]], k=3, max_iterations=10)
        self.assertTrue(state.converged)
        self.assertEqual(state.assignments.tolist(), [0, 1, 2])
        self.assertEqual(state.iterations, 2)

    def test_single_cluster(self):
        state = cluster(TWO_GROUPS, k=1, max_iterations=10)
        self.assertEqual(state.assignments.tolist(), [0, 0, 0, 0])
        np.testing.assert_allclose(state.centroids[0], [5.0, 5.5])


class TestStateMachine(unittest.TestCase):
    """Test lifecycle transitions."""

    def make_state(self):
        return ClusterState(centroids=np.zeros((1, 2)), assignments=np.full(3, -1))

    def test_initial_status(self):
        state = self.make_state()
        self.assertEqual(state.status, ClusterStatus.INITIALIZED)
        self.assertFalse(state.terminal)

    def test_cannot_skip_assignment(self):
        with self.assertRaises(RuntimeError):
            self.make_state().advance(ClusterStatus.CONVERGED)

    def test_terminal_states_are_final(self):
        state = self.make_state()
        state.advance(ClusterStatus.ASSIGNING)
        state.advance(ClusterStatus.CONVERGED)
        with self.assertRaises(RuntimeError):
            state.advance(ClusterStatus.ASSIGNING)

    def test_update_cannot_converge_directly(self):
        state = self.make_state()
        state.advance(ClusterStatus.ASSIGNING)
        state.advance(ClusterStatus.UPDATING)
        with self.assertRaises(RuntimeError):
            state.advance(ClusterStatus.CONVERGED)


class TestNearestCentroid(unittest.TestCase):
    """Test tie-breaking."""

    def test_lowest_index_wins_exact_tie(self):
        self.assertEqual(nearest_centroid(np.array([2.0, 1.0, 1.0])), 1)

    def test_near_tie_goes_to_lowest_index(self):
        self.assertEqual(nearest_centroid(np.array([2.0 + 1e-14, 2.0])), 0)

    def test_clear_minimum(self):
        self.assertEqual(nearest_centroid(np.array([3.0, 2.0, 2.5])), 1)


class TestCentroidClusterer(unittest.TestCase):
    """Test the scikit-learn style estimator."""

    def test_fit_predict(self):
        labels = CentroidClusterer(n_clusters=2, max_iter=10).fit_predict(np.array(TWO_GROUPS, dtype=float))
        self.assertEqual(labels[0], labels[1])
        self.assertEqual(labels[2], labels[3])
        self.assertNotEqual(labels[0], labels[2])

    def test_fit_attributes(self):
        model = CentroidClusterer(n_clusters=2, max_iter=10).fit(TWO_GROUPS)
        self.assertEqual(model.cluster_centers_.shape, (2, 2))
        self.assertTrue(model.converged_)
        self.assertEqual(model.n_iter_, model.state_.iterations)
        self.assertEqual(model.n_features_in_, 2)

    def test_predict_new_points(self):
        model = CentroidClusterer(n_clusters=2, max_iter=10).fit(TWO_GROUPS)
        predicted = model.predict([[0, 0.5], [10, 10.5]])
        self.assertEqual(predicted[0], model.labels_[0])
        self.assertEqual(predicted[1], model.labels_[2])

    def test_predict_dimension_mismatch(self):
        model = CentroidClusterer(n_clusters=2).fit(TWO_GROUPS)
        with self.assertRaises(DimensionMismatchError):
            model.predict([[1, 2, 3]])

    def test_get_params(self):
        self.assertEqual(
            CentroidClusterer(n_clusters=4, max_iter=7).get_params(),
            {'n_clusters': 4, 'max_iter': 7},
        )


if __name__ == '__main__':
    unittest.main()
