"""
Unit tests for nearest-centroid classification.
"""

import math
import unittest
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

import numpy as np

from src.hbtad.classifier import Classification, classify, classify_many
from src.hbtad.clustering import ClusterState, ClusterStatus, cluster
from src.hbtad.exceptions import DimensionMismatchError


class TestClassify(unittest.TestCase):
    """Test classification against a fitted state."""

    def setUp(self):
        self.state = cluster([[0, 0], [0, 1], [10, 10], [10, 11]], k=2, max_iterations=10)
        self.low = int(self.state.assignments[0])
        self.high = int(self.state.assignments[2])

    def test_nearest_cluster(self):
        result = classify(self.state, [0, 0.5])
        self.assertEqual(result.cluster, self.low)
        self.assertEqual(result.distance, 0.0)

        result = classify(self.state, [10, 12])
        self.assertEqual(result.cluster, self.high)
        self.assertAlmostEqual(result.distance, math.sqrt(2))

    def test_result_unpacks_as_tuple(self):
        cluster_index, distance = classify(self.state, [10, 10.5])
        self.assertEqual(cluster_index, self.high)
        self.assertEqual(distance, 0.0)

    def test_state_not_mutated(self):
        centroids = self.state.centroids.copy()
        assignments = self.state.assignments.copy()
        classify(self.state, [3, 3])
        np.testing.assert_array_equal(self.state.centroids, centroids)
        np.testing.assert_array_equal(self.state.assignments, assignments)
        self.assertEqual(self.state.status, ClusterStatus.CONVERGED)

    def test_dimension_mismatch(self):
        with self.assertRaises(DimensionMismatchError):
            classify(self.state, [1, 2, 3])

    def test_classify_many(self):
        results = classify_many(self.state, [[0, 1], [10, 11]])
        self.assertEqual([r.cluster for r in results], [self.low, self.high])
        self.assertIsInstance(results[0], Classification)


class TestTieBreaking(unittest.TestCase):
    """Ties go to the lowest centroid index, as in clustering."""

    def test_equal_centroids(self):
        state = ClusterState(centroids=np.array([[1.0, 1.0], [1.0, 1.0]]), assignments=np.array([0, 1]))
        self.assertEqual(classify(state, [7, 9]).cluster, 0)

    def test_equidistant_centroids(self):
        # Every axis differs from both centroids: both distances are 2
        state = ClusterState(centroids=np.array([[5.0, 5.0], [0.0, 0.0]]), assignments=np.array([0, 1]))
        result = classify(state, [2, 2])
        self.assertEqual(result.cluster, 0)
        self.assertAlmostEqual(result.distance, 2.0)


if __name__ == '__main__':
    unittest.main()
