"""
End-to-end traffic profiling: raw packets -> histograms -> clusters.

Vector granularity is configurable through ProfilerConfig.window_size:
- None: one snapshot for the whole session
- N: one snapshot per N consecutive packets (the trailing partial window
  is sealed by flush())
"""

import logging
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from .classifier import Classification, classify
from .clustering import ClusterState, cluster
from .config import ProfilerConfig
from .dissector import dissect_stream
from .features import FeatureLayout, build_feature_matrix
from .histogram import FeatureHistogram, HistogramSnapshot
from .types import DissectedPacket

logger = logging.getLogger(__name__)


class TrafficProfiler:
    """
    Aggregates a packet stream into per-window snapshots and clusters them.

    Not thread-safe; one profiler per capture.
    """

    def __init__(self, config: Optional[ProfilerConfig] = None):
        self.config = config or ProfilerConfig()
        self.layout = FeatureLayout(self.config.feature_tables)
        self.histogram = FeatureHistogram(self.config.snap_len)
        self.snapshots: List[HistogramSnapshot] = []
        self.state: Optional[ClusterState] = None

    def observe(self, packet: DissectedPacket):
        """Aggregate one dissected packet, sealing the window when it is full."""
        self.histogram.observe(packet)
        window_size = self.config.window_size
        if window_size is not None and self.histogram.packets_observed >= window_size:
            self.seal()

    def ingest(self, packets: Iterable) -> int:
        """
        Dissect and aggregate packets in capture order.

        Args:
            packets: RawPacket objects or (bytes, captured_length, declared_length) tuples

        Returns:
            Number of packets ingested
        """
        count = 0
        for record in dissect_stream(packets, snap_len=self.config.snap_len):
            self.observe(record)
            count += 1
        logger.debug(f"Ingested {count} packets ({len(self.snapshots)} windows sealed)")
        return count

    def seal(self) -> Optional[HistogramSnapshot]:
        """Snapshot the current window and start a fresh one. Empty windows are skipped."""
        if self.histogram.packets_observed == 0:
            return None
        snapshot = self.histogram.snapshot()
        self.snapshots.append(snapshot)
        self.histogram.reset()
        if snapshot.oversized or snapshot.malformed_total:
            logger.info(
                f"Window {len(self.snapshots) - 1}: {snapshot.packets_observed} packets, "
                f"{snapshot.malformed_total} malformed, {snapshot.oversized} oversized"
            )
        return snapshot

    def flush(self) -> Optional[HistogramSnapshot]:
        """Seal whatever has been aggregated since the last window."""
        return self.seal()

    def feature_matrix(self) -> pd.DataFrame:
        return build_feature_matrix(self.snapshots, self.layout)

    def fit(self) -> ClusterState:
        """
        Cluster the sealed snapshots.

        Raises:
            InsufficientDataError: If there are fewer snapshots than clusters
        """
        self.flush()
        vectors = self.feature_matrix().to_numpy()
        self.state = cluster(vectors, self.config.n_clusters, self.config.max_iterations)
        return self.state

    def classify_snapshot(self, snapshot: HistogramSnapshot) -> Classification:
        if self.state is None:
            raise RuntimeError("TrafficProfiler.fit() must be called before classification")
        return classify(self.state, self.layout.vector(snapshot))


def profile_capture(packets: Iterable,
                    config: Optional[ProfilerConfig] = None) -> Tuple[List[HistogramSnapshot], ClusterState]:
    """
    Run the whole pipeline over one capture.

    Returns:
        Tuple of (snapshots, cluster state)
    """
    profiler = TrafficProfiler(config)
    profiler.ingest(packets)
    state = profiler.fit()
    return profiler.snapshots, state
