"""
hbtad: Host-Based Traffic Anomaly Detection

Dissects Ethernet/IPv4/TCP packets, aggregates them into fixed-width count
histograms and groups the resulting feature vectors into behavioral clusters.
"""

from .types import (
    RawPacket,
    DissectedPacket,
    TcpSegment,
    TcpFlags,
    IpProtocol,
    MalformedReason,
)
from .exceptions import HbtadError, DimensionMismatchError, InsufficientDataError
from .config import ProfilerConfig
from .dissector import dissect, dissect_stream, dissect_tuple
from .histogram import FeatureHistogram, HistogramSnapshot, HISTOGRAM_TABLES, observe
from .features import FeatureLayout, build_feature_matrix
from .distance import distance
from .clustering import cluster, ClusterState, ClusterStatus, CentroidClusterer
from .classifier import classify, classify_many, Classification
from .pipeline import TrafficProfiler, profile_capture

__version__ = "0.1.0"
__all__ = [
    'RawPacket',
    'DissectedPacket',
    'TcpSegment',
    'TcpFlags',
    'IpProtocol',
    'MalformedReason',
    'HbtadError',
    'DimensionMismatchError',
    'InsufficientDataError',
    'ProfilerConfig',
    'dissect',
    'dissect_stream',
    'dissect_tuple',
    'FeatureHistogram',
    'HistogramSnapshot',
    'HISTOGRAM_TABLES',
    'observe',
    'FeatureLayout',
    'build_feature_matrix',
    'distance',
    'cluster',
    'ClusterState',
    'ClusterStatus',
    'CentroidClusterer',
    'classify',
    'classify_many',
    'Classification',
    'TrafficProfiler',
    'profile_capture',
]
