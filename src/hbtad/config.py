"""
Configuration constants for hbtad.

Centralizes header sizes, histogram widths and clustering defaults.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

# Capture limits
SNAP_LEN: int = 1518  # default snapshot length (max bytes captured per packet)

# Header sizes (bytes)
ETHERNET_HEADER_LEN: int = 14  # always exactly 14 bytes
ETHERNET_ADDR_LEN: int = 6
MIN_IP_HEADER_LEN: int = 20
MIN_TCP_HEADER_LEN: int = 20

# EtherType / IP constants
ETHERTYPE_IPV4: int = 0x0800
IP_VERSION_4: int = 4

# Histogram widths
IP_ADDRESS_BUCKETS: int = 256  # most significant octet only
PRIVILEGED_PORT_LIMIT: int = 1024  # ports 0-1023
FLAG_BUCKETS: int = 256  # 8 flag bits, 256 combinations

# Clustering defaults
DEFAULT_CLUSTERS: int = 2
DEFAULT_MAX_ITERATIONS: int = 100


@dataclass
class ProfilerConfig:
    """Settings recognized by the profiling pipeline."""

    snap_len: int = SNAP_LEN
    n_clusters: int = DEFAULT_CLUSTERS
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    feature_tables: Optional[Tuple[str, ...]] = None  # None = every histogram table
    window_size: Optional[int] = None  # packets per snapshot; None = whole session

    def __post_init__(self):
        min_snap = ETHERNET_HEADER_LEN + MIN_IP_HEADER_LEN
        if self.snap_len < min_snap:
            raise ValueError(f"snap_len must be at least {min_snap}, got {self.snap_len}")
        if self.n_clusters < 1:
            raise ValueError(f"n_clusters must be >= 1, got {self.n_clusters}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.window_size is not None and self.window_size < 1:
            raise ValueError(f"window_size must be >= 1 or None, got {self.window_size}")
        if self.feature_tables is not None:
            self.feature_tables = tuple(self.feature_tables)
