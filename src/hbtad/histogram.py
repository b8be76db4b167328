"""
Feature aggregation into fixed-width count histograms.

Every dissected packet is folded into a FeatureHistogram. Tables have a
fixed width regardless of traffic volume:
- Source/destination IPv4 most significant octet (256 buckets each)
- Privileged source/destination ports (1024 buckets each)
- IP protocol (TCP, UDP, ICMP, IP-in-IP, Other)
- Packet size (one bucket per byte up to the snapshot limit)
- TCP flag byte (256 buckets)
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

import numpy as np
import pandas as pd

from .config import (
    SNAP_LEN,
    ETHERNET_HEADER_LEN,
    MIN_IP_HEADER_LEN,
    IP_ADDRESS_BUCKETS,
    PRIVILEGED_PORT_LIMIT,
    FLAG_BUCKETS,
)
from .types import DissectedPacket, IpProtocol, MalformedReason

logger = logging.getLogger(__name__)

# Canonical table order
HISTOGRAM_TABLES: Tuple[str, ...] = (
    'src_ip_addrs',
    'dst_ip_addrs',
    'src_ports',
    'dst_ports',
    'protocols',
    'packet_sizes',
    'flags',
)


def table_sizes(snap_len: int = SNAP_LEN) -> Dict[str, int]:
    """Width of every histogram table for a given snapshot limit."""
    return {
        'src_ip_addrs': IP_ADDRESS_BUCKETS,
        'dst_ip_addrs': IP_ADDRESS_BUCKETS,
        'src_ports': PRIVILEGED_PORT_LIMIT,
        'dst_ports': PRIVILEGED_PORT_LIMIT,
        'protocols': len(IpProtocol),
        'packet_sizes': snap_len,
        'flags': FLAG_BUCKETS,
    }


def _top_octet(addr: int) -> int:
    return (addr >> 24) & 0xFF


@dataclass(frozen=True, eq=False)
class HistogramSnapshot:
    """Immutable copy of a histogram's contents."""
    snap_len: int
    tables: Mapping[str, np.ndarray]
    packets_observed: int
    ip_packets: int
    tcp_packets: int
    oversized: int
    malformed: Mapping[MalformedReason, int] = field(default_factory=dict)

    def table(self, name: str) -> np.ndarray:
        """Return a table by name (read-only array)."""
        if name not in self.tables:
            raise KeyError(f"Unknown histogram table: {name}")
        return self.tables[name]

    def total(self, name: str) -> int:
        return int(self.table(name).sum())

    @property
    def malformed_total(self) -> int:
        return sum(self.malformed.values())

    def to_frame(self) -> pd.DataFrame:
        """
        Long-format view of the non-zero buckets.

        Returns:
            DataFrame with columns table, bucket, count
        """
        frames = []
        for name in HISTOGRAM_TABLES:
            counts = self.tables[name]
            buckets = np.flatnonzero(counts)
            frames.append(pd.DataFrame({
                'table': name,
                'bucket': buckets,
                'count': counts[buckets],
            }))
        return pd.concat(frames, ignore_index=True)


class FeatureHistogram:
    """
    Mutable bucket counters for one analysis unit.

    Owned by a single caller; use merge() to combine per-worker histograms.
    """

    def __init__(self, snap_len: int = SNAP_LEN):
        min_snap = ETHERNET_HEADER_LEN + MIN_IP_HEADER_LEN
        if snap_len < min_snap:
            raise ValueError(f"snap_len must be at least {min_snap}, got {snap_len}")
        self.snap_len = snap_len
        self.reset()

    def reset(self):
        """Zero every bucket and counter."""
        self._tables = {
            name: np.zeros(size, dtype=np.int64)
            for name, size in table_sizes(self.snap_len).items()
        }
        self.packets_observed = 0
        self.ip_packets = 0
        self.tcp_packets = 0
        self.oversized = 0
        self.malformed = {reason: 0 for reason in MalformedReason}

    def __getattr__(self, name):
        tables = self.__dict__.get('_tables')
        if tables is not None and name in tables:
            return tables[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    @property
    def tables(self) -> Dict[str, np.ndarray]:
        return self._tables

    def observe(self, packet: DissectedPacket):
        """
        Fold one dissected packet into the counters.

        Every packet is counted somewhere: packets whose protocol field is
        unreadable only in the malformed counters, IP-level failures in the
        protocol bucket, everything else in addresses and sizes as well.
        """
        self.packets_observed += 1
        reason = packet.malformed

        if not packet.is_ip:
            self.malformed[reason] += 1
            return

        self.ip_packets += 1
        self._tables['protocols'][packet.protocol.value] += 1

        if packet.src_addr is None:
            # IP header itself was unusable
            self.malformed[reason] += 1
            return

        self._tables['src_ip_addrs'][_top_octet(packet.src_addr)] += 1
        self._tables['dst_ip_addrs'][_top_octet(packet.dst_addr)] += 1

        if not packet.is_well_formed_tcp:
            # No payload boundary is known: record header-only size
            size = min(packet.ip_header_length + ETHERNET_HEADER_LEN, self.snap_len - 1)
            self._tables['packet_sizes'][size] += 1
            if reason is not None:
                self.malformed[reason] += 1
            return

        tcp = packet.tcp
        self.tcp_packets += 1
        self._tables['flags'][tcp.flags] += 1
        if tcp.src_port < PRIVILEGED_PORT_LIMIT:
            self._tables['src_ports'][tcp.src_port] += 1
        if tcp.dst_port < PRIVILEGED_PORT_LIMIT:
            self._tables['dst_ports'][tcp.dst_port] += 1

        # Dissected under a larger snap length than this histogram's
        if packet.oversized or tcp.payload_length >= self.snap_len:
            self.oversized += 1
        else:
            self._tables['packet_sizes'][tcp.payload_length] += 1

    def observe_all(self, packets) -> "FeatureHistogram":
        for packet in packets:
            self.observe(packet)
        return self

    def merge(self, other: "FeatureHistogram") -> "FeatureHistogram":
        """Add another histogram's counts into this one (element-wise)."""
        if other.snap_len != self.snap_len:
            raise ValueError(
                f"Cannot merge histograms with different snap lengths: {self.snap_len} vs {other.snap_len}"
            )
        for name, counts in other.tables.items():
            self._tables[name] += counts
        self.packets_observed += other.packets_observed
        self.ip_packets += other.ip_packets
        self.tcp_packets += other.tcp_packets
        self.oversized += other.oversized
        for reason, count in other.malformed.items():
            self.malformed[reason] += count
        return self

    def copy(self) -> "FeatureHistogram":
        clone = FeatureHistogram(self.snap_len)
        return clone.merge(self)

    def snapshot(self) -> HistogramSnapshot:
        """Return an immutable copy of the current counts."""
        tables = {}
        for name, counts in self._tables.items():
            frozen = counts.copy()
            frozen.setflags(write=False)
            tables[name] = frozen
        return HistogramSnapshot(
            snap_len=self.snap_len,
            tables=MappingProxyType(tables),
            packets_observed=self.packets_observed,
            ip_packets=self.ip_packets,
            tcp_packets=self.tcp_packets,
            oversized=self.oversized,
            malformed=MappingProxyType(dict(self.malformed)),
        )


def observe(histogram: FeatureHistogram, packet: DissectedPacket) -> None:
    """Update ``histogram`` in place with one dissected packet."""
    histogram.observe(packet)
