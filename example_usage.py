"""
Example usage of hbtad on synthetic traffic.

Builds frames in memory (no capture device or file needed), profiles them
in windows of four packets and clusters the windows.
"""

import logging

from src.hbtad import ProfilerConfig, TrafficProfiler
from tests.test_fixtures import PacketFixtures


def synthetic_capture():
    """Alternating bursts of web SYNs and DNS queries, plus one damaged frame."""
    syn = PacketFixtures.create_tcp_packet(src_ip="10.0.0.7", dst_ip="93.184.216.34",
                                           src_port=51000, dst_port=80, flags=0x02)
    dns = PacketFixtures.create_udp_packet(src_ip="10.0.0.7", dst_ip="1.1.1.1")
    packets = []
    for _ in range(4):
        packets.extend([PacketFixtures.as_tuple(syn)] * 4)
        packets.extend([PacketFixtures.as_tuple(dns)] * 4)
    packets.append(PacketFixtures.as_tuple(syn, captured_length=9))
    return packets


def example_profile():
    """Example: window profiling and clustering."""
    print("=" * 80)
    print("EXAMPLE: Windowed traffic profiling")
    print("=" * 80)

    config = ProfilerConfig(n_clusters=2, max_iterations=20, window_size=4,
                            feature_tables=('protocols', 'dst_ports', 'flags'))
    profiler = TrafficProfiler(config)
    profiler.ingest(synthetic_capture())
    state = profiler.fit()

    print(f"\nWindows: {len(profiler.snapshots)}")
    print(f"Status: {state.status.value} after {state.iterations} iterations")
    for index, snapshot in enumerate(profiler.snapshots):
        print(f"  window {index}: cluster {state.assignments[index]}, "
              f"{snapshot.packets_observed} packets, {snapshot.malformed_total} malformed")

    print("\nNon-zero buckets of the first window:")
    print(profiler.snapshots[0].to_frame().to_string(index=False))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    example_profile()
