"""
Ethernet / IPv4 / TCP dissection.

Pure and bounds-checked:
- Never reads beyond the captured length of a packet
- Never raises on malformed or truncated input; the problem is reported
  on the returned record as a MalformedReason
- Only TCP payloads are dissected further; other IP protocols stop at L3
"""

import logging
import struct
from typing import Iterable, Iterator, Optional, Tuple

from .config import (
    SNAP_LEN,
    ETHERNET_HEADER_LEN,
    ETHERNET_ADDR_LEN,
    ETHERTYPE_IPV4,
    IP_VERSION_4,
    MIN_IP_HEADER_LEN,
    MIN_TCP_HEADER_LEN,
)
from .types import (
    DissectedPacket,
    IpProtocol,
    MalformedReason,
    RawPacket,
    TcpSegment,
)

logger = logging.getLogger(__name__)

# Offsets inside the IPv4 header
_IP_PROTOCOL_OFFSET = 9
_IP_TOTAL_LENGTH_OFFSET = 2
_IP_ADDRS_OFFSET = 12

# Offsets inside the TCP header
_TCP_DATA_OFFSET = 12
_TCP_FLAGS_OFFSET = 13


def _read_protocol(data: bytes, bound: int) -> Tuple[Optional[IpProtocol], Optional[int]]:
    """Read the IP protocol field if it lies inside the captured bytes."""
    offset = ETHERNET_HEADER_LEN + _IP_PROTOCOL_OFFSET
    if bound <= offset:
        return None, None
    number = data[offset]
    return IpProtocol.from_number(number), number


def dissect(packet: RawPacket, snap_len: int = SNAP_LEN) -> DissectedPacket:
    """
    Dissect a raw Ethernet frame.

    Args:
        packet: Raw packet from the capture collaborator
        snap_len: Configured snapshot limit, used to flag oversized payloads

    Returns:
        DissectedPacket; check ``malformed`` and ``oversized`` before use
    """
    bound = packet.bound
    data = packet.data[:bound]

    if bound < ETHERNET_HEADER_LEN:
        logger.debug(f"Truncated Ethernet header: {bound} bytes captured")
        return DissectedPacket(malformed=MalformedReason.TRUNCATED)

    dst_mac = data[0:ETHERNET_ADDR_LEN]
    src_mac = data[ETHERNET_ADDR_LEN:2 * ETHERNET_ADDR_LEN]
    ether_type = struct.unpack_from('!H', data, 12)[0]
    link = dict(dst_mac=dst_mac, src_mac=src_mac, ether_type=ether_type)

    if ether_type != ETHERTYPE_IPV4:
        logger.debug(f"Skipping non-IPv4 EtherType 0x{ether_type:04x}")
        return DissectedPacket(malformed=MalformedReason.NOT_IPV4, **link)

    if bound <= ETHERNET_HEADER_LEN:
        logger.debug("Truncated IP header: no IP bytes captured")
        return DissectedPacket(malformed=MalformedReason.TRUNCATED, **link)

    vhl = data[ETHERNET_HEADER_LEN]
    ip_version = vhl >> 4
    ip_header_length = (vhl & 0x0F) * 4
    link.update(ip_version=ip_version, ip_header_length=ip_header_length)

    if ip_version != IP_VERSION_4:
        logger.debug(f"Skipping IP version {ip_version}")
        return DissectedPacket(malformed=MalformedReason.NOT_IPV4, **link)

    protocol, protocol_number = _read_protocol(data, bound)

    if ip_header_length < MIN_IP_HEADER_LEN:
        logger.debug(f"Invalid IP header length: {ip_header_length} bytes")
        return DissectedPacket(
            protocol=protocol,
            protocol_number=protocol_number,
            malformed=MalformedReason.IP_HEADER_TOO_SHORT,
            **link
        )

    l4_offset = ETHERNET_HEADER_LEN + ip_header_length
    if l4_offset > bound:
        logger.debug(f"Truncated IP header: need {l4_offset} bytes, captured {bound}")
        return DissectedPacket(
            protocol=protocol,
            protocol_number=protocol_number,
            malformed=MalformedReason.TRUNCATED,
            **link
        )

    total_length = struct.unpack_from('!H', data, ETHERNET_HEADER_LEN + _IP_TOTAL_LENGTH_OFFSET)[0]
    src_addr, dst_addr = struct.unpack_from('!II', data, ETHERNET_HEADER_LEN + _IP_ADDRS_OFFSET)
    ip = dict(
        src_addr=src_addr,
        dst_addr=dst_addr,
        protocol=protocol,
        protocol_number=protocol_number,
        total_length=total_length,
        **link
    )

    if protocol is not IpProtocol.TCP:
        return DissectedPacket(**ip)

    return _dissect_tcp(data, bound, l4_offset, ip_header_length, total_length, snap_len, ip)


def _dissect_tcp(data: bytes, bound: int, offset: int, ip_header_length: int,
                 total_length: int, snap_len: int, ip: dict) -> DissectedPacket:
    """Dissect the TCP header that starts at ``offset``."""
    if offset + MIN_TCP_HEADER_LEN > bound:
        logger.debug(f"Truncated TCP header: need {offset + MIN_TCP_HEADER_LEN} bytes, captured {bound}")
        return DissectedPacket(malformed=MalformedReason.TRUNCATED, **ip)

    tcp_header_length = ((data[offset + _TCP_DATA_OFFSET] & 0xF0) >> 4) * 4
    if tcp_header_length < MIN_TCP_HEADER_LEN:
        logger.debug(f"Invalid TCP header length: {tcp_header_length} bytes")
        return DissectedPacket(malformed=MalformedReason.TCP_HEADER_TOO_SHORT, **ip)

    payload_length = total_length - (ip_header_length + tcp_header_length)
    if payload_length < 0:
        logger.debug(
            f"Negative TCP payload length: total {total_length}, "
            f"headers {ip_header_length}+{tcp_header_length}"
        )
        return DissectedPacket(malformed=MalformedReason.BAD_LENGTH, **ip)

    src_port, dst_port = struct.unpack_from('!HH', data, offset)
    flags = data[offset + _TCP_FLAGS_OFFSET]

    frame_size = ETHERNET_HEADER_LEN + ip_header_length + payload_length
    oversized = frame_size > snap_len
    if oversized:
        logger.warning(f"Packet oversized: {frame_size} bytes exceeds snapshot limit {snap_len}")

    segment = TcpSegment(
        src_port=src_port,
        dst_port=dst_port,
        flags=flags,
        header_length=tcp_header_length,
        payload_length=None if oversized else payload_length,
    )
    return DissectedPacket(tcp=segment, oversized=oversized, **ip)


def dissect_tuple(item: Tuple[bytes, int, int], snap_len: int = SNAP_LEN) -> DissectedPacket:
    """Dissect a (bytes, captured_length, declared_length) tuple."""
    return dissect(RawPacket.from_tuple(item), snap_len=snap_len)


def dissect_stream(packets: Iterable, snap_len: int = SNAP_LEN) -> Iterator[DissectedPacket]:
    """Dissect packets lazily, in capture order. Accepts RawPackets or tuples."""
    for packet in packets:
        if not isinstance(packet, RawPacket):
            packet = RawPacket.from_tuple(packet)
        yield dissect(packet, snap_len=snap_len)
