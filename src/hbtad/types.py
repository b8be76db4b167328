"""
Type definitions for packet dissection.
"""

from dataclasses import dataclass
from enum import Enum, IntFlag
import ipaddress
from typing import Optional, Tuple


class MalformedReason(Enum):
    """Why a packet could not be fully dissected."""
    TRUNCATED = "truncated"  # buffer shorter than a declared header
    IP_HEADER_TOO_SHORT = "ip_header_too_short"
    TCP_HEADER_TOO_SHORT = "tcp_header_too_short"
    BAD_LENGTH = "bad_length"  # computed payload length negative
    NOT_IPV4 = "not_ipv4"


class IpProtocol(Enum):
    """IP payload protocols tracked by the histograms (value = bucket index)."""
    TCP = 0
    UDP = 1
    ICMP = 2
    IP_IN_IP = 3
    OTHER = 4

    @classmethod
    def from_number(cls, number: int) -> "IpProtocol":
        """Map an IP protocol number to its bucket."""
        return _PROTOCOL_NUMBERS.get(number, cls.OTHER)


_PROTOCOL_NUMBERS = {
    6: IpProtocol.TCP,
    17: IpProtocol.UDP,
    1: IpProtocol.ICMP,
    4: IpProtocol.IP_IN_IP,
}


class TcpFlags(IntFlag):
    """TCP flag bits (byte 13 of the TCP header)."""
    FIN = 0x01
    SYN = 0x02
    RST = 0x04
    PSH = 0x08
    ACK = 0x10
    URG = 0x20
    ECE = 0x40
    CWR = 0x80


@dataclass(frozen=True)
class RawPacket:
    """
    Raw link-layer bytes as handed over by the capture collaborator.

    captured_length may be smaller than wire_length when the snapshot
    length cut the packet short.
    """
    data: bytes
    captured_length: int
    wire_length: int

    @classmethod
    def from_tuple(cls, item: Tuple[bytes, int, int]) -> "RawPacket":
        """Build from a (bytes, captured_length, declared_length) tuple."""
        data, captured_length, wire_length = item
        return cls(data=bytes(data), captured_length=int(captured_length), wire_length=int(wire_length))

    @property
    def bound(self) -> int:
        """Number of bytes that may safely be read."""
        return max(0, min(self.captured_length, len(self.data)))


@dataclass(frozen=True)
class TcpSegment:
    """TCP fields of a dissected packet."""
    src_port: int
    dst_port: int
    flags: int  # raw flag byte
    header_length: int
    payload_length: Optional[int] = None  # None when the packet is oversized

    @property
    def flag_set(self) -> TcpFlags:
        return TcpFlags(self.flags)


@dataclass(frozen=True)
class DissectedPacket:
    """
    Result of dissecting one raw packet.

    Fields whose bytes were out of bounds (or untrustworthy because an
    earlier header was malformed) are None.
    """
    dst_mac: Optional[bytes] = None
    src_mac: Optional[bytes] = None
    ether_type: Optional[int] = None
    ip_version: Optional[int] = None
    ip_header_length: Optional[int] = None
    src_addr: Optional[int] = None
    dst_addr: Optional[int] = None
    protocol: Optional[IpProtocol] = None
    protocol_number: Optional[int] = None
    total_length: Optional[int] = None
    tcp: Optional[TcpSegment] = None
    oversized: bool = False
    malformed: Optional[MalformedReason] = None

    @property
    def is_malformed(self) -> bool:
        return self.malformed is not None

    @property
    def is_ip(self) -> bool:
        """True when the IP protocol field was read."""
        return self.protocol is not None

    @property
    def is_well_formed_tcp(self) -> bool:
        return self.protocol is IpProtocol.TCP and self.malformed is None and self.tcp is not None

    @property
    def src_ip(self) -> Optional[str]:
        return str(ipaddress.IPv4Address(self.src_addr)) if self.src_addr is not None else None

    @property
    def dst_ip(self) -> Optional[str]:
        return str(ipaddress.IPv4Address(self.dst_addr)) if self.dst_addr is not None else None
