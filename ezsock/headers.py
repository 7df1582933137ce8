"""Fixed-layout network headers: RTP, Ethernet, IPv4, TCP, UDP and ICMP.

Every header packs to and unpacks from its on-the-wire form, with
multi-byte fields in network byte order.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from ipaddress import IPv4Address
from typing import ClassVar, Union

IP_VERSION = 4
IP_MAXPACKET = 65535
MTU = 1500
ETH_HEADER_LEN = 14
TCP_IP_OFFSET = 54
LISTEN_DEPTH = 6
MAXLINE = 1024
BUFFSIZE = 1024

IPPROTO_ICMP = 1
IPPROTO_IGMP = 2
IPPROTO_TCP = 6
IPPROTO_UDP = 17

ICMP_ECHOREPLY = 0
ICMP_TIME_EXCEEDED = 11

TCP_FIN = 0x01
TCP_SYN = 0x02
TCP_RST = 0x04
TCP_PSH = 0x08
TCP_ACK = 0x10
TCP_URG = 0x20
TCP_ECE = 0x40
TCP_CWR = 0x80

AddressLike = Union[IPv4Address, str, int]


def _check_bits(name: str, value: int, bits: int) -> None:
    if not 0 <= int(value) < (1 << bits):
        raise ValueError(f"{name} must fit in {bits} bits, got {value}")


def _require(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise ValueError(f"{what} needs {size} bytes, got {len(data)}")


def _pack(layout: struct.Struct, *values: int | bytes) -> bytes:
    try:
        return layout.pack(*values)
    except struct.error as exc:
        raise ValueError(str(exc)) from exc


@dataclass
class RtpHeader:
    """The 12-byte fixed RTP header."""

    payload_type: int = 0
    sequence: int = 0
    timestamp: int = 0
    ssrc: int = 0
    marker: bool = False
    version: int = 2
    padding: bool = False
    extension: bool = False
    csrc_count: int = 0

    SIZE: ClassVar[int] = 12
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("!BBHII")

    def pack(self) -> bytes:
        _check_bits("version", self.version, 2)
        _check_bits("csrc_count", self.csrc_count, 4)
        _check_bits("payload_type", self.payload_type, 7)
        first = (
            (self.version << 6)
            | (int(bool(self.padding)) << 5)
            | (int(bool(self.extension)) << 4)
            | self.csrc_count
        )
        second = (int(bool(self.marker)) << 7) | self.payload_type
        return _pack(self._LAYOUT, first, second, self.sequence, self.timestamp, self.ssrc)

    @classmethod
    def unpack(cls, data: bytes) -> RtpHeader:
        _require(data, cls.SIZE, "RTP header")
        first, second, sequence, timestamp, ssrc = cls._LAYOUT.unpack_from(data)
        return cls(
            payload_type=second & 0x7F,
            sequence=sequence,
            timestamp=timestamp,
            ssrc=ssrc,
            marker=bool(second >> 7),
            version=first >> 6,
            padding=bool((first >> 5) & 1),
            extension=bool((first >> 4) & 1),
            csrc_count=first & 0x0F,
        )


@dataclass
class EthernetHeader:
    """An Ethernet II frame header: two MAC addresses and an EtherType."""

    destination: bytes
    source: bytes
    protocol: int

    SIZE: ClassVar[int] = ETH_HEADER_LEN
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("!6s6sH")

    def pack(self) -> bytes:
        for name, mac in (("destination", self.destination), ("source", self.source)):
            if len(mac) != 6:
                raise ValueError(f"{name} MAC address must be 6 bytes, got {len(mac)}")
        return _pack(self._LAYOUT, bytes(self.destination), bytes(self.source), self.protocol)

    @classmethod
    def unpack(cls, data: bytes) -> EthernetHeader:
        _require(data, cls.SIZE, "Ethernet header")
        destination, source, protocol = cls._LAYOUT.unpack_from(data)
        return cls(destination=destination, source=source, protocol=protocol)


@dataclass
class IPv4Header:
    """An IPv4 header without options."""

    source: AddressLike
    destination: AddressLike
    protocol: int = 0
    total_length: int = 0
    identification: int = 0
    fragment: int = 0
    ttl: int = 64
    tos: int = 0
    checksum: int = 0
    version: int = IP_VERSION
    ihl: int = 5

    SIZE: ClassVar[int] = 20
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("!BBHHHBBH4s4s")

    def __post_init__(self) -> None:
        self.source = IPv4Address(self.source)
        self.destination = IPv4Address(self.destination)

    def header_length(self) -> int:
        """Header length in bytes, as given by the IHL field."""
        return self.ihl * 4

    def pack(self) -> bytes:
        _check_bits("version", self.version, 4)
        _check_bits("ihl", self.ihl, 4)
        return _pack(
            self._LAYOUT,
            (self.version << 4) | self.ihl,
            self.tos,
            self.total_length,
            self.identification,
            self.fragment,
            self.ttl,
            self.protocol,
            self.checksum,
            IPv4Address(self.source).packed,
            IPv4Address(self.destination).packed,
        )

    @classmethod
    def unpack(cls, data: bytes) -> IPv4Header:
        _require(data, cls.SIZE, "IPv4 header")
        (
            version_ihl,
            tos,
            total_length,
            identification,
            fragment,
            ttl,
            protocol,
            checksum,
            source,
            destination,
        ) = cls._LAYOUT.unpack_from(data)
        return cls(
            source=IPv4Address(source),
            destination=IPv4Address(destination),
            protocol=protocol,
            total_length=total_length,
            identification=identification,
            fragment=fragment,
            ttl=ttl,
            tos=tos,
            checksum=checksum,
            version=version_ihl >> 4,
            ihl=version_ihl & 0x0F,
        )


@dataclass
class TcpHeader:
    """A TCP header without options."""

    source_port: int
    destination_port: int
    sequence: int = 0
    acknowledgement: int = 0
    data_offset: int = 5
    reserved: int = 0
    flags: int = 0
    window: int = 0
    checksum: int = 0
    urgent_pointer: int = 0

    SIZE: ClassVar[int] = 20
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("!HHIIBBHHH")

    def header_length(self) -> int:
        """Header length in bytes, as given by the data offset field."""
        return self.data_offset * 4

    @property
    def fin(self) -> bool:
        return bool(self.flags & TCP_FIN)

    @property
    def syn(self) -> bool:
        return bool(self.flags & TCP_SYN)

    @property
    def rst(self) -> bool:
        return bool(self.flags & TCP_RST)

    @property
    def psh(self) -> bool:
        return bool(self.flags & TCP_PSH)

    @property
    def ack(self) -> bool:
        return bool(self.flags & TCP_ACK)

    @property
    def urg(self) -> bool:
        return bool(self.flags & TCP_URG)

    def pack(self) -> bytes:
        _check_bits("data_offset", self.data_offset, 4)
        _check_bits("reserved", self.reserved, 4)
        _check_bits("flags", self.flags, 8)
        return _pack(
            self._LAYOUT,
            self.source_port,
            self.destination_port,
            self.sequence,
            self.acknowledgement,
            (self.data_offset << 4) | self.reserved,
            self.flags,
            self.window,
            self.checksum,
            self.urgent_pointer,
        )

    @classmethod
    def unpack(cls, data: bytes) -> TcpHeader:
        _require(data, cls.SIZE, "TCP header")
        (
            source_port,
            destination_port,
            sequence,
            acknowledgement,
            offset_reserved,
            flags,
            window,
            checksum,
            urgent_pointer,
        ) = cls._LAYOUT.unpack_from(data)
        return cls(
            source_port=source_port,
            destination_port=destination_port,
            sequence=sequence,
            acknowledgement=acknowledgement,
            data_offset=offset_reserved >> 4,
            reserved=offset_reserved & 0x0F,
            flags=flags,
            window=window,
            checksum=checksum,
            urgent_pointer=urgent_pointer,
        )


@dataclass
class UdpHeader:
    """The 8-byte UDP header."""

    source_port: int
    destination_port: int
    length: int = 0
    checksum: int = 0

    SIZE: ClassVar[int] = 8
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("!HHHH")

    def pack(self) -> bytes:
        return _pack(
            self._LAYOUT, self.source_port, self.destination_port, self.length, self.checksum
        )

    @classmethod
    def unpack(cls, data: bytes) -> UdpHeader:
        _require(data, cls.SIZE, "UDP header")
        source_port, destination_port, length, checksum = cls._LAYOUT.unpack_from(data)
        return cls(source_port, destination_port, length, checksum)


@dataclass
class IcmpHeader:
    """The 8-byte ICMP header in its echo form."""

    icmp_type: int
    code: int = 0
    checksum: int = 0
    identifier: int = 0
    sequence: int = 0

    SIZE: ClassVar[int] = 8
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("!BBHHH")

    def pack(self) -> bytes:
        return _pack(
            self._LAYOUT,
            self.icmp_type,
            self.code,
            self.checksum,
            self.identifier,
            self.sequence,
        )

    @classmethod
    def unpack(cls, data: bytes) -> IcmpHeader:
        _require(data, cls.SIZE, "ICMP header")
        icmp_type, code, checksum, identifier, sequence = cls._LAYOUT.unpack_from(data)
        return cls(icmp_type, code, checksum, identifier, sequence)