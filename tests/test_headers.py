from ipaddress import IPv4Address

import pytest

from ezsock.headers import (
    ETH_HEADER_LEN,
    IPPROTO_TCP,
    TCP_ACK,
    TCP_IP_OFFSET,
    TCP_SYN,
    EthernetHeader,
    IcmpHeader,
    IPv4Header,
    RtpHeader,
    TcpHeader,
    UdpHeader,
)


def test_rtp_header_is_twelve_bytes():
    assert len(RtpHeader(payload_type=96, sequence=7).pack()) == RtpHeader.SIZE == 12


def test_rtp_version_two_sets_top_bits_of_first_byte():
    packed = RtpHeader(version=2).pack()
    assert packed[0] == 0x80


def test_rtp_round_trip():
    header = RtpHeader(
        payload_type=96,
        sequence=65535,
        timestamp=123456789,
        ssrc=0xDEADBEEF,
        marker=True,
        padding=True,
        extension=False,
        csrc_count=3,
    )
    assert RtpHeader.unpack(header.pack()) == header


def test_rtp_marker_and_payload_share_second_byte():
    packed = RtpHeader(payload_type=96, marker=True).pack()
    assert packed[1] & 0x7F == 96
    assert packed[1] >> 7 == 1


def test_rtp_rejects_oversized_bitfields():
    with pytest.raises(ValueError):
        RtpHeader(version=4).pack()
    with pytest.raises(ValueError):
        RtpHeader(payload_type=128).pack()


def test_rtp_unpack_short_data():
    with pytest.raises(ValueError):
        RtpHeader.unpack(b"\x80\x00")


def test_ethernet_wire_layout():
    destination = b"\x02\x00\x00\x00\x00\x01"
    source = b"\x02\x00\x00\x00\x00\x02"
    header = EthernetHeader(destination, source, 0x0800)
    packed = header.pack()
    assert packed == destination + source + b"\x08\x00"
    assert len(packed) == ETH_HEADER_LEN
    assert EthernetHeader.unpack(packed) == header


def test_ethernet_rejects_bad_mac_length():
    with pytest.raises(ValueError):
        EthernetHeader(b"\x00" * 5, b"\x00" * 6, 0x0800).pack()


def test_ipv4_round_trip_and_addresses():
    header = IPv4Header(
        source="192.0.2.1",
        destination="198.51.100.7",
        protocol=IPPROTO_TCP,
        total_length=60,
        identification=4321,
        ttl=17,
        checksum=0xABCD,
    )
    back = IPv4Header.unpack(header.pack())
    assert back == header
    assert back.source == IPv4Address("192.0.2.1")
    assert back.destination == IPv4Address("198.51.100.7")
    assert back.version == 4


def test_ipv4_address_bytes_on_wire():
    packed = IPv4Header(source="192.0.2.1", destination="198.51.100.7").pack()
    assert packed[12:16] == IPv4Address("192.0.2.1").packed
    assert packed[16:20] == IPv4Address("198.51.100.7").packed


def test_ipv4_unpack_short_data():
    with pytest.raises(ValueError):
        IPv4Header.unpack(b"\x45" * 10)


def test_ethernet_ip_tcp_offset_matches_constant():
    ip = IPv4Header(source="192.0.2.1", destination="192.0.2.2")
    tcp = TcpHeader(1, 2)
    assert ETH_HEADER_LEN + ip.header_length() + tcp.header_length() == TCP_IP_OFFSET


def test_tcp_round_trip_and_flags():
    header = TcpHeader(
        source_port=60000,
        destination_port=80,
        sequence=1,
        acknowledgement=2,
        flags=TCP_SYN | TCP_ACK,
        window=1024,
        checksum=0x1234,
        urgent_pointer=0,
    )
    back = TcpHeader.unpack(header.pack())
    assert back == header
    assert back.syn and back.ack
    assert not (back.fin or back.rst or back.psh or back.urg)


def test_tcp_rejects_bad_port():
    with pytest.raises(ValueError):
        TcpHeader(source_port=70000, destination_port=1).pack()


def test_udp_round_trip():
    header = UdpHeader(5353, 53, length=8, checksum=0xFFFF)
    packed = header.pack()
    assert len(packed) == UdpHeader.SIZE
    assert UdpHeader.unpack(packed) == header


def test_icmp_round_trip():
    header = IcmpHeader(icmp_type=11, code=0, checksum=0x0102, identifier=9, sequence=3)
    packed = header.pack()
    assert packed[0] == 11
    assert IcmpHeader.unpack(packed) == header


def test_icmp_unpack_short_data():
    with pytest.raises(ValueError):
        IcmpHeader.unpack(b"\x00\x00")