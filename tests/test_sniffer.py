import io
import struct

from ezsock.headers import (
    EthernetHeader,
    IcmpHeader,
    IPv4Header,
    TCP_ACK,
    TCP_SYN,
    TcpHeader,
    UdpHeader,
)
from ezsock.hexdump import hex_dump
from ezsock.pcap import CaptureRecorder
from ezsock.sniffer import (
    ProtocolCounters,
    Sniffer,
    format_ethernet_header,
    format_icmp_packet,
    format_ip_header,
    format_tcp_packet,
    format_udp_packet,
)

DST_MAC = bytes.fromhex("020000000002")
SRC_MAC = bytes.fromhex("020000000001")


def make_frame(protocol, transport=b"", payload=b""):
    ip = IPv4Header(
        "192.0.2.1",
        "198.51.100.2",
        protocol=protocol,
        total_length=20 + len(transport) + len(payload),
    )
    eth = EthernetHeader(DST_MAC, SRC_MAC, 0x0800)
    return eth.pack() + ip.pack() + transport + payload


def test_counters_summary():
    counters = ProtocolCounters()
    for protocol in (6, 17, 1, 2, 99):
        counters.count(protocol)
    assert counters.summary() == (
        "TCP : 1   UDP : 1   ICMP : 1   IGMP : 1   Others : 1   Total : 5"
    )


def test_counters_unknown_protocol_goes_to_others():
    counters = ProtocolCounters()
    counters.count(None)
    counters.count(6)
    counters.count(6)
    assert (counters.tcp, counters.others, counters.total) == (2, 1, 3)


def test_ethernet_header_text():
    text = format_ethernet_header(make_frame(6))
    assert "   |-Destination Address : 02-00-00-00-00-02 \n" in text
    assert "   |-Source Address      : 02-00-00-00-00-01 \n" in text


def test_ip_header_text():
    text = format_ip_header(make_frame(17))
    assert "   |-Source IP        : 192.0.2.1\n" in text
    assert "   |-Destination IP   : 198.51.100.2\n" in text
    assert "   |-Protocol : 17\n" in text
    assert text.startswith("\nEthernet Header\n")


def test_tcp_packet_text():
    tcp = TcpHeader(1234, 80, sequence=7, flags=TCP_SYN | TCP_ACK).pack()
    payload = b"GET / HTTP/1.0\r\n"
    text = format_tcp_packet(make_frame(6, tcp, payload))
    assert "TCP Packet" in text
    assert "   |-Source Port      : 1234\n" in text
    assert "   |-Synchronise Flag     : 1\n" in text
    assert "   |-Finish Flag          : 0\n" in text
    assert "TCP Header\n" + hex_dump(tcp) in text
    assert text.endswith("Data Payload\n" + hex_dump(payload) + "\n" + "#" * 59)


def test_udp_packet_text():
    udp = UdpHeader(5353, 53, length=12).pack()
    text = format_udp_packet(make_frame(17, udp, b"ping"))
    assert "   |-UDP Length       : 12\n" in text
    assert "Data Payload\n" + hex_dump(b"ping") in text


def test_icmp_echo_reply_text():
    icmp = IcmpHeader(0).pack()
    text = format_icmp_packet(make_frame(1, icmp))
    assert "   |-Type : 0  (ICMP Echo Reply)\n" in text


def test_icmp_ttl_expired_text():
    icmp = IcmpHeader(11).pack()
    text = format_icmp_packet(make_frame(1, icmp))
    assert "   |-Type : 11  (TTL Expired)\n" in text


def test_sniffer_process_logs_tcp():
    log = io.StringIO()
    sniffer = Sniffer(log)
    summary = sniffer.process(make_frame(6, TcpHeader(1, 2).pack()))
    assert summary == sniffer.counters.summary()
    assert sniffer.counters.tcp == 1
    assert "TCP Packet" in log.getvalue()


def test_sniffer_igmp_counted_not_logged():
    log = io.StringIO()
    sniffer = Sniffer(log)
    sniffer.process(make_frame(2))
    assert sniffer.counters.igmp == 1
    assert log.getvalue() == ""


def test_sniffer_short_frame_counts_as_other():
    sniffer = Sniffer(io.StringIO())
    sniffer.process(b"\x00" * 10)
    assert (sniffer.counters.others, sniffer.counters.total) == (1, 1)


def test_sniffer_truncated_tcp_frame_is_counted():
    log = io.StringIO()
    sniffer = Sniffer(log)
    sniffer.process(make_frame(6, b"\x00\x01"))
    assert sniffer.counters.tcp == 1
    assert log.getvalue() == ""


def test_sniffer_records_frames(tmp_path):
    frame = make_frame(17, UdpHeader(1, 2, length=8).pack())
    with CaptureRecorder(tmp_path, clock=lambda: 1000.0) as recorder:
        sniffer = Sniffer(None, recorder)
        sniffer.process(frame)
    content = recorder.path.read_bytes()
    assert len(content) == 24 + 16 + len(frame)
    assert struct.unpack("<II", content[32:40]) == (len(frame), len(frame))
    assert content[40:] == frame