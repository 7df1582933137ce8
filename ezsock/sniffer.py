"""Raw-frame sniffer: counts protocols, logs decoded headers, records a capture."""

from __future__ import annotations

import argparse
import contextlib
import socket
from dataclasses import dataclass
from typing import Callable, Optional, TextIO

from ezsock.headers import (
    ETH_HEADER_LEN,
    ICMP_ECHOREPLY,
    ICMP_TIME_EXCEEDED,
    IPPROTO_ICMP,
    IPPROTO_IGMP,
    IPPROTO_TCP,
    IPPROTO_UDP,
    EthernetHeader,
    IcmpHeader,
    IPv4Header,
    TcpHeader,
    UdpHeader,
)
from ezsock.hexdump import hex_dump
from ezsock.pcap import CaptureRecorder

ETH_P_ALL = 0x0003
RECEIVE_SIZE = 65536

_SEPARATOR = "\n###########################################################"

_CATEGORIES = {
    IPPROTO_ICMP: "icmp",
    IPPROTO_IGMP: "igmp",
    IPPROTO_TCP: "tcp",
    IPPROTO_UDP: "udp",
}


@dataclass
class ProtocolCounters:
    """Running totals of frames seen, by IP protocol."""

    tcp: int = 0
    udp: int = 0
    icmp: int = 0
    igmp: int = 0
    others: int = 0
    total: int = 0

    def count(self, protocol: Optional[int]) -> None:
        self.total += 1
        name = _CATEGORIES.get(protocol, "others")
        setattr(self, name, getattr(self, name) + 1)

    def summary(self) -> str:
        return (
            f"TCP : {self.tcp}   UDP : {self.udp}   ICMP : {self.icmp}   "
            f"IGMP : {self.igmp}   Others : {self.others}   Total : {self.total}"
        )


def _mac(address: bytes) -> str:
    return "-".join(f"{byte:02X}" for byte in address)


def _ip(frame: bytes) -> IPv4Header:
    return IPv4Header.unpack(frame[ETH_HEADER_LEN:])


def format_ethernet_header(frame: bytes) -> str:
    eth = EthernetHeader.unpack(frame)
    return (
        "\nEthernet Header\n"
        f"   |-Destination Address : {_mac(eth.destination)} \n"
        f"   |-Source Address      : {_mac(eth.source)} \n"
        f"   |-Protocol            : {eth.protocol} \n"
    )


def format_ip_header(frame: bytes) -> str:
    ip = _ip(frame)
    return format_ethernet_header(frame) + (
        "\nIP Header\n"
        f"   |-IP Version        : {ip.version}\n"
        f"   |-IP Header Length  : {ip.ihl} DWORDS or {ip.header_length()} Bytes\n"
        f"   |-Type Of Service   : {ip.tos}\n"
        f"   |-IP Total Length   : {ip.total_length}  Bytes(Size of Packet)\n"
        f"   |-Identification    : {ip.identification}\n"
        f"   |-TTL      : {ip.ttl}\n"
        f"   |-Protocol : {ip.protocol}\n"
        f"   |-Checksum : {ip.checksum}\n"
        f"   |-Source IP        : {ip.source}\n"
        f"   |-Destination IP   : {ip.destination}\n"
    )


def _split(frame: bytes, transport_length: int) -> tuple[bytes, bytes, bytes]:
    start = ETH_HEADER_LEN + _ip(frame).header_length()
    end = start + transport_length
    return frame[ETH_HEADER_LEN:start], frame[start:end], frame[end:]


def _transport_offset(frame: bytes) -> int:
    return ETH_HEADER_LEN + _ip(frame).header_length()


def format_tcp_packet(frame: bytes) -> str:
    tcp = TcpHeader.unpack(frame[_transport_offset(frame):])
    ip_part, tcp_part, payload = _split(frame, tcp.header_length())
    return (
        "\n\n***********************TCP Packet*************************\n"
        + format_ip_header(frame)
        + "\nTCP Header\n"
        f"   |-Source Port      : {tcp.source_port}\n"
        f"   |-Destination Port : {tcp.destination_port}\n"
        f"   |-Sequence Number    : {tcp.sequence}\n"
        f"   |-Acknowledge Number : {tcp.acknowledgement}\n"
        f"   |-Header Length      : {tcp.data_offset} DWORDS or {tcp.header_length()} BYTES\n"
        f"   |-Urgent Flag          : {int(tcp.urg)}\n"
        f"   |-Acknowledgement Flag : {int(tcp.ack)}\n"
        f"   |-Push Flag            : {int(tcp.psh)}\n"
        f"   |-Reset Flag           : {int(tcp.rst)}\n"
        f"   |-Synchronise Flag     : {int(tcp.syn)}\n"
        f"   |-Finish Flag          : {int(tcp.fin)}\n"
        f"   |-Window         : {tcp.window}\n"
        f"   |-Checksum       : {tcp.checksum}\n"
        f"   |-Urgent Pointer : {tcp.urgent_pointer}\n"
        "\n"
        "                        DATA Dump                         "
        "\n"
        "IP Header\n" + hex_dump(ip_part)
        + "TCP Header\n" + hex_dump(tcp_part)
        + "Data Payload\n" + hex_dump(payload)
        + _SEPARATOR
    )


def format_udp_packet(frame: bytes) -> str:
    udp = UdpHeader.unpack(frame[_transport_offset(frame):])
    ip_part, udp_part, payload = _split(frame, UdpHeader.SIZE)
    return (
        "\n\n***********************UDP Packet*************************\n"
        + format_ip_header(frame)
        + "\nUDP Header\n"
        f"   |-Source Port      : {udp.source_port}\n"
        f"   |-Destination Port : {udp.destination_port}\n"
        f"   |-UDP Length       : {udp.length}\n"
        f"   |-UDP Checksum     : {udp.checksum}\n"
        "\n"
        "IP Header\n" + hex_dump(ip_part)
        + "UDP Header\n" + hex_dump(udp_part)
        + "Data Payload\n" + hex_dump(payload)
        + _SEPARATOR
    )


def format_icmp_packet(frame: bytes) -> str:
    icmp = IcmpHeader.unpack(frame[_transport_offset(frame):])
    ip_part, icmp_part, payload = _split(frame, IcmpHeader.SIZE)
    if icmp.icmp_type == ICMP_TIME_EXCEEDED:
        note = "  (TTL Expired)\n"
    elif icmp.icmp_type == ICMP_ECHOREPLY:
        note = "  (ICMP Echo Reply)\n"
    else:
        note = "\n"
    return (
        "\n\n***********************ICMP Packet*************************\n"
        + format_ip_header(frame)
        + "\nICMP Header\n"
        + f"   |-Type : {icmp.icmp_type}" + note
        + f"   |-Code : {icmp.code}\n"
        f"   |-Checksum : {icmp.checksum}\n"
        "\n"
        "IP Header\n" + hex_dump(ip_part)
        + "ICMP Header\n" + hex_dump(icmp_part)
        + "Data Payload\n" + hex_dump(payload)
        + _SEPARATOR
    )


_FORMATTERS: dict[int, Callable[[bytes], str]] = {
    IPPROTO_ICMP: format_icmp_packet,
    IPPROTO_TCP: format_tcp_packet,
    IPPROTO_UDP: format_udp_packet,
}


class Sniffer:
    """Counts, logs and optionally records each Ethernet frame it is given."""

    def __init__(
        self,
        log: Optional[TextIO] = None,
        recorder: Optional[CaptureRecorder] = None,
    ) -> None:
        self.log = log
        self.recorder = recorder
        self.counters = ProtocolCounters()

    def process(self, frame: bytes) -> str:
        """Handle one frame and return the running summary line."""
        frame = bytes(frame)
        try:
            protocol: Optional[int] = _ip(frame).protocol
        except ValueError:
            protocol = None
        self.counters.count(protocol)

        formatter = _FORMATTERS.get(protocol) if protocol is not None else None
        if formatter is not None and self.log is not None:
            try:
                self.log.write(formatter(frame))
            except ValueError:
                pass  # truncated frame: counted, but nothing to decode

        if self.recorder is not None and frame:
            self.recorder.record(frame)
        return self.counters.summary()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="ezsock-sniff",
        description="Capture every Ethernet frame, log decoded headers and record a capture file.",
    )
    parser.add_argument("--log", default="log.txt", help="decoded header log (default: log.txt)")
    parser.add_argument("--directory", default=".", help="where capture files go (default: .)")
    args = parser.parse_args(argv)

    try:
        log = open(args.log, "w", encoding="utf-8")
    except OSError:
        print(f"Unable to create {args.log} file.")
        return 1

    with contextlib.ExitStack() as stack:
        stack.enter_context(log)
        print("Starting...")

        family = getattr(socket, "AF_PACKET", None)
        if family is None:
            print("Socket Error: raw packet sockets are not supported on this system")
            return 1
        try:
            sock = socket.socket(family, socket.SOCK_RAW, socket.htons(ETH_P_ALL))
        except OSError as exc:
            print(f"Socket Error: {exc.strerror or exc}")
            return 1
        stack.enter_context(sock)
        recorder = stack.enter_context(CaptureRecorder(args.directory))

        sniffer = Sniffer(log, recorder)
        try:
            while True:
                try:
                    frame = sock.recv(RECEIVE_SIZE)
                except OSError:
                    print("Recvfrom error , failed to get packets")
                    return 1
                print(sniffer.process(frame), end="\r", flush=True)
        except KeyboardInterrupt:
            pass

    print("Finished")
    return 0