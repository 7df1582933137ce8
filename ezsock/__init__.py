"""Packet header codecs, hex dumps, pcap recording, a sniffer, a TCP dump server and WebSocket console helpers."""

__version__ = "1.0.0"