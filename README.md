# ezsock

A small networking toolkit that needs nothing beyond the Python standard
library (Python 3.10 or later).

## What it contains

- **Header codecs** (`ezsock.headers`): `RtpHeader`, `EthernetHeader`,
  `IPv4Header`, `TcpHeader`, `UdpHeader` and `IcmpHeader`, each a dataclass
  with `pack()` and the class method `unpack(data)`. Multi-byte fields are in
  network byte order. `IPv4Header.header_length()` and
  `TcpHeader.header_length()` give the header size in bytes; `TcpHeader`
  also has `fin`, `syn`, `rst`, `psh`, `ack` and `urg` flag properties.
  Values that do not fit their field, and data too short to unpack, raise
  `ValueError`.
- **Hex dumps** (`ezsock.hexdump.hex_dump`): sixteen bytes per line in hex,
  followed by the printable characters of that line (others shown as `.`).
- **pcap recording** (`ezsock.pcap`): `PcapFileHeader`, `PcapRecordHeader`
  and `CaptureRecorder`. The recorder creates a classic libpcap file
  (Ethernet link type, snap length 65535) named
  `www_<unix time>_<number>.pcap` in its directory when the first packet is
  recorded, and appends each packet with a timestamp from its clock. It is a
  context manager; recording after `close()`, or recording an empty packet,
  raises `ValueError`.
- **A packet sniffer** (`ezsock.sniffer`): `Sniffer.process(frame)` counts
  the frame by IP protocol in a `ProtocolCounters` (TCP, UDP, ICMP, IGMP,
  others, total), writes a readable description of TCP, UDP and ICMP packets
  to a log, hands the frame to a `CaptureRecorder` if one is given, and
  returns the running summary line. The functions `format_ethernet_header`,
  `format_ip_header`, `format_tcp_packet`, `format_udp_packet` and
  `format_icmp_packet` produce those descriptions on their own.
- **A TCP dump server** (`ezsock.dumpserver`): `DumpServer` accepts any
  number of connections and writes a hex dump of every block it receives.
  `resolve_port` accepts a port number or a TCP service name.
- **WebSocket console helpers**:
  - `ezsock.client_common`: `ClientOptions`, `parse_args` (options `-h/--host`,
    `-s/--server`, `-p/--port`, `-u/--url`, `-n/--num-clients`,
    `-m/--multi-thread`, `--protocol`), `ConnectionState`, `describe_state`
    and `SendError`.
  - `ezsock.client_console`: `ClientConsole`, which reads the commands
    `clients`, `status`, `send <id> <msg>`, `broadcast <msg>`, `help` and
    `quit`/`exit`, and broadcasts any other line to all clients.
  - `ezsock.server_console`: `ServerConsole` (commands `clients`, `status`,
    `send <id> <msg>`, `help`, `quit`/`exit`, anything else broadcast),
    `KeepaliveConfig` with its derived ping timeout, timer interval and
    jitter, `ConnectedClient`, `format_client`, `printable_text`,
    `parse_args`, `ClientNotFoundError` and `QueueFullError`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command-line tools

### Packet sniffer

```
ezsock-sniff [--log FILE] [--directory DIR]
```

Opens a raw packet socket on all interfaces (Linux only; needs root or the
`CAP_NET_RAW` capability). A running tally of protocols is shown on the
terminal, a description of every TCP, UDP and ICMP packet goes to the log
(default `log.txt`), and all frames are saved to a pcap file in the given
directory (default the current one) that Wireshark or tcpdump can open.
Stop it with Ctrl-C.

### TCP dump server

```
ezsock-dumpserver [port]
```

Listens on all addresses on the given port, or on port 60000 if none is
given. The port may also be a service name such as `http`. Each connection
is announced with the peer's address, every block of data received is
printed as a hex dump, and closed connections are reported. Stop it with
Ctrl-C.

## Library use

```python
from ezsock.headers import RtpHeader
from ezsock.hexdump import hex_dump

data = RtpHeader(payload_type=96, sequence=1, timestamp=160, ssrc=0x1234).pack()
header = RtpHeader.unpack(data)
print(header)
print(hex_dump(data))
```

A parsed header packs back to the same bytes it was read from, so the
codecs can also be used to build packets.

## What this package does not do

There is no WebSocket protocol implementation here: no handshake, framing,
ping/pong or reconnection, and no WebSocket client or server command.
`ClientConsole` and `ServerConsole` only parse console commands and report
results; they drive client and server objects that you supply, which must
offer the members described in their docstrings (`state` and `send_text`
for clients; `client_count`, `is_ready`, `clients()`, `send_text` and
`broadcast` for a server). Likewise `KeepaliveConfig` only checks and
describes keep-alive settings; nothing in the package sends pings.