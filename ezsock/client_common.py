"""Shared pieces of the WebSocket console clients: options, states and errors."""

from __future__ import annotations

import argparse
import enum
import re
from dataclasses import dataclass
from typing import NoReturn, Optional, Sequence

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 54321
DEFAULT_PATH = "/come"
DEFAULT_PROTOCOL = "come.0"
PROMPT = "ws> "

CONNECT_TIMEOUT_MS = 1000
RECONNECT_INTERVAL_MS = 500
RECONNECT_MAX_RETRIES = 0
RECONNECT_BACKOFF_ENABLE = True
RECONNECT_BACKOFF_MIN_RETRIES = 2
RECONNECT_BACKOFF_HIGH_THRESHOLD = 5

USAGE = (
    "Usage: {prog} [-h|--host HOST] [-p|--port PORT] [-u|--url PATH] "
    "[-n|--num-clients N] [-m|--multi-thread] [--protocol PROTOCOL]\n"
    "  -h, --host HOST         Server hostname or IP address (default: localhost)\n"
    "  -s, --server HOST       Alias for --host\n"
    "  -p, --port PORT        Server port (default: 54321)\n"
    "  -u, --url PATH         WebSocket URL path (default: /come)\n"
    "  -n, --num-clients N    Number of client connections (default: 1)\n"
    "  -m, --multi-thread     Use multi-thread mode (default: single-thread)\n"
    "      --protocol PROTOCOL WebSocket subprotocol (default: come.0)\n"
)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class ConnectionState(enum.Enum):
    """Life-cycle state of one WebSocket client connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    CONNECTED = "connected"


_STATE_NAMES = {
    ConnectionState.CONNECTED: "Connected",
    ConnectionState.CONNECTING: "Connecting",
    ConnectionState.HANDSHAKING: "Handshaking",
}


def describe_state(state: ConnectionState) -> str:
    """Human-readable name of a connection state."""
    return _STATE_NAMES.get(state, "Disconnected")


class SendError(Exception):
    """Raised when a message could not be queued or sent on a connection."""

    def __init__(self, code: int, message: Optional[str] = None) -> None:
        self.code = code
        super().__init__(message or f"error code: {code}")


@dataclass
class ClientOptions:
    """Connection settings for one or more WebSocket clients."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    url_path: str = DEFAULT_PATH
    protocol: str = DEFAULT_PROTOCOL
    num_clients: int = 1
    multi_thread: bool = False
    connect_timeout_ms: int = CONNECT_TIMEOUT_MS
    reconnect_interval_ms: int = RECONNECT_INTERVAL_MS
    reconnect_max_retries: int = RECONNECT_MAX_RETRIES
    reconnect_backoff_enable: bool = RECONNECT_BACKOFF_ENABLE
    reconnect_backoff_min_retries: int = RECONNECT_BACKOFF_MIN_RETRIES
    reconnect_backoff_high_threshold: int = RECONNECT_BACKOFF_HIGH_THRESHOLD

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}{self.url_path}"


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _port(text: str) -> int:
    return _atoi(text) & 0xFFFF


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise ValueError(f"{message}\n{USAGE.format(prog=self.prog)}")


def _build_parser() -> _Parser:
    parser = _Parser(prog="ezsock-client", add_help=False)
    parser.add_argument("-h", "--host", "-s", "--server", dest="host", default=DEFAULT_HOST)
    parser.add_argument("-p", "--port", dest="port", type=_port, default=DEFAULT_PORT)
    parser.add_argument("-u", "--url", dest="url_path", default=DEFAULT_PATH)
    parser.add_argument("-n", "--num-clients", dest="num_clients", type=_atoi, default=1)
    parser.add_argument("-m", "--multi-thread", dest="multi_thread", action="store_true")
    parser.add_argument("--protocol", dest="protocol", default=DEFAULT_PROTOCOL)
    parser.add_argument("extra", nargs="*")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> ClientOptions:
    """Parse client command-line arguments; raise ValueError on bad usage."""
    args = _build_parser().parse_intermixed_args(list(argv) if argv is not None else None)
    if args.num_clients < 1:
        raise ValueError("Number of clients must be >= 1")
    return ClientOptions(
        host=args.host,
        port=args.port,
        url_path=args.url_path,
        protocol=args.protocol,
        num_clients=args.num_clients,
        multi_thread=args.multi_thread,
    )