"""Operator console for a WebSocket server: client listing, status, sends and broadcasts."""

from __future__ import annotations

import re
import sys
import threading
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Sequence, TextIO

from ezsock.client_common import SendError

PROMPT = "srv> "
DEFAULT_PORT = 54321
PROTOCOL = "come.0"
PATH_PREFIX = "/come"

PING_INTERVAL_MS = 30 * 1000
PING_JITTER_PERCENT = 10
IDLE_TIMEOUT_MS = 180 * 1000

PREVIEW_LIMIT = 256

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_BANNER = (
    "Server console ready. Commands:\n"
    "  clients       - Show connected clients list\n"
    "  send <id> <msg> - Send message to specific client\n"
    "  status        - Show server status\n"
    "  help          - Show help information\n"
    "  quit          - Exit server\n"
    "  other         - Broadcast to all clients\n"
)

_HELP = (
    "\nAvailable commands:\n"
    "  clients          - Show connected clients list\n"
    "  send <id> <msg>  - Send message to specific client by ID\n"
    "  status           - Show server status\n"
    "  help             - Show this help message\n"
    "  quit/exit        - Stop server and exit\n"
    "  other input      - Broadcast message to all connected clients\n"
    "\nExample:\n"
    "  send 1 Hello     - Send 'Hello' to client #1\n"
    "\n"
)


@dataclass(frozen=True)
class KeepaliveConfig:
    """Server keep-alive settings; the derived timings follow from the ping interval.

    A ping interval of 0 disables server pings; an idle timeout of 0 disables
    the idle check. Inconsistent settings raise ValueError.
    """

    ping_interval_ms: int = PING_INTERVAL_MS
    jitter_percent: int = PING_JITTER_PERCENT
    idle_timeout_ms: int = IDLE_TIMEOUT_MS

    def __post_init__(self) -> None:
        if 0 < self.ping_interval_ms < 1000:
            raise ValueError("ping interval should be 0 (disabled) or at least 1000 ms")
        if not 0 <= self.jitter_percent <= 50:
            raise ValueError("ping jitter percent should be between 0 and 50")
        if self.idle_timeout_ms > 0:
            longest = self.ping_interval_ms + self._raw_jitter_ms()
            if self.idle_timeout_ms <= 2 * longest + self._raw_ping_timeout_ms():
                raise ValueError(
                    "idle timeout should be 0 (disabled) or large enough for at least "
                    "2 ping/pong rounds even with maximum jitter"
                )
            if self.idle_timeout_ms < 2 * self.ping_interval_ms:
                raise ValueError("idle timeout should be 0 (disabled) or at least 2x ping interval")

    @property
    def ping_enabled(self) -> bool:
        return self.ping_interval_ms > 0

    def _raw_ping_timeout_ms(self) -> int:
        return self.ping_interval_ms // 3

    def _raw_jitter_ms(self) -> int:
        return self.ping_interval_ms * self.jitter_percent // 100

    def ping_timeout_ms(self) -> int:
        """How long to wait for a pong: a third of the ping interval."""
        return self._raw_ping_timeout_ms() if self.ping_enabled else 0

    def timer_interval_ms(self) -> int:
        """How often the keep-alive timer runs: a third of the pong timeout."""
        return self.ping_timeout_ms() // 3 if self.ping_enabled else 0

    def jitter_ms(self) -> int:
        """Largest deviation from the ping interval."""
        return self._raw_jitter_ms() if self.ping_enabled else 0

    def describe(self) -> str:
        lines = ["Server keepalive config:\n"]
        if self.ping_enabled:
            lines.append(f"  - Timer interval: {self.timer_interval_ms()} ms\n")
            lines.append(
                f"  - Ping interval:  {self.ping_interval_ms} ms "
                f"(send ping after idle, jitter: \u00b1{self.jitter_percent}%)\n"
            )
            lines.append(f"  - Pong timeout:   {self.ping_timeout_ms()} ms (close if no pong)\n")
        else:
            lines.append("  - Server ping:    DISABLED (PING_INTERVAL_MS = 0)\n")
            lines.append("  - Note: Server will only respond to client pings, not send its own\n")
        if self.idle_timeout_ms > 0:
            lines.append(f"  - Idle timeout:   {self.idle_timeout_ms} ms (close if no activity)\n")
        else:
            lines.append(
                "  - Idle timeout:   DISABLED (not recommended, connections never timeout)\n"
            )
        return "".join(lines)


class ClientNotFoundError(Exception):
    """Raised when a send names a client that is not connected."""


class QueueFullError(Exception):
    """Raised when the outgoing queue cannot take another message."""


@dataclass(frozen=True)
class ConnectedClient:
    """What the server knows about one connected client."""

    id: int
    ip: str
    port: int
    connect_time: float
    last_activity_ms: int = 0


def format_client(
    client: ConnectedClient,
    index: int,
    now: Optional[float] = None,
    now_ms: Optional[int] = None,
) -> str:
    """One line of the client listing; ``now`` is wall time, ``now_ms`` monotonic ms."""
    now = time.time() if now is None else now
    duration = int(now - client.connect_time)
    idle_ms = 0
    if client.last_activity_ms > 0:
        current = int(time.monotonic() * 1000) if now_ms is None else now_ms
        if current >= client.last_activity_ms:
            idle_ms = current - client.last_activity_ms
    return (
        f"  [{index}] ID={client.id}, IP={client.ip}:{client.port}, "
        f"Connected={duration}s ago, Idle={idle_ms}ms\n\n"
    )


def printable_text(data: bytes) -> str:
    """Preview of received text: at most 256 bytes, control characters shown as dots."""
    preview = bytes(
        byte if byte >= 32 or byte in (0x09, 0x0A, 0x0D) else 0x2E
        for byte in data[:PREVIEW_LIMIT]
    )
    text = preview.decode("utf-8", errors="replace")
    return text + "..." if len(data) > PREVIEW_LIMIT else text


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def parse_args(argv: Optional[Sequence[str]] = None) -> int:
    """Return the listening port given by ``-p``; other arguments are ignored."""
    args = list(sys.argv[1:] if argv is None else argv)
    port = DEFAULT_PORT
    position = 0
    while position < len(args):
        arg = args[position]
        if arg in ("-p", "--protocol") and position + 1 < len(args):
            if arg == "-p":
                port = _atoi(args[position + 1])
            position += 2
        else:
            position += 1
    return port


class _Server(Protocol):
    @property
    def client_count(self) -> int: ...

    @property
    def is_ready(self) -> bool: ...

    def clients(self) -> Iterable[ConnectedClient]: ...

    def send_text(self, client_id: int, text: str) -> None: ...

    def broadcast(self, text: str) -> None: ...


class ServerConsole:
    """Reads operator commands and applies them to a WebSocket server.

    The server reports ``client_count`` and ``is_ready``, lists ``clients()``,
    and offers ``send_text(client_id, text)`` and ``broadcast(text)``, which
    raise ClientNotFoundError, QueueFullError or SendError on failure.
    """

    def __init__(self, server: Optional[_Server], output: Optional[TextIO] = None) -> None:
        self.server = server
        self.output = output if output is not None else sys.stdout

    def _write(self, text: str) -> None:
        self.output.write(text)

    def _show_clients(self, server: _Server) -> None:
        count = server.client_count
        self._write(f"\n=== Connected Clients ({count}) ===\n")
        if count == 0:
            self._write("  No clients connected\n")
        else:
            for index, client in enumerate(server.clients(), start=1):
                self._write(format_client(client, index))
        self._write("\n")

    def _show_status(self, server: _Server) -> None:
        self._write(
            "\nServer Status:\n"
            "  Port: listening\n"
            f"  Connected clients: {server.client_count}\n"
            f"  Active: {'running' if server.is_ready else 'stopped'}\n"
        )

    def _send(self, server: _Server, rest: str) -> None:
        rest = rest.lstrip(" ")
        if not rest:
            self._write("Usage: send <client_id> <message>\n")
            return
        match = _LEADING_INT.match(rest)
        if match is None or int(match.group(1)) < 0:
            self._write("Invalid client ID\n")
            return
        client_id = int(match.group(1))
        message = rest[match.end():].lstrip(" ")
        if not message:
            self._write("Message cannot be empty\n")
            return
        try:
            server.send_text(client_id, message)
        except ClientNotFoundError:
            self._write(f"Client #{client_id} not found\n")
        except SendError as exc:
            self._write(f"Send failed, error code: {exc.code}\n")
        else:
            self._write(f"Message sent to client #{client_id}\n")

    def _broadcast(self, server: _Server, line: str) -> None:
        self._write(f"Broadcasting message: '{line}' ({len(line.encode('utf-8'))} bytes)\n")
        try:
            server.broadcast(line)
        except QueueFullError:
            self._write("Broadcast failed, queue full\n")
        except ClientNotFoundError:
            self._write("Client not found\n")
        except SendError as exc:
            self._write(f"Broadcast failed, error code: {exc.code}\n")
        else:
            self._write("Message broadcasted successfully\n")

    def handle_line(self, line: str) -> bool:
        """Handle one console line; return False when the server should stop."""
        line = line.rstrip("\r\n")
        if not line:
            return True
        if line in ("quit", "exit"):
            return False
        if line == "help":
            self._write(_HELP)
            return True
        server = self.server
        if server is None:
            if line in ("clients", "status") or line.startswith("send ") or True:
                self._write("WebSocket not initialized\n")
            return True
        if line == "clients":
            self._show_clients(server)
        elif line == "status":
            self._show_status(server)
        elif line.startswith("send "):
            self._send(server, line[5:])
        else:
            self._broadcast(server, line)
        return True

    def run(self, stream: Optional[TextIO] = None, stop_event: Optional[threading.Event] = None) -> None:
        """Read commands from ``stream`` until quit or ``stop_event`` is set.

        At end of input the console idles until ``stop_event`` is set, or
        returns at once when there is none.
        """
        stream = stream if stream is not None else sys.stdin
        isatty = getattr(stream, "isatty", None)
        interactive = bool(isatty()) if callable(isatty) else False
        if interactive:
            self._write(_BANNER)
        while stop_event is None or not stop_event.is_set():
            if interactive:
                self._write(PROMPT)
                self.output.flush()
            line = stream.readline()
            if not line:
                if stop_event is None:
                    return
                stop_event.wait(0.1)
                continue
            if not self.handle_line(line):
                if stop_event is not None:
                    stop_event.set()
                return