"""Interactive console that drives one or more WebSocket client connections."""

from __future__ import annotations

import re
import sys
import threading
from typing import Iterable, Optional, Protocol, TextIO

from ezsock.client_common import PROMPT, ConnectionState, SendError, describe_state

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_BANNER = (
    "Console ready. Commands:\n"
    "  clients       - Show all client connections list\n"
    "  send <id> <msg> - Send message via specific client\n"
    "  status        - Show WebSocket status\n"
    "  help          - Show help information\n"
    "  quit          - Exit program\n"
    "  other         - Broadcast to all clients\n"
)

_HELP = (
    "\nAvailable commands:\n"
    "  clients          - Show all client connections list\n"
    "  send <id> <msg>  - Send message via specific client by ID\n"
    "  broadcast <msg>   - Broadcast message to all clients\n"
    "  status           - Show WebSocket connection status\n"
    "  help             - Show this help message\n"
    "  quit/exit        - Exit program\n"
    "  other input      - Broadcast message to all clients (default)\n"
    "\nExample:\n"
    "  send 0 Hello     - Send 'Hello' via client #0\n"
    "  broadcast Test   - Broadcast 'Test' to all clients\n"
    "\n"
)


class _Client(Protocol):
    @property
    def state(self) -> ConnectionState: ...

    def send_text(self, text: str) -> None: ...


class ClientConsole:
    """Reads console commands and turns them into sends on the given clients.

    Each client exposes a ``state`` (a ConnectionState) and ``send_text``,
    which raises SendError when the message cannot be sent.
    """

    def __init__(
        self,
        clients: Iterable[_Client] = (),
        output: Optional[TextIO] = None,
        interactive: bool = False,
    ) -> None:
        self.clients = list(clients)
        self.output = output if output is not None else sys.stdout
        self.interactive = interactive
        self._lock = threading.Lock()

    def _write(self, text: str) -> None:
        self.output.write(text)

    def _prompt(self) -> None:
        if self.interactive:
            self._write(PROMPT)
            self.output.flush()

    def _broadcast(self, text: str) -> tuple[int, int]:
        succeeded = failed = 0
        with self._lock:
            for client in self.clients:
                try:
                    client.send_text(text)
                except SendError:
                    failed += 1
                else:
                    succeeded += 1
        return succeeded, failed

    def _show_clients(self) -> None:
        if not self.clients:
            self._write("No clients initialized\n")
            return
        self._write(f"\n=== Client Connections ({len(self.clients)}) ===\n")
        with self._lock:
            for index, client in enumerate(self.clients):
                self._write(
                    f"  [{index + 1}] Client #{index}: {describe_state(client.state)}\n"
                )
        self._write("\n")

    def _show_status(self) -> None:
        if not self.clients:
            self._write("WebSocket not initialized\n")
            return
        self._write(f"\nWebSocket Status ({len(self.clients)} clients):\n")
        connected = connecting = disconnected = 0
        with self._lock:
            for client in self.clients:
                state = client.state
                if state is ConnectionState.CONNECTED:
                    connected += 1
                elif state in (ConnectionState.CONNECTING, ConnectionState.HANDSHAKING):
                    connecting += 1
                else:
                    disconnected += 1
        self._write(f"  Total clients: {len(self.clients)}\n")
        self._write(f"  Connected: {connected}\n")
        self._write(f"  Connecting/Handshaking: {connecting}\n")
        self._write(f"  Disconnected: {disconnected}\n")

    def _send_to_one(self, rest: str) -> None:
        if not self.clients:
            self._write("WebSocket not initialized\n")
            return
        rest = rest.lstrip(" ")
        if not rest:
            self._write("Usage: send <client_id> <message>\n")
            return
        match = _LEADING_INT.match(rest)
        client_id = int(match.group(1)) if match else -1
        if match is None or not 0 <= client_id < len(self.clients):
            self._write(f"Invalid client ID (valid range: 0-{len(self.clients) - 1})\n")
            return
        message = rest[match.end():].lstrip(" ")
        if not message:
            self._write("Message cannot be empty\n")
            return
        try:
            with self._lock:
                self.clients[client_id].send_text(message)
        except SendError as exc:
            self._write(f"Send failed via client #{client_id}, error code: {exc.code}\n")
        else:
            self._write(f"Message sent via client #{client_id}\n")

    def _explicit_broadcast(self, rest: str) -> None:
        if not self.clients:
            self._write("WebSocket not initialized\n")
            return
        message = rest.lstrip(" ")
        if not message:
            self._write("Message cannot be empty\n")
            return
        succeeded, failed = self._broadcast(message)
        if failed:
            self._write(f"Broadcast: {succeeded} succeeded, {failed} failed\n")
        else:
            self._write(f"Broadcast to {succeeded} client(s) succeeded\n")

    def _default_broadcast(self, line: str) -> None:
        if not self.clients:
            self._write("[console] WebSocket not initialized\n")
            return
        succeeded, failed = self._broadcast(line)
        if failed:
            self._write(f"[console] Broadcast: {succeeded} succeeded, {failed} failed\n")

    def handle_line(self, line: str) -> bool:
        """Handle one console line; return False when the console should quit."""
        line = line.rstrip("\r\n")
        if not line:
            self._prompt()
            return True
        if line in ("quit", "exit"):
            return False
        if line == "clients":
            self._show_clients()
        elif line == "status":
            self._show_status()
        elif line == "help":
            self._write(_HELP)
        elif line.startswith("send "):
            self._send_to_one(line[5:])
        elif line.startswith("broadcast "):
            self._explicit_broadcast(line[10:])
        else:
            self._default_broadcast(line)
        self._prompt()
        return True

    def run(self, stream: Optional[TextIO] = None, stop_event: Optional[threading.Event] = None) -> None:
        """Read lines from ``stream`` until EOF, quit, or ``stop_event`` is set."""
        stream = stream if stream is not None else sys.stdin
        if self.interactive:
            self._write(_BANNER)
        self._prompt()
        while stop_event is None or not stop_event.is_set():
            line = stream.readline()
            if not line:
                break
            if stop_event is not None and stop_event.is_set():
                break
            if not self.handle_line(line):
                if stop_event is not None:
                    stop_event.set()
                break