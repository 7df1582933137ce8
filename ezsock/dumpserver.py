"""TCP server that accepts any number of clients and hex-dumps what they send."""

from __future__ import annotations

import re
import selectors
import socket
import sys
from typing import Optional, TextIO, Union

from ezsock.hexdump import hex_dump

BUFSIZ = 8192
DEFAULT_PORT = "60000"

_LEADING_DIGITS = re.compile(r"[0-9]+")


def resolve_port(port: Union[str, int]) -> int:
    """Turn a port number or a TCP service name into a port number."""
    if isinstance(port, int):
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port out of range: {port}")
        return port
    text = str(port)
    match = _LEADING_DIGITS.match(text)
    if match:
        return int(match.group()) & 0xFFFF
    try:
        return socket.getservbyname(text, "tcp")
    except OSError:
        raise ValueError(f"{text}: unknown service") from None


class DumpServer:
    """Listens on a TCP port and writes a hex dump of every chunk received."""

    def __init__(self, port: Union[str, int] = DEFAULT_PORT, output: Optional[TextIO] = None) -> None:
        self.output = output if output is not None else sys.stdout
        number = resolve_port(port)
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
        try:
            self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._listener.bind(("", number))
            self._listener.listen(socket.SOMAXCONN)
            self._listener.setblocking(False)
        except OSError:
            self._listener.close()
            raise
        self._selector = selectors.DefaultSelector()
        self._selector.register(self._listener, selectors.EVENT_READ)
        self._closed = False

    def address(self) -> tuple[str, int]:
        host, port = self._listener.getsockname()[:2]
        return host, port

    def _accept(self) -> None:
        try:
            conn, peer = self._listener.accept()
        except BlockingIOError:
            return
        host, port = peer[:2]
        self.output.write(
            f"connection from host {host}, port {port}, socket {conn.fileno()}\n"
        )
        self._selector.register(conn, selectors.EVENT_READ)

    def _read(self, conn: socket.socket) -> None:
        fd = conn.fileno()
        try:
            data = conn.recv(BUFSIZ - 1)
        except OSError as exc:
            self.output.write(f"read: {exc}\n")
            data = b""
        if not data:
            self.output.write(f"conn broken, fd:{fd}\n")
            self._selector.unregister(conn)
            conn.close()
            return
        self.output.write(hex_dump(data))

    def serve_once(self, timeout: Optional[float] = 0.5) -> int:
        """Wait up to ``timeout`` seconds and handle what is ready; return the event count."""
        if self._closed:
            raise ValueError("server is closed")
        events = self._selector.select(timeout)
        for key, _ in events:
            if key.fileobj is self._listener:
                self._accept()
            else:
                self._read(key.fileobj)
        return len(events)

    def serve_forever(self) -> None:
        while not self._closed:
            self.serve_once()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for key in list(self._selector.get_map().values()):
            self._selector.unregister(key.fileobj)
            key.fileobj.close()
        self._selector.close()

    def __enter__(self) -> DumpServer:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def main(argv: Optional[list[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print("usage: ezsock-dumpserver [port]")
        print(f"default is:{DEFAULT_PORT}")
    port = args[0] if args else DEFAULT_PORT
    try:
        number = resolve_port(port)
    except ValueError as exc:
        print(exc, file=sys.stderr)
        return 1
    try:
        server = DumpServer(number, sys.stdout)
    except OSError as exc:
        print(f"bind: {exc}", file=sys.stderr)
        return 1
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0