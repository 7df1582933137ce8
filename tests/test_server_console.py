import io
import threading

import pytest

from ezsock.client_common import SendError
from ezsock.server_console import (
    ClientNotFoundError,
    ConnectedClient,
    KeepaliveConfig,
    QueueFullError,
    ServerConsole,
    format_client,
    parse_args,
    printable_text,
)


class FakeServer:
    def __init__(self, clients=(), ready=True, fail=None):
        self._clients = list(clients)
        self.is_ready = ready
        self.fail = fail
        self.sent = []
        self.broadcasts = []

    @property
    def client_count(self):
        return len(self._clients)

    def clients(self):
        return iter(self._clients)

    def send_text(self, client_id, text):
        if self.fail is not None:
            raise self.fail
        if client_id not in {c.id for c in self._clients}:
            raise ClientNotFoundError(client_id)
        self.sent.append((client_id, text))

    def broadcast(self, text):
        if self.fail is not None:
            raise self.fail
        self.broadcasts.append(text)


def make_console(server):
    out = io.StringIO()
    return ServerConsole(server, out), out


def client(client_id=3):
    return ConnectedClient(id=client_id, ip="192.0.2.1", port=5000, connect_time=100.0)


def test_keepalive_disabled_ping():
    config = KeepaliveConfig(ping_interval_ms=0, jitter_percent=0, idle_timeout_ms=0)
    assert config.ping_timeout_ms() == 0
    assert config.timer_interval_ms() == 0
    text = config.describe()
    assert "DISABLED (PING_INTERVAL_MS = 0)" in text
    assert "connections never timeout" in text


def test_keepalive_describe_enabled():
    config = KeepaliveConfig()
    text = config.describe()
    assert text.startswith("Server keepalive config:\n")
    assert f"Ping interval:  {config.ping_interval_ms} ms" in text
    assert f"Idle timeout:   {config.idle_timeout_ms} ms" in text


@pytest.mark.parametrize(
    "kwargs",
    [
        {"ping_interval_ms": 500},
        {"jitter_percent": 60},
        {"jitter_percent": -1},
        {"idle_timeout_ms": 60000},
    ],
)
def test_keepalive_rejects_bad_settings(kwargs):
    with pytest.raises(ValueError):
        KeepaliveConfig(**kwargs)


def test_format_client():
    info = ConnectedClient(id=7, ip="192.0.2.1", port=5000, connect_time=100.0, last_activity_ms=1000)
    line = format_client(info, 1, now=130.0, now_ms=1500)
    assert line == "  [1] ID=7, IP=192.0.2.1:5000, Connected=30s ago, Idle=500ms\n\n"


def test_format_client_without_activity_is_not_idle():
    line = format_client(client(), 2, now=100.0, now_ms=99999)
    assert "Idle=0ms" in line
    assert line.startswith("  [2] ID=3,")


def test_printable_text_replaces_control_characters():
    assert printable_text(b"a\x01b\n\tc\r") == "a.b\n\tc\r"


def test_printable_text_truncates_long_text():
    text = printable_text(b"x" * 300)
    assert text.endswith("...")
    assert text[:-3] == "x" * 256


def test_parse_args():
    assert parse_args([]) == 54321
    assert parse_args(["-p", "8080"]) == 8080
    assert parse_args(["--protocol", "-p", "-p", "9000"]) == 9000


def test_quit_and_exit_stop():
    console, _ = make_console(FakeServer())
    assert console.handle_line("quit\n") is False
    assert console.handle_line("exit") is False
    assert console.handle_line("\n") is True


def test_send_to_client():
    server = FakeServer([client(3)])
    console, out = make_console(server)
    assert console.handle_line("send 3 hello world\n")
    assert server.sent == [(3, "hello world")]
    assert "Message sent to client #3" in out.getvalue()


def test_send_to_missing_client():
    server = FakeServer([client(3)])
    console, out = make_console(server)
    console.handle_line("send 4 hi")
    assert server.sent == []
    assert "Client #4 not found" in out.getvalue()


@pytest.mark.parametrize(
    "line, message",
    [
        ("send    ", "Usage: send <client_id> <message>"),
        ("send x hi", "Invalid client ID"),
        ("send -2 hi", "Invalid client ID"),
        ("send 3", "Message cannot be empty"),
    ],
)
def test_send_usage_errors(line, message):
    server = FakeServer([client(3)])
    console, out = make_console(server)
    console.handle_line(line)
    assert message in out.getvalue()
    assert server.sent == []


def test_send_other_failure_reports_code():
    server = FakeServer([client(3)], fail=SendError(-7))
    console, out = make_console(server)
    console.handle_line("send 3 hi")
    assert "Send failed, error code: -7" in out.getvalue()


def test_broadcast_default():
    server = FakeServer([client(1), client(2)])
    console, out = make_console(server)
    console.handle_line("hi there\n")
    assert server.broadcasts == ["hi there"]
    assert "Broadcasting message: 'hi there' (8 bytes)" in out.getvalue()
    assert "Message broadcasted successfully" in out.getvalue()


def test_broadcast_queue_full():
    console, out = make_console(FakeServer(fail=QueueFullError()))
    console.handle_line("hello")
    assert "Broadcast failed, queue full" in out.getvalue()


def test_clients_listing():
    console, out = make_console(FakeServer())
    console.handle_line("clients")
    assert "=== Connected Clients (0) ===" in out.getvalue()
    assert "No clients connected" in out.getvalue()

    console, out = make_console(FakeServer([client(5), client(6)]))
    console.handle_line("clients")
    text = out.getvalue()
    assert "  [1] ID=5," in text
    assert "  [2] ID=6," in text


def test_status():
    console, out = make_console(FakeServer([client(1)], ready=False))
    console.handle_line("status")
    text = out.getvalue()
    assert "Connected clients: 1" in text
    assert "Active: stopped" in text


def test_help():
    console, out = make_console(FakeServer())
    console.handle_line("help")
    assert "send <id> <msg>  - Send message to specific client by ID" in out.getvalue()


def test_without_server():
    console, out = make_console(None)
    assert console.handle_line("status")
    assert "WebSocket not initialized" in out.getvalue()


def test_run_reads_until_quit_and_sets_stop_event():
    server = FakeServer([client(1)])
    console, _ = make_console(server)
    stop = threading.Event()
    console.run(io.StringIO("hello\nsend 1 direct\nquit\nlater\n"), stop)
    assert stop.is_set()
    assert server.broadcasts == ["hello"]
    assert server.sent == [(1, "direct")]


def test_run_returns_at_end_of_input_without_event():
    server = FakeServer()
    console, _ = make_console(server)
    console.run(io.StringIO("one\ntwo\n"))
    assert server.broadcasts == ["one", "two"]