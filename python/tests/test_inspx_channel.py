"""Tests for the JSON-lines agent channel."""

from __future__ import annotations

import json
import socket
import threading
import time
from typing import Any, Dict, List, Optional

import pytest

from inspx.channel import AgentChannel, ChannelConfig, ChannelError


class DummyAgentServer:
    """Answers one JSON request per line; ``handlers`` map method names to replies."""

    def __init__(self, handlers: Optional[Dict[str, Any]] = None) -> None:
        self.handlers = dict(handlers or {})
        self.requests: List[Dict[str, Any]] = []
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self.port = self._sock.getsockname()[1]
        self._sock.listen(5)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except OSError:
                break
            conn.settimeout(1.0)
            thread = threading.Thread(target=self._handle_client, args=(conn,), daemon=True)
            thread.start()

    def _handle_client(self, conn: socket.socket) -> None:
        buffer = b""
        with conn:
            while not self._stop.is_set():
                try:
                    chunk = conn.recv(4096)
                except socket.timeout:
                    continue
                except OSError:
                    break
                if not chunk:
                    break
                buffer += chunk
                while b"\n" in buffer:
                    line, buffer = buffer.split(b"\n", 1)
                    if not line:
                        continue
                    msg = json.loads(line.decode("utf-8"))
                    self.requests.append(msg)
                    handler = self.handlers.get(msg["method"], {"result": None})
                    if handler == "close":
                        return
                    if handler == "slow":
                        time.sleep(0.3)
                        handler = {"result": "late"}
                    if handler == "ignore":
                        continue
                    if handler == "event":
                        conn.sendall(json.dumps({"type": "hook", "payload": {"id": "h1"}}).encode("utf-8") + b"\n")
                        handler = {"result": True}
                    response = dict(handler, id=msg["id"])
                    try:
                        conn.sendall(json.dumps(response).encode("utf-8") + b"\n")
                    except OSError:
                        return

    def close(self) -> None:
        self._stop.set()
        try:
            self._sock.close()
        except OSError:
            pass
        self._thread.join(timeout=1.0)


@pytest.fixture
def make_channel():
    servers: List[DummyAgentServer] = []
    channels: List[AgentChannel] = []

    def factory(handlers: Dict[str, Any], call_timeout: Optional[float] = 2.0):
        server = DummyAgentServer(handlers)
        servers.append(server)
        channel = AgentChannel(ChannelConfig(host="127.0.0.1", port=server.port, call_timeout=call_timeout))
        channels.append(channel)
        return server, channel

    yield factory
    for channel in channels:
        channel.close()
    for server in servers:
        server.close()


def test_call_round_trip(make_channel):
    server, channel = make_channel({"reader_int": {"result": 42}})
    assert not channel.connected
    assert channel.call("reader_int", [4096]) == 42
    assert channel.connected
    assert server.requests == [{"id": 1, "method": "reader_int", "params": [4096]}]


def test_request_ids_increase(make_channel):
    server, channel = make_channel({"get_env": {"result": ["native", "x64", "linux", 8]}})
    channel.call("get_env")
    channel.call("get_env")
    assert [req["id"] for req in server.requests] == [1, 2]
    assert server.requests[0]["params"] == []


def test_error_reply_raises(make_channel):
    _, channel = make_channel({"reader_int": {"error": "access violation accessing 0x0"}})
    with pytest.raises(ChannelError, match="reader_int failed: access violation"):
        channel.call("reader_int", [0])


def test_events_reach_handler(make_channel):
    _, channel = make_channel({"hook_attach": "event"})
    seen: List[Dict[str, Any]] = []
    channel.set_event_handler(seen.append)
    assert channel.call("hook_attach", ["0x1000", {}]) is True
    deadline = time.time() + 1.0
    while not seen and time.time() < deadline:
        time.sleep(0.01)
    assert seen and seen[0]["type"] == "hook"


def test_timeout(make_channel):
    _, channel = make_channel({"scan_value": "ignore"}, call_timeout=0.2)
    with pytest.raises(ChannelError, match="rpc timeout"):
        channel.call("scan_value", ["int32", "1"])


def test_late_reply_after_timeout_is_dropped(make_channel):
    _, channel = make_channel({"scan_value": "slow", "reader_int": {"result": 42}}, call_timeout=0.15)
    with pytest.raises(ChannelError, match="rpc timeout"):
        channel.call("scan_value", ["int32", "1"])
    time.sleep(0.4)
    assert channel.call("reader_int", [16]) == 42
    assert channel._responses == {}
    assert channel._pending == set()


def test_connection_closed_while_waiting(make_channel):
    _, channel = make_channel({"reader_int": "close"}, call_timeout=None)
    with pytest.raises(ChannelError, match="connection closed"):
        channel.call("reader_int", [16])
    assert not channel.connected


def test_connect_failure():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    channel = AgentChannel(ChannelConfig(port=port, connect_timeout=0.5))
    with pytest.raises(ChannelError, match="connect to 127.0.0.1"):
        channel.call("get_env")


def test_closed_channel_refuses_calls(make_channel):
    _, channel = make_channel({"reader_int": {"result": 1}})
    channel.call("reader_int", [1])
    channel.close()
    with pytest.raises(ChannelError, match="channel closed"):
        channel.call("reader_int", [1])
