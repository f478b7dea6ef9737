"""
Instrumentation channel.

The agent running inside the target process is reached through named remote
calls with JSON argument arrays.  :class:`Channel` is the interface the codec
and client depend on; :class:`AgentChannel` speaks JSON lines over TCP:

    -> {"id": 7, "method": "reader_int", "params": [4096]}
    <- {"id": 7, "result": 42}
    <- {"id": 8, "error": "access violation accessing 0x0"}

Messages carrying a ``type`` key and no ``id`` are unsolicited agent events
(hook hits, log lines) and go to the registered event handler.
"""

from __future__ import annotations

import json
import logging
import socket
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

LOGGER = logging.getLogger("inspx.channel")


class ChannelError(RuntimeError):
    """Raised when a remote call fails or the channel is unusable."""


class Channel:
    """Remote-call interface."""

    def call(self, method: str, args: Optional[Sequence[Any]] = None) -> Any:
        raise NotImplementedError("Channel must implement call()")

    def close(self) -> None:
        return None


@dataclass
class ChannelConfig:
    host: str = "127.0.0.1"
    port: int = 27070
    connect_timeout: float = 2.0
    call_timeout: Optional[float] = None


@dataclass
class AgentChannel(Channel):
    """Synchronous JSON-lines RPC client for the in-process agent."""

    config: ChannelConfig = field(default_factory=ChannelConfig)

    _sock: Optional[socket.socket] = field(init=False, default=None)
    _lock: threading.Lock = field(init=False, default_factory=threading.Lock)
    _connect_lock: threading.Lock = field(init=False, default_factory=threading.Lock)
    _next_id: int = field(init=False, default=1)
    _reader_thread: Optional[threading.Thread] = field(init=False, default=None)
    _responses: Dict[int, Dict[str, Any]] = field(init=False, default_factory=dict)
    _pending: Set[int] = field(init=False, default_factory=set)
    _resp_cv: threading.Condition = field(init=False, default_factory=lambda: threading.Condition(threading.Lock()))
    _shutdown: bool = field(init=False, default=False)
    _event_handler: Optional[Callable[[Dict[str, Any]], None]] = field(init=False, default=None)

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def set_event_handler(self, handler: Optional[Callable[[Dict[str, Any]], None]]) -> None:
        self._event_handler = handler

    def connect(self) -> None:
        with self._connect_lock:
            if self._sock:
                return
            if self._shutdown:
                raise ChannelError("channel closed")
            try:
                sock = socket.create_connection(
                    (self.config.host, self.config.port),
                    timeout=self.config.connect_timeout,
                )
            except OSError as exc:
                raise ChannelError(f"connect to {self.config.host}:{self.config.port} failed: {exc}") from exc
            sock.settimeout(None)
            self._sock = sock
            self._reader_thread = threading.Thread(target=self._reader_loop, name="inspx-channel", daemon=True)
            self._reader_thread.start()
            LOGGER.debug("connected to agent at %s:%s", self.config.host, self.config.port)

    def close(self) -> None:
        self._shutdown = True
        self._handle_disconnect()
        thread = self._reader_thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=0.5)

    def call(self, method: str, args: Optional[Sequence[Any]] = None) -> Any:
        if self._shutdown:
            raise ChannelError("channel closed")
        if not self._sock:
            self.connect()
        with self._lock:
            request_id = self._next_id
            self._next_id += 1
        params: List[Any] = list(args or [])
        payload = {"id": request_id, "method": method, "params": params}
        LOGGER.debug("-> %s %s", method, params)
        data = json.dumps(payload).encode("utf-8") + b"\n"
        with self._resp_cv:
            self._pending.add(request_id)
        try:
            assert self._sock is not None
            self._sock.sendall(data)
        except OSError as exc:
            with self._resp_cv:
                self._pending.discard(request_id)
            self._handle_disconnect()
            raise ChannelError(f"rpc send failed: {exc}") from exc
        response = self._wait_for_response(request_id)
        if response.get("error") is not None:
            raise ChannelError(f"{method} failed: {response['error']}")
        return response.get("result")

    def _wait_for_response(self, request_id: int) -> Dict[str, Any]:
        timeout = self.config.call_timeout
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._resp_cv:
            while request_id not in self._responses:
                if self._sock is None:
                    self._pending.discard(request_id)
                    raise ChannelError("connection closed")
                remaining = None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        self._pending.discard(request_id)
                        raise ChannelError("rpc timeout")
                self._resp_cv.wait(timeout=remaining)
            self._pending.discard(request_id)
            return self._responses.pop(request_id)

    def _reader_loop(self) -> None:
        buffer = b""
        while not self._shutdown:
            sock = self._sock
            if not sock:
                break
            try:
                chunk = sock.recv(4096)
            except OSError:
                break
            if not chunk:
                break
            buffer += chunk
            while b"\n" in buffer:
                line, buffer = buffer.split(b"\n", 1)
                if not line.strip():
                    continue
                try:
                    message = json.loads(line.decode("utf-8"))
                except (UnicodeDecodeError, json.JSONDecodeError):
                    LOGGER.warning("dropping malformed agent message: %r", line[:120])
                    continue
                if not isinstance(message, dict):
                    continue
                if self._is_event(message):
                    self._dispatch_event(message)
                    continue
                self._handle_response(message)
        self._handle_disconnect()

    def _handle_response(self, message: Dict[str, Any]) -> None:
        request_id = message.get("id")
        if not isinstance(request_id, int):
            LOGGER.debug("response without id ignored: %s", message)
            return
        with self._resp_cv:
            if request_id not in self._pending:
                LOGGER.debug("dropping reply %s with no waiting call", request_id)
                return
            self._responses[request_id] = message
            self._resp_cv.notify_all()

    def _dispatch_event(self, message: Dict[str, Any]) -> None:
        handler = self._event_handler
        LOGGER.debug("agent event: %s", message.get("type"))
        if not handler:
            return
        try:
            handler(message)
        except Exception:
            LOGGER.exception("event handler failed")

    @staticmethod
    def _is_event(message: Dict[str, Any]) -> bool:
        return "type" in message and "id" not in message

    def _handle_disconnect(self) -> None:
        sock = self._sock
        self._sock = None
        if sock:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            try:
                sock.close()
            except OSError:
                pass
        with self._resp_cv:
            self._resp_cv.notify_all()


__all__ = ["AgentChannel", "Channel", "ChannelConfig", "ChannelError"]
