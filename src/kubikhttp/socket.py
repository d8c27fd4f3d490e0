"""
=============================================================================
SOCKET KUBIK: REAL-TIME ATTACHMENT
=============================================================================

Attaches to one of the HTTP kubik's listeners and takes over WebSocket
upgrade requests arriving on it:

    client                               listener (servers[server_index])
      │  GET /socket HTTP/1.1                 │
      │  Connection: Upgrade                  │
      │  Upgrade: websocket                   │
      │  Sec-WebSocket-Key: dGhlIHNhbXBsZ...  │
      │ ────────────────────────────────────► │
      │                                       │  handshake
      │  HTTP/1.1 101 Switching Protocols     │
      │  Sec-WebSocket-Accept: s3pPLMBiTx...  │
      │ ◄──────────────────────────────────── │
      │                                       │  emit("connection", conn)

    socket = Socket({"path": "/socket"})
    socket.on("connection", lambda conn: conn.send_text("hello"))

Options are merged with the http.socket config section during up.
Attachment happens in after(), so the HTTP kubik must have started its
listeners by then.
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import asyncio
import base64
import hashlib
import inspect
import logging
import struct
import uuid

from .errors import ConfigurationError
from .http.request import HTTPRequest
from .http.response import json_response
from .kubik.component import Component
from .kubik.helpers import assign_deep


logger = logging.getLogger(__name__)

WEBSOCKET_GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"

EventListener = Callable[..., Any]


def websocket_accept(key: str) -> str:
    """Sec-WebSocket-Accept value for a Sec-WebSocket-Key (RFC 6455 4.2.2)."""
    digest = hashlib.sha1((key + WEBSOCKET_GUID).encode("ascii")).digest()
    return base64.b64encode(digest).decode("ascii")


@dataclass
class RealtimeConnection:
    """An upgraded client stream handed to "connection" listeners."""

    request: HTTPRequest
    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter
    app: Any = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    data: Dict[str, Any] = field(default_factory=dict)

    async def send_text(self, text: str) -> None:
        """Send one unmasked text frame."""
        payload = text.encode("utf-8")
        header = bytes([0x81])
        if len(payload) < 126:
            header += bytes([len(payload)])
        elif len(payload) < 1 << 16:
            header += bytes([126]) + struct.pack("!H", len(payload))
        else:
            header += bytes([127]) + struct.pack("!Q", len(payload))
        self.writer.write(header + payload)
        await self.writer.drain()

    async def close(self) -> None:
        """Send a close frame and close the stream."""
        if self.writer.is_closing():
            return
        try:
            self.writer.write(b"\x88\x00")
            await self.writer.drain()
        except ConnectionError:
            pass
        self.writer.close()


class Socket(Component):
    """
    Real-time kubik bound to http.servers[server_index].

    Attributes:
        server_index: Which HTTP listener to attach to (default 0)
        options: Attachment options, "path" restricts the upgrade path
    """

    name = "http/socket"
    dependencies = ("http",)

    def __init__(self, options: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.server_index = 0
        self.options: Dict[str, Any] = dict(options or {})
        self.http: Any = None
        self.config: Dict[str, Any] = {}
        self.log: Any = None
        self.listener: Any = None
        self._events: Dict[str, List[EventListener]] = {}
        self._connection_stages: List[Callable[[RealtimeConnection], Any]] = []

    # =========================================================================
    # EVENTS
    # =========================================================================

    def on(self, event: str, fn: EventListener) -> "Socket":
        if not callable(fn):
            raise TypeError(f"Listener for {event!r} must be callable")
        self._events.setdefault(event, []).append(fn)
        return self

    def off(self, event: str, fn: Optional[EventListener] = None) -> "Socket":
        """Remove one listener, or every listener of event when fn is None."""
        if fn is None:
            self._events.pop(event, None)
        elif fn in self._events.get(event, []):
            self._events[event].remove(fn)
        return self

    def listeners(self, event: str) -> List[EventListener]:
        return list(self._events.get(event, []))

    async def emit(self, event: str, *args: Any) -> int:
        """Call every listener of event in order; returns how many ran."""
        handlers = self.listeners(event)
        for fn in handlers:
            result = fn(*args)
            if inspect.isawaitable(result):
                await result
        return len(handlers)

    def use_connection(self, fn: Callable[[RealtimeConnection], Any]) -> "Socket":
        """Run fn on every new connection before "connection" is emitted."""
        self._connection_stages.append(fn)
        return self

    def _tag_app(self, connection: RealtimeConnection) -> None:
        connection.app = self.app

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def up(self, deps: Dict[str, Any]) -> None:
        self.http = deps["http"]
        http_config = self.http.config
        self.config = dict(http_config.socket) if http_config is not None else {}
        self.log = self.http.log
        assign_deep(self.options, self.config)
        self.use_connection(self._tag_app)
        await self.apply_hooks("before")

    async def after(self) -> None:
        """
        Attach to the configured listener.

        Raises:
            ConfigurationError: No listener at server_index.
        """
        await self.apply_hooks("after")
        servers = self.http.servers
        listener = servers.get(self.server_index)
        if listener is None:
            raise ConfigurationError(
                f"{self.server_index} server of http is not defined. Up http first."
            )
        listener.attach(self.handle_upgrade)
        self.listener = listener

        suffix = f" {self.server_index + 1}" if len(servers) > 1 else ""
        message = f"Socket attached to the server{suffix}"
        if self.log is not None:
            self.log.info(message)
        else:
            logger.info(message)

    # =========================================================================
    # UPGRADE
    # =========================================================================

    async def handle_upgrade(
        self,
        request: HTTPRequest,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """Complete the handshake and emit "connection"."""
        path = self.options.get("path")
        if path and request.path.rstrip("/") != str(path).rstrip("/"):
            await self._refuse(writer, 404, {"error": "Not Found"})
            return

        key = request.get_header("sec-websocket-key")
        if not key:
            await self._refuse(writer, 400, {"error": "Missing Sec-WebSocket-Key"})
            return

        writer.write(
            (
                "HTTP/1.1 101 Switching Protocols\r\n"
                "Upgrade: websocket\r\n"
                "Connection: Upgrade\r\n"
                f"Sec-WebSocket-Accept: {websocket_accept(key)}\r\n"
                "\r\n"
            ).encode("ascii")
        )
        await writer.drain()

        connection = RealtimeConnection(request=request, reader=reader, writer=writer)
        try:
            for stage in list(self._connection_stages):
                result = stage(connection)
                if inspect.isawaitable(result):
                    await result
            await self.emit("connection", connection)
        except Exception:
            logger.exception(f"[{connection.id}] Connection handler failed")
            await connection.close()

    async def _refuse(self, writer: asyncio.StreamWriter, status: int, body: dict) -> None:
        response = json_response(status, body)
        response.set_header("Connection", "close")
        writer.write(response.to_bytes())
        await writer.drain()
        writer.close()
