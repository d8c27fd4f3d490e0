"""
=============================================================================
LISTENER
=============================================================================

One bound socket plus the asyncio server accepting on it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Listener.start()                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │   getaddrinfo(bind, port)     IPv4 preferred for "localhost"        │
    │   _create_socket()            SO_REUSEADDR, TCP_NODELAY             │
    │   bind() + listen(backlog)    OSError propagates to the manager     │
    │   asyncio.start_server()      TLS when protocol is https            │
    └─────────────────────────────────────────────────────────────────────┘

No SO_REUSEPORT: two listeners on the same port must fail to bind, not
silently share it.
=============================================================================
"""

from typing import Any, Callable, Optional, Set
import asyncio
import logging
import socket
import ssl

from ..config import HTTPConfig
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .connection import Connection


logger = logging.getLogger(__name__)

RequestHandler = Callable[[HTTPRequest], HTTPResponse]
UpgradeHandler = Callable[[HTTPRequest, asyncio.StreamReader, asyncio.StreamWriter], Any]


class Listener:
    """
    A live HTTP(S) listener.

    Attributes:
        bind:      Resolved host it was asked to bind
        protocol:  "http" or "https"
        handler:   Request handler (the HTTP component's pipeline)
        config:    Protocol tuning shared by its connections
        upgrade_handler:
                   Coroutine taking (request, reader, writer) for
                   "Upgrade: websocket" requests, set by attach()
    """

    def __init__(
        self,
        bind: str,
        port: int,
        protocol: str = "http",
        handler: Optional[RequestHandler] = None,
        config: Optional[HTTPConfig] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        self.bind = bind
        self.requested_port = port
        self.protocol = protocol
        self.handler = handler
        self.config = config or HTTPConfig()
        self.ssl_context = ssl_context
        self.upgrade_handler: Optional[UpgradeHandler] = None

        self._server: Optional[asyncio.AbstractServer] = None
        self._bound_port: Optional[int] = None
        self._connections: Set[Connection] = set()

    def __repr__(self) -> str:
        return f"Listener({self.protocol}://{self.bind}:{self.port})"

    @property
    def port(self) -> int:
        """Actual bound port (differs from the requested one for port 0)."""
        if self._bound_port is not None:
            return self._bound_port
        return self.requested_port

    @property
    def address(self) -> tuple[str, int]:
        return (self.bind, self.port)

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def attach(self, upgrade_handler: UpgradeHandler) -> None:
        """Route upgrade requests on this listener to upgrade_handler."""
        self.upgrade_handler = upgrade_handler

    async def start(self) -> None:
        """
        Bind and start accepting.

        Raises:
            OSError: If the address cannot be resolved or bound.
        """
        sock = await self._create_socket()
        self._bound_port = sock.getsockname()[1]
        try:
            self._server = await asyncio.start_server(
                self._on_connection,
                sock=sock,
                ssl=self.ssl_context if self.protocol == "https" else None,
            )
        except BaseException:
            sock.close()
            raise
        logger.debug(f"Listening on {self.protocol}://{self.bind}:{self.port}")

    async def _create_socket(self) -> socket.socket:
        loop = asyncio.get_running_loop()
        infos = await loop.getaddrinfo(
            self.bind,
            self.requested_port,
            type=socket.SOCK_STREAM,
            flags=socket.AI_PASSIVE,
        )
        # IPv4 first, so "localhost" binds 127.0.0.1 where both exist
        infos.sort(key=lambda info: info[0] != socket.AF_INET)
        family, socktype, proto, _, address = infos[0]

        sock = socket.socket(family, socktype, proto)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.bind(address)
            sock.listen(self.config.backlog)
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise
        return sock

    async def _on_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        connection = Connection(reader, writer, self)
        self._connections.add(connection)
        try:
            await connection.serve()
        finally:
            # Upgraded streams stay tracked until the listener closes
            if not connection.is_upgraded:
                self._connections.discard(connection)

    async def close(self) -> None:
        """
        Stop accepting and close open HTTP connections.

        Idle keep-alive connections are closed too; otherwise
        wait_closed() would wait for their timeout.
        """
        if self._server is None:
            return
        server, self._server = self._server, None
        server.close()
        for connection in list(self._connections):
            await connection.close()
        await server.wait_closed()
        logger.debug(f"Closed {self.protocol}://{self.bind}:{self.port}")
