"""
=============================================================================
LISTENER MANAGER
=============================================================================

Opens, tracks and closes the HTTP component's listeners.

    start(config)
      │
      ├─► primary        config.port / config.bind         (port 0 allowed)
      │
      ├─► servers[0..n]  sequential, in configured order
      │      None entry            -> warning, skipped
      │      no truthy numeric port -> warning, skipped
      │
      ├─► nothing opened -> NoListenerError
      └─► "HTTP Servers started — a:1, b:2"

A bind failure aborts start() with BindFailure. Listeners opened before
it stay open and tracked; stop() closes them.

The ListenerSet keeps bind-attempt order, so servers[0] is always the
primary listener when one is configured.
=============================================================================
"""

from typing import Any, Callable, Iterator, List, Optional
import asyncio
import logging
import ssl

from ..config import HTTPConfig, PROTOCOLS, ServerEntry
from ..errors import BindFailure, NoListenerError
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .bind import resolve_bind
from .listener import Listener


logger = logging.getLogger(__name__)

UNDEFINED_SERVER = "One of the config's servers is undefined"
INVALID_SERVER_PORT = "One of the config's servers has invalid port"
NO_LISTENER = "Server not started, because http config does not contain any port or server with port"


class ListenerSet:
    """Live listeners in the order they were bound."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def add(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def discard(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear(self) -> None:
        self._listeners.clear()

    def get(self, index: int, default: Optional[Listener] = None) -> Optional[Listener]:
        if 0 <= index < len(self._listeners):
            return self._listeners[index]
        return default

    def __getitem__(self, index: int) -> Listener:
        return self._listeners[index]

    def __iter__(self) -> Iterator[Listener]:
        return iter(list(self._listeners))

    def __len__(self) -> int:
        return len(self._listeners)

    def __contains__(self, listener: object) -> bool:
        return listener in self._listeners

    def __repr__(self) -> str:
        return f"ListenerSet({self._listeners!r})"


class ListenerManager:
    """
    Binds listeners from an HTTPConfig and shuts them down again.

    Args:
        handler: Request handler every listener serves
        log: Where operational lines go (the host's Log component);
             anything with warning() and info()
        ssl_context: Required for https entries
    """

    def __init__(
        self,
        handler: Callable[[HTTPRequest], HTTPResponse],
        log: Any = None,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        self.handler = handler
        self.log = log or logger
        self.ssl_context = ssl_context
        self.config = HTTPConfig()
        self.listeners = ListenerSet()

    async def start(self, config: HTTPConfig) -> ListenerSet:
        """
        Bind the primary listener, then every additional server in order.

        Raises:
            BindFailure: The OS refused a bind; earlier listeners stay open.
            NoListenerError: No listener could be opened at all.
        """
        self.config = config

        primary_port = config.primary_port
        if primary_port is not None:
            await self.listen(primary_port, config.bind)

        for value in config.servers:
            if value is None:
                self.log.warning(UNDEFINED_SERVER)
                continue
            entry = ServerEntry.from_value(value)
            if entry is None:
                self.log.warning(INVALID_SERVER_PORT)
                continue
            await self.listen(entry.port, entry.bind, entry.protocol)

        if not self.listeners:
            raise NoListenerError(NO_LISTENER)

        addresses = ", ".join(f"{listener.bind}:{listener.port}" for listener in self.listeners)
        plural = "s" if len(self.listeners) > 1 else ""
        self.log.info(f"HTTP Server{plural} started — {addresses}")
        return self.listeners

    async def listen(self, port: int, bind: Any = None, protocol: str = "http") -> Listener:
        """
        Bind one listener and track it.

        Raises:
            BindFailure: Unknown protocol, https without an ssl context,
                or an OS-level bind error.
        """
        host = resolve_bind(bind)

        if protocol not in PROTOCOLS:
            raise BindFailure(f"Unsupported protocol {protocol!r} for {host}:{port}", host, port)
        if protocol == "https" and self.ssl_context is None:
            raise BindFailure(f"https listener {host}:{port} needs an ssl_context", host, port)

        listener = Listener(
            host,
            port,
            protocol=protocol,
            handler=self.handler,
            config=self.config,
            ssl_context=self.ssl_context,
        )
        try:
            await listener.start()
        except OSError as e:
            raise BindFailure(f"Cannot bind {protocol}://{host}:{port}: {e}", host, port) from e

        self.listeners.add(listener)
        return listener

    async def close(self, listener: Listener) -> None:
        """Close one listener and stop tracking it."""
        await listener.close()
        self.listeners.discard(listener)

    async def stop(self) -> None:
        """
        Close every listener concurrently.

        The set is cleared only after all closes finished; the first
        close failure is then re-raised.
        """
        listeners = list(self.listeners)
        results = await asyncio.gather(
            *(listener.close() for listener in listeners),
            return_exceptions=True,
        )
        self.listeners.clear()

        for result in results:
            if isinstance(result, BaseException):
                raise result
        if listeners:
            logger.info(f"Closed {len(listeners)} HTTP listener(s)")
