"""
Networking core: bind resolution, listeners and their connections.

    bind.py        config bind value -> host
    connection.py  one client stream, HTTP/1.1 keep-alive loop
    listener.py    one bound socket + asyncio server
    manager.py     ordered set of listeners, start/stop
"""

from .bind import resolve_bind, ANY_INTERFACE, DEFAULT_BIND
from .connection import Connection, ConnectionState
from .listener import Listener
from .manager import ListenerManager, ListenerSet

__all__ = [
    "resolve_bind",
    "ANY_INTERFACE",
    "DEFAULT_BIND",
    "Connection",
    "ConnectionState",
    "Listener",
    "ListenerManager",
    "ListenerSet",
]
