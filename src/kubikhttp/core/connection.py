"""
=============================================================================
CLIENT CONNECTION
=============================================================================

One accepted TCP connection, served on the event loop:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Connection.serve()                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   read_request()     headers up to \\r\\n\\r\\n, then Content-Length  │
    │        │             bytes; None on EOF or idle keep-alive timeout  │
    │        ▼                                                            │
    │   RequestParser      HTTPParseError -> error response, close        │
    │        │                                                            │
    │        ├── Upgrade: websocket + attached handler                    │
    │        │       └──► hand the streams over, stop serving HTTP        │
    │        ▼                                                            │
    │   listener.handler   the HTTP pipeline; escaped errors -> 500       │
    │        │                                                            │
    │        ▼                                                            │
    │   write response     keep-alive? loop : close                       │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Pipeline stages are synchronous and run right here on the loop thread.
=============================================================================
"""

from enum import Enum
from typing import Any, Optional
import asyncio
import logging
import re
import time
import uuid

from ..http.request import HTTPParseError, HTTPRequest, RequestParser
from ..http.response import HTTPResponse, internal_error, json_response


logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"
_CONTENT_LENGTH = re.compile(rb"^content-length:\s*(\d+)\s*$", re.IGNORECASE | re.MULTILINE)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    UPGRADED = "upgraded"
    CLOSED = "closed"


class Connection:
    """
    Serves HTTP requests from one client stream pair.

    The listener owns handler, config and the optional upgrade handler;
    the connection reads them per request, so a real-time handler attached
    after the listener started still sees new upgrade requests.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        listener: Any,
    ):
        self.reader = reader
        self.writer = writer
        self.listener = listener
        self.config = listener.config

        peer = writer.get_extra_info("peername") or ("", 0)
        self.address: tuple[str, int] = (peer[0], peer[1])
        self.id = uuid.uuid4().hex[:8]
        self.state = ConnectionState.NEW
        self.created_at = time.time()
        self.requests_handled = 0

        self._parser = RequestParser(max_request_size=self.config.max_request_size)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def is_upgraded(self) -> bool:
        return self.state is ConnectionState.UPGRADED

    @property
    def is_closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    async def serve(self) -> None:
        """Request loop; returns once the connection is closed or upgraded."""
        try:
            while True:
                data = await self.read_request()
                if data is None:
                    break

                try:
                    request = self._parser.parse(data, self.address)
                except HTTPParseError as e:
                    logger.debug(f"[{self.id}] Parse error: {e}")
                    await self.send(
                        json_response(e.status_code, {"error": str(e)}), keep_alive=False
                    )
                    break

                upgrade = getattr(self.listener, "upgrade_handler", None)
                if request.is_upgrade and upgrade is not None:
                    self.state = ConnectionState.UPGRADED
                    await upgrade(request, self.reader, self.writer)
                    return

                self.state = ConnectionState.PROCESSING
                response = self.respond(request)
                keep_alive = (
                    self.config.keep_alive
                    and request.is_keep_alive
                    and response.headers.get("Connection", "").lower() != "close"
                )
                await self.send(response, keep_alive, head=request.method == "HEAD")
                if not keep_alive:
                    break
                self.state = ConnectionState.KEEP_ALIVE
        except (ConnectionError, asyncio.IncompleteReadError, asyncio.TimeoutError) as e:
            logger.debug(f"[{self.id}] Connection lost: {e}")
        finally:
            if self.state is not ConnectionState.UPGRADED:
                await self.close()

    def respond(self, request: HTTPRequest) -> HTTPResponse:
        """Run the pipeline; an error that escapes it becomes a 500."""
        try:
            return self.listener.handler(request)
        except Exception:
            logger.exception(f"[{self.id}] Unhandled error for {request.method} {request.path}")
            return internal_error()

    async def read_request(self) -> Optional[bytes]:
        """
        Read one complete request.

        Returns None when the client closed the stream, the idle timeout
        expired before a new request started, or the request was too large
        (answered with 431 or 413 here).
        """
        self.state = ConnectionState.READING
        timeout = (
            self.config.keep_alive_timeout if self.requests_handled
            else self.config.timeout
        )

        try:
            head = await asyncio.wait_for(self.reader.readuntil(HEADER_TERMINATOR), timeout)
        except asyncio.TimeoutError:
            logger.debug(f"[{self.id}] Read timeout after {self.requests_handled} requests")
            return None
        except asyncio.IncompleteReadError:
            return None
        except asyncio.LimitOverrunError:
            await self.send(
                json_response(431, {"error": "Request header fields too large"}),
                keep_alive=False,
            )
            return None

        match = _CONTENT_LENGTH.search(head)
        content_length = int(match.group(1)) if match else 0

        if len(head) + content_length > self.config.max_request_size:
            await self.send(
                json_response(413, {"error": f"Request too large: {len(head) + content_length} bytes"}),
                keep_alive=False,
            )
            return None

        body = b""
        if content_length:
            body = await asyncio.wait_for(self.reader.readexactly(content_length), self.config.timeout)

        self.requests_handled += 1
        return head + body

    async def send(self, response: HTTPResponse, keep_alive: bool, head: bool = False) -> None:
        self.state = ConnectionState.WRITING
        response.headers["Connection"] = "keep-alive" if keep_alive else "close"
        if head:
            response.headers.setdefault("Content-Length", str(len(response.body)))
            response.body = b""
        self.writer.write(response.to_bytes(self.config.server_name))
        await self.writer.drain()

    async def close(self) -> None:
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError):
            pass
