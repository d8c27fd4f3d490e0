"""
pytest configuration and fixtures.
"""

import asyncio
import json
import socket
from typing import Any, Dict, Optional

import pytest
import pytest_asyncio

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from kubikhttp import App, ConfigComponent, HTTP, LogComponent


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


def get_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    return get_free_port()


@pytest.fixture
def free_ports():
    """Factory for n distinct free ports."""
    def _ports(count: int) -> list:
        ports = []
        while len(ports) < count:
            port = get_free_port()
            if port not in ports:
                ports.append(port)
        return ports
    return _ports


class RawResponse:
    """Response read off the wire by fetch()."""

    def __init__(self, status: int, headers: Dict[str, str], body: bytes):
        self.status = status
        self.headers = headers
        self.body = body

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


async def _read_response(reader: asyncio.StreamReader) -> RawResponse:
    head = await reader.readuntil(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        if ":" in line:
            name, value = line.split(":", 1)
            headers[name.strip().lower()] = value.strip()
    length = int(headers.get("content-length", 0))
    body = await reader.readexactly(length) if length else b""
    return RawResponse(status, headers, body)


async def _send_raw(port: int, data: bytes, host: str = "127.0.0.1") -> RawResponse:
    reader, writer = await asyncio.open_connection(host, port)
    try:
        writer.write(data)
        await writer.drain()
        return await _read_response(reader)
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except ConnectionError:
            pass


@pytest.fixture
def send_raw():
    """Send raw bytes, read one response: await send_raw(port, b"GET / ...")."""
    return _send_raw


@pytest.fixture
def read_response():
    """Read one response off an open StreamReader."""
    return _read_response


@pytest.fixture
def fetch():
    """
    Async HTTP client over raw streams.

        response = await fetch(port, "/users", method="POST", body=b"{}")
    """
    async def _fetch(
        port: int,
        path: str = "/",
        method: str = "GET",
        body: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
        host: str = "127.0.0.1",
    ) -> RawResponse:
        lines = [f"{method} {path} HTTP/1.1", f"Host: {host}:{port}", "Connection: close"]
        for name, value in (headers or {}).items():
            lines.append(f"{name}: {value}")
        if body:
            lines.append(f"Content-Length: {len(body)}")
        data = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body
        return await _send_raw(port, data, host)
    return _fetch


@pytest_asyncio.fixture
async def make_app():
    """
    Build an App with config, log and http kubiks; stopped on teardown.

        app = make_app({"port": 0, "bind": "127.0.0.1"}, API())
    """
    apps = []

    def _make(http_config: Any, *kubiks: Any, http: Optional[HTTP] = None) -> App:
        app = App([
            ConfigComponent({"http": http_config}),
            LogComponent(level="DEBUG"),
            http or HTTP(),
            *kubiks,
        ])
        apps.append(app)
        return app

    yield _make

    for app in apps:
        await app.down()
