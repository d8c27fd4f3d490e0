"""
Tests for the socket kubik attaching to an HTTP listener.
"""

import asyncio
import logging

import pytest

from kubikhttp import HTTP, Socket
from kubikhttp.errors import ConfigurationError
from kubikhttp.socket import websocket_accept


LOCAL = {"port": 0, "bind": "127.0.0.1"}
KEY = "dGhlIHNhbXBsZSBub25jZQ=="


def upgrade_request(path: str = "/", key: str = KEY) -> bytes:
    lines = [
        f"GET {path} HTTP/1.1",
        "Host: 127.0.0.1",
        "Connection: Upgrade",
        "Upgrade: websocket",
        "Sec-WebSocket-Version: 13",
    ]
    if key:
        lines.append(f"Sec-WebSocket-Key: {key}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("ascii")


def test_websocket_accept():
    """RFC 6455 sample handshake."""
    assert websocket_accept(KEY) == "s3pPLMBiTxaQ9kYGzzhZRbK+xOo="


class TestEvents:
    """Tests for on/off/emit."""

    @pytest.mark.asyncio
    async def test_emit_counts_listeners(self):
        socket = Socket()
        calls = []

        async def async_listener(value):
            calls.append(("async", value))

        socket.on("message", lambda value: calls.append(("sync", value)))
        socket.on("message", async_listener)

        assert await socket.emit("message", 1) == 2
        assert await socket.emit("unknown") == 0
        assert calls == [("sync", 1), ("async", 1)]

    def test_off(self):
        socket = Socket()
        first, second = (lambda: None), (lambda: None)
        socket.on("x", first).on("x", second)

        socket.off("x", first)
        assert socket.listeners("x") == [second]

        socket.off("x")
        assert socket.listeners("x") == []

    def test_on_requires_callable(self):
        with pytest.raises(TypeError):
            Socket().on("x", "nope")


@pytest.mark.asyncio
class TestAttach:
    """Tests for Socket.after() and upgrades."""

    async def test_attaches_to_primary(self, make_app, caplog):
        http, socket = HTTP(), Socket()

        with caplog.at_level(logging.INFO, logger="kubikhttp"):
            await make_app(LOCAL, socket, http=http).up()

        assert socket.listener is http.servers[0]
        assert http.servers[0].upgrade_handler == socket.handle_upgrade
        assert "Socket attached to the server" in caplog.text

    async def test_missing_server_index(self, make_app):
        socket = Socket()
        app = make_app(LOCAL, socket)
        app.use({"http/socket": {"server_index": 3}})

        with pytest.raises(ConfigurationError) as exc_info:
            await app.up()

        assert str(exc_info.value) == "3 server of http is not defined. Up http first."

    async def test_second_server(self, make_app, free_port, caplog):
        http, socket = HTTP(), Socket()
        socket.server_index = 1
        config = {**LOCAL, "servers": [{"port": free_port, "bind": "127.0.0.1"}]}

        with caplog.at_level(logging.INFO, logger="kubikhttp"):
            await make_app(config, socket, http=http).up()

        assert socket.listener.port == free_port
        assert "Socket attached to the server 2" in caplog.text

    async def test_config_section_merged(self, make_app):
        socket = Socket({"path": "/socket", "ping": 10})
        await make_app({**LOCAL, "socket": {"ping": 30}}, socket).up()

        assert socket.options == {"path": "/socket", "ping": 30}

    async def test_handshake_and_connection_event(self, make_app, read_response):
        http, socket = HTTP(), Socket({"path": "/socket"})
        connections = []

        async def on_connection(connection):
            connections.append(connection)
            await connection.send_text("hello")

        socket.on("connection", on_connection)
        app = make_app(LOCAL, socket, http=http)
        await app.up()

        reader, writer = await asyncio.open_connection("127.0.0.1", http.servers[0].port)
        try:
            writer.write(upgrade_request("/socket"))
            await writer.drain()

            response = await read_response(reader)
            frame = await asyncio.wait_for(reader.readexactly(7), 2)
        finally:
            writer.close()

        assert response.status == 101
        assert response.headers["sec-websocket-accept"] == websocket_accept(KEY)
        assert frame == b"\x81\x05hello"
        assert len(connections) == 1
        assert connections[0].app is app
        assert connections[0].request.path == "/socket"

    async def test_wrong_path_refused(self, make_app, send_raw):
        http = HTTP()
        await make_app(LOCAL, Socket({"path": "/socket"}), http=http).up()

        response = await send_raw(http.servers[0].port, upgrade_request("/elsewhere"))

        assert response.status == 404

    async def test_missing_key_refused(self, make_app, send_raw):
        http = HTTP()
        await make_app(LOCAL, Socket(), http=http).up()

        response = await send_raw(http.servers[0].port, upgrade_request("/", key=""))

        assert response.status == 400

    async def test_plain_http_still_served(self, make_app, fetch):
        http = HTTP()
        await make_app(LOCAL, Socket(), http=http).up()

        response = await fetch(http.servers[0].port, "/plain")

        assert response.status == 404
