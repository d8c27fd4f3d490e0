"""
Unit tests for the command-line entry point.
"""

import asyncio

import pytest

from kubikhttp import __version__
from kubikhttp.__main__ import build_parser, http_section, main, parse_server, serve
from kubikhttp.kubik import App, Component


class TestParseServer:
    """Tests for parse_server()."""

    def test_host_and_port(self):
        assert parse_server("127.0.0.1:9090") == {"bind": "127.0.0.1", "port": "9090"}

    def test_port_only(self):
        assert parse_server("9090") == {"bind": None, "port": "9090"}

    def test_ipv6(self):
        assert parse_server("::1:9090") == {"bind": "::1", "port": "9090"}


class TestArguments:
    """Tests for argument parsing."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("HTTP_PORT", raising=False)
        monkeypatch.delenv("HTTP_BIND", raising=False)
        monkeypatch.delenv("HTTP_LOG_LEVEL", raising=False)

        args = build_parser().parse_args([])

        assert args.port == "8080"
        assert args.bind == "localhost"
        assert args.volume == []
        assert args.log_level == "INFO"
        assert args.access_log is False

    def test_environment_defaults(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "3000")
        monkeypatch.setenv("HTTP_LOG_LEVEL", "debug")

        args = build_parser().parse_args([])

        assert args.port == "3000"
        assert args.log_level == "DEBUG"

    def test_http_section(self):
        args = build_parser().parse_args([
            "--port", "0",
            "--bind", "0",
            "--server", "127.0.0.1:9090",
            "--server", "9091",
            "--volume", "routes",
            "--access-log",
        ])

        assert args.volume == ["routes"]
        assert http_section(args) == {
            "port": "0",
            "bind": "0",
            "servers": [
                {"bind": "127.0.0.1", "port": "9090"},
                {"bind": None, "port": "9091"},
            ],
            "access_log": True,
        }

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestMain:
    """Tests for main() and serve()."""

    def test_boot_failure_exits_1(self, tmp_path, capsys):
        """A broken route module aborts the boot."""
        (tmp_path / "broken.py").write_text("raise RuntimeError('broken module')\n")

        code = main(["--port", "0", "--bind", "127.0.0.1", "--volume", str(tmp_path)])

        assert code == 1
        assert "broken.py" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_serve_stops_on_event(self):
        """serve() brings the app up, waits, and brings it down."""
        events = []

        class Recorder(Component):
            name = "recorder"

            async def after(self):
                events.append("after")

            async def stop(self):
                events.append("stop")

        stop_event = asyncio.Event()
        app = App([Recorder()])
        task = asyncio.ensure_future(serve(app, stop_event))
        await asyncio.sleep(0.01)
        assert app.is_up is True

        stop_event.set()
        await task

        assert events == ["after", "stop"]
        assert app.is_up is False
