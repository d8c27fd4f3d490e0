"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

Every pipeline stage returns an HTTPResponse. The listener serializes it
with to_bytes() and writes it to the client stream:

    HTTP/1.1 200 OK\\r\\n                   <- status line
    Content-Type: application/json\\r\\n
    Content-Length: 27\\r\\n                <- added by to_bytes()
    Date: Mon, 19 Oct 2026 12:00:00 GMT\\r\\n  <- added by to_bytes()
    Server: kubik-http\\r\\n               <- added by to_bytes()
    \\r\\n
    {"message": "Hello"}

Statuses are plain ints on the wire. HTTPStatus members are ints too, so
handlers can use either; codes without a standard phrase get "Unknown".
=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus, reason_phrase


DEFAULT_SERVER_NAME = "kubik-http"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be sent.

    Use ResponseBuilder or the helpers at the bottom of this module
    rather than filling the fields by hand.
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Status line, e.g. "HTTP/1.1 200 OK"."""
        code = int(self.status)
        return f"{self.version} {code} {reason_phrase(code, 'Unknown')}"

    @property
    def json(self) -> Any:
        """Body decoded as JSON (handy in tests and post-processing stages)."""
        return json.loads(self.body.decode("utf-8")) if self.body else None

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def set_content_type(self, content_type: str) -> "HTTPResponse":
        return self.set_header("Content-Type", content_type)

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize for the socket.

        Content-Length, Date and Server are added unless a stage already
        set them. The response itself is left untouched.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .json({"id": 1})
            .header("Location", "/users/1")
            .build())
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """Serialize data as the JSON body (UTF-8, no ASCII escaping)."""
        indent = 2 if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an HTTP-date: "Mon, 19 Oct 2026 12:00:00 GMT".

    Built by hand because strftime's day and month names follow the locale.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def json_response(status: int, data: Any) -> HTTPResponse:
    """A JSON response with an arbitrary status."""
    return ResponseBuilder().status(status).json(data).build()


def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    200 OK. dict/list bodies become JSON, str becomes text/plain,
    bytes are sent as-is.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)

    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or "text/plain; charset=utf-8")
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)

    return builder.build()


def created(body: Union[dict, list, None] = None, location: Optional[str] = None) -> HTTPResponse:
    builder = ResponseBuilder().status(HTTPStatus.CREATED)
    if body is not None:
        builder.json(body)
    if location:
        builder.header("Location", location)
    return builder.build()


def no_content() -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.NO_CONTENT).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return json_response(HTTPStatus.BAD_REQUEST, {"error": message})


def not_found(message: str = "Not Found") -> HTTPResponse:
    return json_response(HTTPStatus.NOT_FOUND, {"error": message})


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return json_response(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": message})
