"""
=============================================================================
BODY PARSERS
=============================================================================

Request stages that decode the body into request.parsed_body. The API
component installs both, configured from http.api.parser:

    api:
      parser:
        json:       {limit: "1mb"}
        urlencoded: {limit: "100kb"}

A parser only touches requests with its content type. Oversized bodies
raise HttpError 413 and malformed ones HttpError 400, which the error
dispatcher turns into JSON responses.
=============================================================================
"""

from typing import Any, Dict, Union
from urllib.parse import parse_qs
import json
import re

from .base import Middleware, NextHandler
from ..errors import HttpError
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


DEFAULT_LIMIT = "100kb"

_UNITS = {"b": 1, "kb": 1024, "mb": 1024 ** 2, "gb": 1024 ** 3}
_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(b|kb|mb|gb)?\s*$", re.IGNORECASE)


def parse_size(value: Union[int, str]) -> int:
    """
    Convert a size limit to bytes.

        parse_size(2048)      -> 2048
        parse_size("100kb")   -> 102400
        parse_size("1.5mb")   -> 1572864

    Raises:
        ValueError: If the value is not a size.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid size: {value!r}")
    if isinstance(value, int):
        return value
    match = _SIZE_PATTERN.match(str(value))
    if not match:
        raise ValueError(f"Invalid size: {value!r}")
    number, unit = match.groups()
    return int(float(number) * _UNITS[(unit or "b").lower()])


class BodyParser(Middleware):
    """Shared limit handling; subclasses decode one content type."""

    content_type = ""

    def __init__(self, limit: Union[int, str] = DEFAULT_LIMIT, **options: Any):
        self.limit = parse_size(limit)
        self.options = options

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if request.content_type != self.content_type or request.parsed_body is not None:
            return next(request)

        if len(request.body) > self.limit:
            raise HttpError("request entity too large", 413)

        request.parsed_body = self.decode(request.body) if request.body else {}
        return next(request)

    def decode(self, body: bytes) -> Any:
        raise NotImplementedError


class JSONBodyParser(BodyParser):
    """application/json -> request.parsed_body."""

    content_type = "application/json"

    def decode(self, body: bytes) -> Any:
        try:
            return json.loads(body.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise HttpError(f"Invalid JSON body: {e}", 400) from e


class URLEncodedBodyParser(BodyParser):
    """
    application/x-www-form-urlencoded -> request.parsed_body.

    Keys that appear once map to a string, repeated keys to a list.
    """

    content_type = "application/x-www-form-urlencoded"

    def decode(self, body: bytes) -> Dict[str, Any]:
        fields = parse_qs(body.decode("utf-8", errors="replace"), keep_blank_values=True)
        return {
            name: values[0] if len(values) == 1 else values
            for name, values in fields.items()
        }
