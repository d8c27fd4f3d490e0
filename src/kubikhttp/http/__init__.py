"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

    request.py        raw bytes  ->  HTTPRequest
    response.py       HTTPResponse  ->  raw bytes, plus builder helpers
    status_codes.py   HTTPStatus, reason_phrase()
    router.py         (method, path)  ->  handler, mountable in a Pipeline
=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    json_response,
    ok,
    created,
    no_content,
    bad_request,
    not_found,
    internal_error,
)
from .router import Router, Route, RouteMatch
from .status_codes import HTTPStatus, reason_phrase

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "json_response",
    "ok",
    "created",
    "no_content",
    "bad_request",
    "not_found",
    "internal_error",
    "Router",
    "Route",
    "RouteMatch",
    "HTTPStatus",
    "reason_phrase",
]
