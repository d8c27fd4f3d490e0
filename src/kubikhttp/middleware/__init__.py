"""Pipeline stages: the chain itself, error dispatch, access logs, body parsing."""

from .base import (
    Middleware,
    ErrorMiddleware,
    FunctionMiddleware,
    function_middleware,
    NextHandler,
    Pipeline,
)
from .errors import ErrorDispatcher, ErrorResult, classify
from .logging import AccessLogMiddleware
from .body import JSONBodyParser, URLEncodedBodyParser, parse_size

__all__ = [
    "Middleware",
    "ErrorMiddleware",
    "FunctionMiddleware",
    "function_middleware",
    "NextHandler",
    "Pipeline",
    "ErrorDispatcher",
    "ErrorResult",
    "classify",
    "AccessLogMiddleware",
    "JSONBodyParser",
    "URLEncodedBodyParser",
    "parse_size",
]
