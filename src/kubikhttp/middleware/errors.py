"""
=============================================================================
ERROR DISPATCHER
=============================================================================

The last stage of the HTTP pipeline. Whatever a stage raises ends up here
and becomes a JSON response:

    ┌───────────────────────┬────────┬──────────────────────────────────┐
    │ error.kind            │ status │ "message"                        │
    ├───────────────────────┼────────┼──────────────────────────────────┤
    │ ErrorKind.HTTP        │ code   │ error.status_message             │
    │ ErrorKind.SYSTEM      │ code   │ reason phrase, or "Strange code" │
    │ anything else         │ 500    │ "Internal server error"          │
    └───────────────────────┴────────┴──────────────────────────────────┘

    Body: {"error": str(error), "code": status, "message": ...}

A custom handler registered with catch() replaces this table entirely.
=============================================================================
"""

from dataclasses import dataclass
from typing import Callable, Optional
import logging

from .base import ErrorMiddleware, NextHandler
from ..errors import ErrorKind, HandlerRegistrationError
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, json_response
from ..http.status_codes import reason_phrase


logger = logging.getLogger(__name__)

ErrorHandler = Callable[[BaseException, HTTPRequest, NextHandler], HTTPResponse]


@dataclass(frozen=True)
class ErrorResult:
    """How a caught error is reported to the client."""

    status_code: int
    error_kind: Optional[ErrorKind]
    public_message: str
    error: str

    def to_dict(self) -> dict:
        return {
            "error": self.error,
            "code": self.status_code,
            "message": self.public_message,
        }


def classify(error: BaseException) -> ErrorResult:
    """
    Classify an error by its kind tag.

    The error is only read, never modified.
    """
    kind = getattr(error, "kind", None)

    if kind is ErrorKind.HTTP:
        code = int(error.code)
        return ErrorResult(
            status_code=code,
            error_kind=kind,
            public_message=(
                getattr(error, "status_message", None)
                or reason_phrase(code, "Unknown Error")
            ),
            error=str(error),
        )

    if kind is ErrorKind.SYSTEM:
        code = int(error.code)
        return ErrorResult(
            status_code=code,
            error_kind=kind,
            public_message=reason_phrase(code, "Strange code"),
            error=str(error),
        )

    return ErrorResult(
        status_code=500,
        error_kind=None,
        public_message="Internal server error",
        error=str(error),
    )


class ErrorDispatcher(ErrorMiddleware):
    """
    Catch-all error stage.

        dispatcher = ErrorDispatcher()
        dispatcher.catch(lambda error, request, next: ok("handled"))

        pipeline.use(dispatcher)
    """

    def __init__(self, handler: Optional[ErrorHandler] = None):
        self._handler: Optional[ErrorHandler] = None
        if handler is not None:
            self.catch(handler)

    @property
    def handler(self) -> Optional[ErrorHandler]:
        return self._handler

    def catch(self, handler: ErrorHandler) -> "ErrorDispatcher":
        """
        Replace default classification with a custom handler.

        Raises:
            HandlerRegistrationError: If handler is not callable.
        """
        if not callable(handler):
            raise HandlerRegistrationError("catcher is not a function")
        self._handler = handler
        return self

    set_error_handler = catch

    def __call__(
        self,
        error: BaseException,
        request: HTTPRequest,
        next: NextHandler
    ) -> HTTPResponse:
        if self._handler is not None:
            return self._handler(error, request, next)

        result = classify(error)
        if result.error_kind is None:
            logger.exception(
                f"Unhandled error in {request.method} {request.original_path}",
                exc_info=error,
            )
        else:
            logger.warning(
                f"{request.method} {request.original_path} -> "
                f"{result.status_code} {result.error}"
            )
        return json_response(result.status_code, result.to_dict())
