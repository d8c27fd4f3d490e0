"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Two families of errors live here:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  BOOT-TIME (raised during up/after/start, abort the phase)          │
    ├─────────────────────────────────────────────────────────────────────┤
    │   ConfigurationError        http section missing, bad dep graph     │
    │   DiscoveryLoadError        module in a volume failed to load       │
    │   NoListenerError           start() opened zero listeners           │
    │   BindFailure               OS refused a bind                       │
    │   HandlerRegistrationError  catch() given a non-callable            │
    ├─────────────────────────────────────────────────────────────────────┤
    │  REQUEST-TIME (raised by stages, recovered by the error dispatcher) │
    ├─────────────────────────────────────────────────────────────────────┤
    │   HttpError                 kind=HTTP, code + public status text    │
    │   SystemStatusError         kind=SYSTEM, code only                  │
    └─────────────────────────────────────────────────────────────────────┘

Request-time errors carry an explicit ErrorKind tag. The dispatcher reads
the tag, never the class name, so subclassing or renaming keeps working.
=============================================================================
"""

from enum import Enum
from typing import Optional

from .http.status_codes import reason_phrase


class ErrorKind(Enum):
    """Discriminant carried by request-time errors."""
    HTTP = "http"        # explicit status + public status text
    SYSTEM = "system"    # status code only, text from reason phrases


# =============================================================================
# BOOT-TIME ERRORS
# =============================================================================

class KubikHTTPError(Exception):
    """Root of every boot-time error raised by this package."""


class ConfigurationError(KubikHTTPError):
    """Required configuration is missing or inconsistent."""


class DiscoveryLoadError(KubikHTTPError):
    """
    A module found in a discovery directory could not be loaded.

    Discovery stops at the first failure; a half-loaded route surface is
    never served.
    """

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        message = f"Failed to load {path}"
        if cause is not None:
            message += f": {type(cause).__name__}: {cause}"
        super().__init__(message)
        self.path = path


class NoListenerError(KubikHTTPError, TypeError):
    """start() finished without a single bound listener."""


class BindFailure(KubikHTTPError, OSError):
    """
    A listener could not be bound.

    Listeners opened before the failure stay open.
    """

    def __init__(self, message: str, bind: str = "", port: int = 0):
        super().__init__(message)
        self.bind = bind
        self.port = port


class HandlerRegistrationError(KubikHTTPError, TypeError):
    """An error handler was registered that is not callable."""


# =============================================================================
# REQUEST-TIME ERRORS
# =============================================================================

class DomainError(Exception):
    """
    Base for errors the error dispatcher knows how to classify.

    Attributes:
        kind: ErrorKind tag used for classification.
        code: HTTP status code to respond with.
    """

    kind: Optional[ErrorKind] = None

    def __init__(self, message: str = "", code: int = 500):
        super().__init__(message)
        self.code = int(code)


class HttpError(DomainError):
    """
    An error with an explicit status and a public status text.

    Usage:
        raise HttpError("token expired", 401, "Unauthorized, sign in again")

    The response body becomes:
        {"error": "token expired", "code": 401,
         "message": "Unauthorized, sign in again"}
    """

    kind = ErrorKind.HTTP

    def __init__(
        self,
        message: str = "",
        code: int = 500,
        status_message: Optional[str] = None,
    ):
        super().__init__(message, code)
        # Default text is the standard reason phrase for the code
        self.status_message = (
            status_message if status_message is not None
            else reason_phrase(self.code, "Unknown Error")
        )


class SystemStatusError(DomainError):
    """An error that only carries a status code."""

    kind = ErrorKind.SYSTEM
