"""
=============================================================================
KUBIK-HTTP
=============================================================================

An HTTP serving layer packaged as a kubik: a component that a host App
activates in two phases.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                            App.up()                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │   config.up   log.up   http.up ─────► pipeline assembled            │
    │                                        (stages, routers, volumes)   │
    │   config.after  log.after  http.after ► error dispatcher appended,  │
    │                                         listeners bound             │
    └─────────────────────────────────────────────────────────────────────┘

Quick start:

    from kubikhttp import App, ConfigComponent, LogComponent, HTTP

    app = App([
        ConfigComponent({"http": {"port": 8080, "bind": 0}}),
        LogComponent(),
        HTTP("routes"),          # every module in ./routes is loaded
    ])
    await app.up()

A route module:

    # routes/users.py
    from kubikhttp import Router, ok

    name = "/users"
    router = Router()

    @router.get("/:id")
    def get_user(request):
        return ok({"id": request.path_params["id"]})
=============================================================================
"""

__version__ = "1.0.0"

from .api import API
from .component import HTTP
from .config import HTTPConfig, ServerEntry, coerce_port
from .core.bind import resolve_bind
from .errors import (
    BindFailure,
    ConfigurationError,
    DiscoveryLoadError,
    DomainError,
    ErrorKind,
    HandlerRegistrationError,
    HttpError,
    KubikHTTPError,
    NoListenerError,
    SystemStatusError,
)
from .http.request import HTTPRequest
from .http.response import HTTPResponse, ResponseBuilder, json_response, ok
from .http.router import Router
from .kubik import App, Component, ConfigComponent, LogComponent
from .middleware import ErrorDispatcher, Middleware, Pipeline
from .socket import RealtimeConnection, Socket

__all__ = [
    "__version__",
    "API",
    "HTTP",
    "Socket",
    "RealtimeConnection",
    "App",
    "Component",
    "ConfigComponent",
    "LogComponent",
    "HTTPConfig",
    "ServerEntry",
    "coerce_port",
    "resolve_bind",
    "Pipeline",
    "Middleware",
    "ErrorDispatcher",
    "Router",
    "HTTPRequest",
    "HTTPResponse",
    "ResponseBuilder",
    "json_response",
    "ok",
    "ErrorKind",
    "KubikHTTPError",
    "ConfigurationError",
    "DiscoveryLoadError",
    "NoListenerError",
    "BindFailure",
    "HandlerRegistrationError",
    "DomainError",
    "HttpError",
    "SystemStatusError",
]
