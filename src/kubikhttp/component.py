"""
=============================================================================
HTTP KUBIK
=============================================================================

The HTTP kubik assembles the request pipeline during up and opens its
listeners during after:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          up(config, log)                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │   1. read the "http" section       missing -> ConfigurationError    │
    │   2. app-tagging stage             request.app = host App           │
    │   3. access log stage              when access_log is true          │
    │   4. "before" hooks                                                 │
    │   5. queued extensions             stages, sub-routers, volumes     │
    │   6. route discovery               every volume, lexical order      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                              after()                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │   7. error dispatcher              always the last stage            │
    │   8. "after" hooks                                                  │
    │   9. start()                       when auto_start is true          │
    └─────────────────────────────────────────────────────────────────────┘

Usage:

    http = HTTP("routes")
    http.use({"middlewares": [auth], "volumes": ["admin/routes"]})
    http.catch(lambda error, request, next: ...)

    app = App([ConfigComponent({"http": {"port": 8080}}), LogComponent(), http])
    await app.up()
    ...
    await app.down()
=============================================================================
"""

from typing import Any, Dict, Iterable, List, Optional, Union
import os
import ssl

from .composer import ExtensionComposer, apply_contribution, apply_contributions
from .config import HTTPConfig
from .core.listener import Listener
from .core.manager import ListenerManager, ListenerSet
from .discovery import scan
from .errors import ConfigurationError
from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .kubik.component import Component
from .middleware.base import FunctionMiddleware, NextHandler, Pipeline
from .middleware.errors import ErrorDispatcher, ErrorHandler
from .middleware.logging import AccessLogMiddleware


Volume = Union[str, "os.PathLike[str]"]


class HTTP(Component):
    """
    HTTP lifecycle kubik.

    Attributes:
        pipeline:    Request pipeline every listener serves
        volumes:     Directories scanned for routes on the next up
        auto_start:  Open listeners at the end of after()
        ssl_context: Used by https server entries
        config:      Parsed http section (set by up)
        log:         Log kubik (set by up)
    """

    name = "http"
    dependencies = ("config", "log")

    def __init__(
        self,
        default_volume: Union[Volume, Iterable[Volume], None] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        super().__init__()
        self.pipeline = Pipeline()
        self.volumes: List[str] = _volume_list(default_volume)
        self.auto_start = True
        self.ssl_context = ssl_context
        self.config: Optional[HTTPConfig] = None
        self.log: Any = None

        self.error_dispatcher = ErrorDispatcher()
        self.composer = ExtensionComposer(self.pipeline, self.extensions, self.volumes)
        self.listener_manager = ListenerManager(self.pipeline.handle)

    # =========================================================================
    # PIPELINE
    # =========================================================================

    def apply_middleware(self, contribution: Any) -> "HTTP":
        """Apply one stage or named sub-router right away."""
        apply_contribution(self.pipeline, contribution)
        return self

    def apply_middlewares(self, contributions: Iterable[Any]) -> "HTTP":
        apply_contributions(self.pipeline, contributions)
        return self

    def catch(self, handler: ErrorHandler) -> "HTTP":
        """
        Replace default error classification.

        Raises:
            HandlerRegistrationError: If handler is not callable.
        """
        self.error_dispatcher.catch(handler)
        return self

    set_error_handler = catch

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Run one request through the pipeline without a socket."""
        return self.pipeline.handle(request)

    def _tag_app(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request.app = self.app
        return next(request)

    def _apply_extensions(self) -> None:
        self.composer.apply_extensions()

    async def _scan(self) -> None:
        directories = list(self.volumes)
        self.volumes.clear()
        if directories:
            await scan(self.pipeline, directories)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def up(self, deps: Dict[str, Any]) -> None:
        """
        Assemble the pipeline. No listener is opened here.

        Raises:
            ConfigurationError: No usable "http" config section.
            DiscoveryLoadError: A route module failed to load.
        """
        self.log = deps["log"]
        section = deps["config"].get("http")
        if section is None:
            raise ConfigurationError("Config field http is not defined")
        try:
            self.config = HTTPConfig.from_mapping(section)
            self.config.validate()
        except ValueError as e:
            raise ConfigurationError(f"Invalid http config: {e}") from e

        self.pipeline.use(FunctionMiddleware(self._tag_app, name="app"))
        if self.config.access_log:
            self.pipeline.use(AccessLogMiddleware(log_format=self.config.access_log_format))

        await self.apply_hooks("before")
        self._apply_extensions()
        await self._scan()

    async def after(self) -> None:
        self.pipeline.use(self.error_dispatcher)
        await self.apply_hooks("after")
        if self.auto_start:
            await self.start()

    # =========================================================================
    # LISTENERS
    # =========================================================================

    @property
    def servers(self) -> ListenerSet:
        """Live listeners, primary first."""
        return self.listener_manager.listeners

    def _sync_manager(self) -> ListenerManager:
        manager = self.listener_manager
        manager.log = self.log or manager.log
        manager.ssl_context = self.ssl_context
        return manager

    async def start(self) -> "HTTP":
        """
        Open every configured listener.

        Raises:
            ConfigurationError: The kubik is not up yet.
            BindFailure: A bind failed; earlier listeners stay open.
            NoListenerError: Nothing could be opened.
        """
        if self.config is None:
            raise ConfigurationError("Config field http is not defined")
        await self._sync_manager().start(self.config)
        return self

    async def listen(self, port: int, bind: Any = None, protocol: str = "http") -> Listener:
        """Open one extra listener outside the configured ones."""
        manager = self._sync_manager()
        if self.config is not None:
            manager.config = self.config
        return await manager.listen(port, bind, protocol)

    async def stop(self) -> None:
        """Close every listener."""
        await self.listener_manager.stop()


def _volume_list(value: Union[Volume, Iterable[Volume], None]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (str, os.PathLike)):
        return [os.fspath(value)]
    return [os.fspath(volume) for volume in value]
