"""
=============================================================================
API KUBIK
=============================================================================

A JSON API under /api, riding on the HTTP kubik's listeners.

    api = API("api_routes")            # volumes scanned during up
    app = App([config, log, HTTP(), api])

    GET  /api           {"api": "ok", "extension": <api_response_extension>}
    POST /api/users     request.parsed_body holds the decoded JSON

Body parser limits come from http.api.parser, merged over the defaults:

    http:
      api:
        parser:
          json:       {limit: "1mb"}
          urlencoded: {limit: "100kb"}

The API kubik never opens sockets of its own: listen() and start() raise.
=============================================================================
"""

from typing import Any, Dict
import logging

from .component import HTTP
from .http.request import HTTPRequest
from .http.response import HTTPResponse, json_response
from .http.router import Router
from .kubik.helpers import assign_deep
from .middleware.body import DEFAULT_LIMIT, JSONBodyParser, URLEncodedBodyParser


logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def default_parser_options() -> Dict[str, Any]:
    return {
        "json": {"limit": DEFAULT_LIMIT},
        "urlencoded": {"limit": DEFAULT_LIMIT},
    }


class API(HTTP):
    """
    HTTP kubik specialization mounted at /api on the "http" kubik.

    Attributes:
        http: The HTTP kubik it is mounted on (set by up)
        parser_options: Effective body parser options
        api_response_extension: Echoed by GET /api; settable through
            app.use({"http/api": {"api_response_extension": ...}})
    """

    name = "http/api"
    dependencies = ("http",)

    def __init__(self, default_volume=None):
        super().__init__(default_volume)
        self.http: Any = None
        self.parser_options: Dict[str, Any] = default_parser_options()
        self.api_response_extension: Any = None
        self.router = Router()

    async def up(self, deps: Dict[str, Any]) -> None:
        self.http = deps["http"]
        self.config = self.http.config
        self.log = self.http.log

        if self.config is not None:
            assign_deep(self.parser_options, self.config.api.get("parser"))

        self.http.pipeline.mount(API_PREFIX, self.pipeline)
        self.pipeline.use(
            JSONBodyParser(**self.parser_options.get("json", {})),
            URLEncodedBodyParser(**self.parser_options.get("urlencoded", {})),
        )

        await self.apply_hooks("before")
        self._apply_extensions()
        await self._scan()

        self.router.get("/")(self._status)
        self.pipeline.mount("/", self.router)

    def _status(self, request: HTTPRequest) -> HTTPResponse:
        return json_response(200, {"api": "ok", "extension": self.api_response_extension})

    async def after(self) -> None:
        await self.apply_hooks("after")

    def listen(self, *args: Any, **kwargs: Any):
        raise TypeError("You can't listen API")

    def start(self):
        raise TypeError("You can't listen API")
