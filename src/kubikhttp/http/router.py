"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to handler functions. Routers are what named
contributions mount into the pipeline:

    # routes/users.py, found by route discovery
    name = "/users"
    router = Router()

    @router.get("/:id")
    def get_user(request):
        return ok({"id": request.path_params["id"]})

Pattern syntax:
    /users          static segment
    /users/:id      one segment, captured as path_params["id"]
    /static/*path   rest of the path, captured as path_params["path"]

A router is a pipeline stage: dispatch(request, next) runs the matching
handler, or hands the request to next when nothing matches.
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
import re

from .request import HTTPRequest
from .response import HTTPResponse


Handler = Callable[[HTTPRequest], HTTPResponse]
NextHandler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """A URL pattern bound to a handler."""

    path: str
    method: Optional[str]            # None = any method
    handler: Handler

    _pattern: re.Pattern = field(repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """
    HTTP request router with dynamic path parameters.

        router = Router()

        @router.get("/users/:id")
        def get_user(request):
            ...
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
    ) -> Route:
        """
        Register a handler for a path pattern.

        Args:
            path: URL pattern (e.g. /users/:id)
            handler: Callable taking the request, returning a response
            method: HTTP method, None for any
        """
        pattern, param_names = self._compile_pattern(path)

        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        """
        "/users/:id/files/*rest" -> ^/users/(?P<id>[^/]+)/files/(?P<rest>.*)$
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")
            elif segment.startswith("*"):
                # Wildcard swallows the rest of the path
                param_name = segment[1:] or "wildcard"
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>.*)")
                break
            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")
        regex_parts.append("$")
        return re.compile("".join(regex_parts)), param_names

    def route(
        self,
        path: str,
        method: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method)
            return handler
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "GET")

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "POST")

    def put(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "PUT")

    def delete(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE")

    def patch(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "PATCH")

    # =========================================================================
    # MATCHING
    # =========================================================================

    @staticmethod
    def _normalize(path: str) -> str:
        return "/" + path.strip("/") if path != "/" else "/"

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """First registered route matching method and path, or None."""
        path = self._normalize(path)

        for route in self._routes:
            if route.method and route.method != method.upper():
                continue
            found = route._pattern.match(path)
            if found:
                return RouteMatch(route=route, params=found.groupdict())

        return None

    def dispatch(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Run the matching handler; unmatched requests go to next."""
        found = self.match(request.method, request.path)
        if found is None:
            return next(request)
        request.path_params = found.params
        return found.route.handler(request)
