"""
Unit tests for URL router.
"""

import pytest

from kubikhttp.http.router import Router, Route, RouteMatch
from kubikhttp.http.request import HTTPRequest
from kubikhttp.http.response import HTTPResponse, ResponseBuilder, HTTPStatus


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path)


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Dummy handler for testing."""
    return ResponseBuilder().json({"path": request.path}).build()


def not_reached(request: HTTPRequest) -> HTTPResponse:
    raise AssertionError("next() should not be called")


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        """Test adding routes."""
        router = Router()
        route = router.add_route("/users", dummy_handler, method="get")

        assert isinstance(route, Route)
        assert router._routes == [route]
        assert route.path == "/users"
        assert route.method == "GET"

    def test_match_static_path(self):
        """Test matching static paths."""
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")
        router.add_route("/posts", dummy_handler, method="GET")

        match = router.match("GET", "/users")
        assert isinstance(match, RouteMatch)
        assert match.route.path == "/users"

        match = router.match("GET", "/posts/")
        assert match is not None
        assert match.route.path == "/posts"

    def test_match_with_method(self):
        """Test method-based routing."""
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")
        router.add_route("/users", dummy_handler, method="POST")

        get_match = router.match("GET", "/users")
        post_match = router.match("post", "/users")

        assert get_match.route.method == "GET"
        assert post_match.route.method == "POST"

    def test_any_method(self):
        """A route without a method matches every method."""
        router = Router()
        router.add_route("/ping", dummy_handler)

        assert router.match("GET", "/ping") is not None
        assert router.match("DELETE", "/ping") is not None

    def test_match_dynamic_params(self):
        """Test dynamic path parameters."""
        router = Router()
        router.add_route("/users/:id", dummy_handler, method="GET")
        router.add_route("/users/:user_id/posts/:post_id", dummy_handler, method="GET")

        match = router.match("GET", "/users/123")
        assert match is not None
        assert match.params == {"id": "123"}

        match = router.match("GET", "/users/456/posts/789")
        assert match is not None
        assert match.params == {"user_id": "456", "post_id": "789"}

    def test_match_wildcard(self):
        """Test wildcard path matching."""
        router = Router()
        router.add_route("/static/*path", dummy_handler, method="GET")

        match = router.match("GET", "/static/css/style.css")
        assert match is not None
        assert match.params == {"path": "css/style.css"}

    def test_no_match(self):
        """Test when no route matches."""
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        assert router.match("GET", "/posts") is None
        assert router.match("POST", "/users") is None  # Wrong method

    def test_first_registered_wins(self):
        """Overlapping patterns resolve in registration order."""
        router = Router()
        router.add_route("/users/me", dummy_handler, method="GET")
        router.add_route("/users/:id", dummy_handler, method="GET")

        assert router.match("GET", "/users/me").route.path == "/users/me"

    def test_root_route(self):
        """A "/" route matches the mount point itself."""
        router = Router()
        router.add_route("/", dummy_handler, method="GET")

        assert router.match("GET", "/") is not None
        assert router.match("GET", "") is not None
        assert router.match("GET", "/other") is None


class TestRouterDecorators:
    """Tests for decorator-style route registration."""

    @pytest.mark.parametrize("verb", ["get", "post", "put", "delete", "patch"])
    def test_verb_decorators(self, verb):
        """Each verb decorator registers its method and returns the handler."""
        router = Router()

        def handler(request):
            return ResponseBuilder().text("test").build()

        assert getattr(router, verb)("/test")(handler) is handler
        assert router._routes[0].method == verb.upper()

    def test_route_decorator_any_method(self):
        """@router.route without a method accepts any method."""
        router = Router()

        @router.route("/any")
        def handler(request):
            return ResponseBuilder().text("any").build()

        assert router._routes[0].method is None


class TestRouterDispatch:
    """Tests for the router as a pipeline stage."""

    def test_dispatch_match(self):
        """Matched requests never reach next."""
        router = Router()
        router.add_route("/users/:id", dummy_handler, method="GET")

        request = make_request("GET", "/users/7")
        response = router.dispatch(request, not_reached)

        assert response.status == HTTPStatus.OK
        assert request.path_params == {"id": "7"}

    def test_dispatch_falls_through(self):
        """Unmatched requests, wrong method included, go to next."""
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")
        fallback = HTTPResponse(status=HTTPStatus.IM_A_TEAPOT)

        response = router.dispatch(make_request("POST", "/users"), lambda request: fallback)
        assert response is fallback

        response = router.dispatch(make_request("GET", "/posts"), lambda request: fallback)
        assert response is fallback

    def test_handler_errors_propagate(self):
        """Errors from a handler leave dispatch() for the pipeline to route."""
        router = Router()

        @router.get("/fail")
        def fail(request):
            raise ValueError("handler failed")

        with pytest.raises(ValueError, match="handler failed"):
            router.dispatch(make_request("GET", "/fail"), not_reached)
