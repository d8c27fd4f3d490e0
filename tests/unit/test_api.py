"""
Tests for the API kubik mounted at /api.
"""

import json
import textwrap

import pytest

from kubikhttp import API, HTTP
from kubikhttp.http.response import ok
from kubikhttp.http.router import Router


LOCAL = {"port": 0, "bind": "127.0.0.1"}


def echo_router() -> Router:
    router = Router()

    @router.post("/")
    def echo(request):
        return ok({"parsed": request.parsed_body, "original": request.original_path})

    return router


@pytest.mark.asyncio
class TestAPI:
    """Tests for API.up() and its routes."""

    async def test_status_route(self, make_app, fetch):
        http = HTTP()
        await make_app(LOCAL, API(), http=http).up()

        response = await fetch(http.servers[0].port, "/api")

        assert response.status == 200
        assert response.json() == {"api": "ok", "extension": None}

    async def test_response_extension_through_app_use(self, make_app, fetch):
        http = HTTP()
        app = make_app(LOCAL, API(), http=http)
        app.use({"http/api": {"api_response_extension": {"version": 2}}})
        await app.up()

        response = await fetch(http.servers[0].port, "/api/")

        assert response.json() == {"api": "ok", "extension": {"version": 2}}

    async def test_json_body_parsed(self, make_app, fetch):
        http, api = HTTP(), API()
        api.use({"middlewares": [{"name": "/echo", "router": echo_router()}]})
        await make_app(LOCAL, api, http=http).up()

        response = await fetch(
            http.servers[0].port,
            "/api/echo",
            method="POST",
            body=b'{"name": "Ada"}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status == 200
        assert response.json() == {"parsed": {"name": "Ada"}, "original": "/api/echo"}

    async def test_urlencoded_body_parsed(self, make_app, fetch):
        http, api = HTTP(), API()
        api.use({"middlewares": [{"name": "/echo", "router": echo_router()}]})
        await make_app(LOCAL, api, http=http).up()

        response = await fetch(
            http.servers[0].port,
            "/api/echo",
            method="POST",
            body=b"a=1&b=2&b=3",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.json()["parsed"] == {"a": "1", "b": ["2", "3"]}

    async def test_parser_limit_from_config(self, make_app, fetch):
        http, api = HTTP(), API()
        api.use({"middlewares": [{"name": "/echo", "router": echo_router()}]})
        config = {**LOCAL, "api": {"parser": {"json": {"limit": "10b"}}}}
        await make_app(config, api, http=http).up()

        assert api.parser_options == {"json": {"limit": "10b"}, "urlencoded": {"limit": "100kb"}}

        response = await fetch(
            http.servers[0].port,
            "/api/echo",
            method="POST",
            body=json.dumps({"much": "too long"}).encode(),
            headers={"Content-Type": "application/json"},
        )

        assert response.status == 413
        assert response.json() == {
            "error": "request entity too large",
            "code": 413,
            "message": "Payload Too Large",
        }

    async def test_invalid_json_is_400(self, make_app, fetch):
        http, api = HTTP(), API()
        api.use({"middlewares": [{"name": "/echo", "router": echo_router()}]})
        await make_app(LOCAL, api, http=http).up()

        response = await fetch(
            http.servers[0].port,
            "/api/echo",
            method="POST",
            body=b"{broken",
            headers={"Content-Type": "application/json"},
        )

        assert response.status == 400
        assert response.json()["code"] == 400

    async def test_api_volume(self, make_app, fetch, tmp_path):
        (tmp_path / "items.py").write_text(textwrap.dedent("""
            from kubikhttp import Router, ok

            name = "/items"
            router = Router()


            @router.get("/")
            def items(request):
                return ok([1, 2, 3])
        """))
        http = HTTP()
        await make_app(LOCAL, API(tmp_path), http=http).up()

        response = await fetch(http.servers[0].port, "/api/items")

        assert response.json() == [1, 2, 3]

    async def test_outside_api_untouched(self, make_app, fetch):
        http = HTTP()
        await make_app(LOCAL, API(), http=http).up()

        response = await fetch(http.servers[0].port, "/apix")

        assert response.status == 404
        assert response.json() == {"error": "Cannot GET /apix"}

    async def test_api_opens_no_listener(self, make_app):
        http, api = HTTP(), API()
        await make_app(LOCAL, api, http=http).up()

        assert len(http.servers) == 1
        assert len(api.servers) == 0


class TestAPIListen:
    """The API kubik cannot listen on its own."""

    def test_listen(self):
        with pytest.raises(TypeError, match="You can't listen API"):
            API().listen(8080)

    def test_start(self):
        with pytest.raises(TypeError, match="You can't listen API"):
            API().start()
