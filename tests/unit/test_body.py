"""
Unit tests for body parsing stages.
"""

import pytest

from kubikhttp.errors import HttpError
from kubikhttp.http.request import HTTPRequest
from kubikhttp.http.response import ok
from kubikhttp.middleware import JSONBodyParser, URLEncodedBodyParser, parse_size


def echo(request, next=None):
    return ok({"parsed": request.parsed_body})


def make_request(body: bytes, content_type: str) -> HTTPRequest:
    return HTTPRequest(
        method="POST",
        path="/",
        headers={"content-type": content_type, "content-length": str(len(body))},
        body=body,
    )


class TestParseSize:
    """Tests for parse_size()."""

    @pytest.mark.parametrize("value,expected", [
        (2048, 2048),
        ("512", 512),
        ("100kb", 102400),
        ("1mb", 1048576),
        ("1.5MB", 1572864),
        (" 10 b ", 10),
    ])
    def test_sizes(self, value, expected):
        assert parse_size(value) == expected

    @pytest.mark.parametrize("value", ["lots", "10tb", True, ""])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_size(value)


class TestJSONBodyParser:
    """Tests for JSONBodyParser."""

    def test_parses_json(self):
        parser = JSONBodyParser()
        response = parser(make_request(b'{"a": [1, 2]}', "application/json; charset=utf-8"), echo)

        assert response.json == {"parsed": {"a": [1, 2]}}

    def test_empty_body(self):
        """An empty body parses to an empty dict."""
        response = JSONBodyParser()(make_request(b"", "application/json"), echo)
        assert response.json == {"parsed": {}}

    def test_other_content_type_untouched(self):
        request = make_request(b"a=1", "application/x-www-form-urlencoded")
        JSONBodyParser()(request, echo)

        assert request.parsed_body is None

    def test_limit(self):
        """Bodies over the limit raise 413."""
        parser = JSONBodyParser(limit=8)

        with pytest.raises(HttpError) as exc_info:
            parser(make_request(b'{"long": "value"}', "application/json"), echo)

        assert exc_info.value.code == 413
        assert str(exc_info.value) == "request entity too large"

    def test_invalid_json(self):
        with pytest.raises(HttpError) as exc_info:
            JSONBodyParser()(make_request(b"{oops", "application/json"), echo)

        assert exc_info.value.code == 400


class TestURLEncodedBodyParser:
    """Tests for URLEncodedBodyParser."""

    def test_single_and_repeated_keys(self):
        body = b"name=Ada&tag=a&tag=b&empty="
        response = URLEncodedBodyParser()(
            make_request(body, "application/x-www-form-urlencoded"), echo
        )

        assert response.json == {"parsed": {"name": "Ada", "tag": ["a", "b"], "empty": ""}}

    def test_limit_from_string(self):
        parser = URLEncodedBodyParser(limit="1kb")
        assert parser.limit == 1024

        with pytest.raises(HttpError):
            parser(make_request(b"x=" + b"1" * 2000, "application/x-www-form-urlencoded"), echo)

    def test_already_parsed_is_kept(self):
        """A body decoded by an earlier stage is not decoded again."""
        request = make_request(b"a=1", "application/x-www-form-urlencoded")
        request.parsed_body = {"already": True}

        URLEncodedBodyParser()(request, echo)

        assert request.parsed_body == {"already": True}
