"""
Unit tests for CORS middleware.
"""

import pytest

from httpchain.http import HTTPResponse, HTTPStatus
from httpchain.middleware import CORSConfig, CORSMiddleware, MiddlewarePipeline


def chain(config, handler):
    return MiddlewarePipeline().add(CORSMiddleware(config)).handle(handler)


class TestPreflight:
    """Tests for OPTIONS handling."""

    def test_listed_origin_is_echoed(self, make_request, handler, calls):
        app = chain(CORSConfig(origin=["https://a.com", "https://b.org"]), handler)
        response = app(make_request("OPTIONS", headers={"Origin": "https://a.com"}))

        assert response.status == HTTPStatus.NO_CONTENT
        assert response.body == b""
        assert response.headers["Access-Control-Allow-Origin"] == "https://a.com"
        assert response.headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"
        assert response.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"
        assert response.headers["Access-Control-Max-Age"] == "86400"
        assert calls == []

    def test_unlisted_origin_gets_no_allow_origin(self, make_request, handler):
        """Still 204, but the browser will block it."""
        app = chain(CORSConfig(origin=["https://a.com"]), handler)
        response = app(make_request("OPTIONS", headers={"Origin": "https://b.com"}))

        assert response.status == HTTPStatus.NO_CONTENT
        assert "Access-Control-Allow-Origin" not in response.headers
        assert "Access-Control-Allow-Methods" in response.headers

    def test_origin_matching_is_exact(self, make_request, handler):
        app = chain(CORSConfig(origin=["https://a.com"]), handler)
        response = app(make_request("OPTIONS", headers={"Origin": "https://a.com.evil.net"}))

        assert "Access-Control-Allow-Origin" not in response.headers

    def test_wildcard(self, make_request, handler):
        response = chain(CORSConfig(), handler)(
            make_request("OPTIONS", headers={"Origin": "https://anything.io"})
        )

        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_preflight_without_origin_header(self, make_request, handler):
        """Every OPTIONS request is answered here, Origin or not."""
        response = chain(CORSConfig(), handler)(make_request("OPTIONS"))

        assert response.status == HTTPStatus.NO_CONTENT
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_custom_lists_and_max_age(self, make_request, handler):
        config = CORSConfig(methods=["GET"], headers=["X-Token"], max_age=600)
        response = chain(config, handler)(make_request("OPTIONS"))

        assert response.headers["Access-Control-Allow-Methods"] == "GET"
        assert response.headers["Access-Control-Allow-Headers"] == "X-Token"
        assert response.headers["Access-Control-Max-Age"] == "600"

    def test_credentials(self, make_request, handler):
        config = CORSConfig(origin="https://app.com", credentials=True)
        response = chain(config, handler)(make_request("OPTIONS"))

        assert response.headers["Access-Control-Allow-Credentials"] == "true"
        assert response.headers["Access-Control-Allow-Origin"] == "https://app.com"


class TestActualRequests:
    """Tests for non-OPTIONS requests."""

    def test_response_is_decorated(self, make_request, handler, calls):
        app = chain(CORSConfig(origin=["https://a.com"], credentials=True), handler)
        response = app(make_request("POST", headers={"Origin": "https://a.com"}))

        assert calls == ["handler"]
        assert response.status == HTTPStatus.OK
        assert response.headers["Access-Control-Allow-Origin"] == "https://a.com"
        assert response.headers["Access-Control-Allow-Credentials"] == "true"
        assert "Access-Control-Allow-Methods" not in response.headers
        assert "Access-Control-Max-Age" not in response.headers

    def test_literal_origin_is_sent_as_is(self, make_request, handler):
        """A single configured origin does not depend on the request."""
        app = chain(CORSConfig(origin="https://app.com"), handler)
        response = app(make_request(headers={"Origin": "https://other.com"}))

        assert response.headers["Access-Control-Allow-Origin"] == "https://app.com"
        assert "Vary" not in response.headers

    def test_list_origin_adds_vary(self, make_request, status_handler):
        app = chain(CORSConfig(origin=["https://a.com"]), status_handler(HTTPStatus.OK))
        response = app(make_request(headers={"Origin": "https://a.com"}))

        assert response.headers["Vary"] == "Origin"

    def test_vary_is_appended(self, make_request):
        def app(request):
            return HTTPResponse(status=HTTPStatus.OK, headers={"Vary": "Accept-Encoding"})

        response = chain(CORSConfig(origin=["https://a.com"]), app)(
            make_request(headers={"Origin": "https://a.com"})
        )

        assert response.headers["Vary"] == "Accept-Encoding, Origin"

    def test_error_responses_are_decorated(self, make_request, status_handler):
        app = chain(CORSConfig(), status_handler(HTTPStatus.NOT_FOUND))
        response = app(make_request())

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.headers["Access-Control-Allow-Origin"] == "*"


class TestConfig:
    """Tests for CORSConfig validation."""

    def test_negative_max_age(self):
        with pytest.raises(ValueError):
            CORSMiddleware(CORSConfig(max_age=-1))

    def test_bad_origin_type(self):
        with pytest.raises(ValueError):
            CORSMiddleware(CORSConfig(origin=42))

    def test_allowed_origin(self):
        middleware = CORSMiddleware(CORSConfig(origin=["https://a.com"]))

        assert middleware.allowed_origin("https://a.com") == "https://a.com"
        assert middleware.allowed_origin("") is None

    def test_vary_token_match_is_exact(self, make_request):
        """A header merely containing "Origin" does not count as varying on it."""
        def app(request):
            return HTTPResponse(status=HTTPStatus.OK, headers={"Vary": "X-Origin-Id"})

        response = chain(CORSConfig(origin=["https://a.com"]), app)(
            make_request(headers={"Origin": "https://a.com"})
        )

        assert response.headers["Vary"] == "X-Origin-Id, Origin"

    def test_vary_origin_not_duplicated(self, make_request):
        def app(request):
            return HTTPResponse(status=HTTPStatus.OK, headers={"Vary": "Accept, origin"})

        response = chain(CORSConfig(origin=["https://a.com"]), app)(
            make_request(headers={"Origin": "https://a.com"})
        )

        assert response.headers["Vary"] == "Accept, origin"
