"""
Unit tests for the HTTP request model.
"""

from httpchain.http import HTTPRequest


class TestHTTPRequest:
    """Tests for HTTPRequest."""

    def test_from_url(self, get_request: HTTPRequest):
        """Test splitting an absolute URL."""
        assert get_request.method == "GET"
        assert get_request.path == "/api/users"
        assert get_request.query_string == "page=1&limit=10"
        assert get_request.host == "api.example.com:8080"
        assert get_request.client_address == ("127.0.0.1", 12345)

    def test_from_origin_form(self):
        request = HTTPRequest.from_url("post", "/submit")

        assert request.method == "POST"
        assert request.path == "/submit"
        assert request.host == ""

    def test_explicit_host_header_wins(self):
        request = HTTPRequest.from_url("GET", "http://a.com/", headers={"Host": "b.com"})

        assert request.host == "b.com"

    def test_empty_path_becomes_root(self):
        assert HTTPRequest.from_url("GET", "http://a.com").path == "/"

    def test_hostname_strips_port(self, get_request: HTTPRequest):
        assert get_request.hostname == "api.example.com"

    def test_hostname_ipv6(self):
        request = HTTPRequest(method="GET", headers={"Host": "[::1]:8080"})

        assert request.hostname == "::1"

    def test_hostname_is_lowercased(self):
        assert HTTPRequest(method="GET", headers={"Host": "API.Example.COM"}).hostname == "api.example.com"

    def test_case_insensitive_headers(self):
        """Test that header lookup is case-insensitive."""
        request = HTTPRequest(method="GET", headers={"Content-Type": "text/plain"})

        assert request.headers == {"content-type": "text/plain"}
        assert request.get_header("CONTENT-TYPE") == "text/plain"
        assert request.get_header("content-type") == "text/plain"

    def test_get_header_default(self):
        request = HTTPRequest(method="GET")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "fallback") == "fallback"

    def test_query_params(self, get_request: HTTPRequest):
        assert get_request.query_params == {"page": ["1"], "limit": ["10"]}
        assert get_request.get_query("page") == "1"
        assert get_request.get_query("missing", "x") == "x"

    def test_query_list(self):
        request = HTTPRequest(method="GET", query_string="tag=a&tag=b&empty=")

        assert request.query_params["tag"] == ["a", "b"]
        assert request.get_query("empty") == ""

    def test_user_agent(self, get_request: HTTPRequest):
        assert get_request.user_agent == "pytest"

    def test_url(self, get_request: HTTPRequest):
        assert get_request.url == "http://api.example.com:8080/api/users?page=1&limit=10"
        assert HTTPRequest(method="GET", path="/x").url == "/x"
