"""
=============================================================================
HTTP REQUEST MODEL
=============================================================================

The request object that flows through the middleware chain.

The chain never parses wire bytes itself: the host server does that and
hands us an HTTPRequest. What the chain needs from a request is small:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  WHO READS WHAT FROM A REQUEST                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   LoggingMiddleware   method, path, query, user-agent, headers,     │
    │                       body (best effort)                            │
    │                                                                      │
    │   CORSMiddleware      method (OPTIONS = preflight), Origin header   │
    │                                                                      │
    │   RateLimitMiddleware hostname (default key) or any key_func        │
    │                                                                      │
    │   Context store       the request's private context mapping         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Header names are stored LOWERCASE. HTTP header names are case-insensitive
(RFC 7230), so normalizing once avoids .lower() everywhere.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from urllib.parse import parse_qs, urlsplit


@dataclass
class HTTPRequest:
    """
    Represents an inbound HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         The HTTP method (GET, POST, OPTIONS, ...)

        path:           Request path WITHOUT query string

        version:        HTTP version string

        headers:        Dictionary of headers with LOWERCASE keys

        query_string:   Raw query string without the leading "?"
                        "page=1&limit=10"

        body:           Raw request body as bytes (opaque to the chain)

        client_address: Tuple of (ip, port) identifying the client

    The per-request context lives in a private field. It is created on
    first access by the context store and never shared between requests.

    =========================================================================
    """

    method: str
    path: str = "/"
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_string: str = ""
    body: bytes = b""

    client_address: tuple[str, int] = ("", 0)

    # Lazily created by httpchain.middleware.context
    _context: Optional[Dict[str, Any]] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        self.method = self.method.upper()
        # Callers may hand us mixed-case names; normalize once
        self.headers = {name.lower(): value for name, value in self.headers.items()}

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def from_url(
        cls,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: bytes = b"",
        client_address: tuple[str, int] = ("", 0),
    ) -> "HTTPRequest":
        """
        Build a request from a URL.

        Absolute URLs populate the Host header (unless one is given), so
        the default rate limit key works the same for both forms:

            HTTPRequest.from_url("GET", "http://api.example.com/users?page=2")
            # path="/users", query_string="page=2",
            # headers={"host": "api.example.com"}

        Args:
            method: HTTP method
            url: Absolute URL or origin-form target ("/path?query")
            headers: Optional request headers (any case)
            body: Optional raw body
            client_address: Optional (ip, port) of the client

        Returns:
            A new HTTPRequest
        """
        parts = urlsplit(url)
        request_headers = {name.lower(): value for name, value in (headers or {}).items()}
        if parts.netloc and "host" not in request_headers:
            request_headers["host"] = parts.netloc

        return cls(
            method=method,
            path=parts.path or "/",
            headers=request_headers,
            query_string=parts.query,
            body=body,
            client_address=client_address,
        )

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def query_params(self) -> Dict[str, list[str]]:
        """
        Parsed query string as dict of lists.

        "a=1&a=2&b=3" → {"a": ["1", "2"], "b": ["3"]}
        """
        return parse_qs(self.query_string, keep_blank_values=True)

    @property
    def host(self) -> str:
        """Get the Host header value (may include a port)."""
        return self.headers.get("host", "")

    @property
    def hostname(self) -> str:
        """
        Get the target hostname without the port.

        This is the default rate limiting key.

            "api.example.com:8080" → "api.example.com"
            "[::1]:8080"           → "::1"
        """
        host = self.host
        if host.startswith("["):
            # IPv6 literal
            return host[1:host.find("]")] if "]" in host else host[1:]
        return host.split(":", 1)[0].lower()

    @property
    def user_agent(self) -> str:
        """Get the User-Agent header value."""
        return self.headers.get("user-agent", "")

    @property
    def url(self) -> str:
        """Reconstruct the request target as a URL (for logging)."""
        target = self.path
        if self.query_string:
            target = f"{target}?{self.query_string}"
        if self.host:
            return f"http://{self.host}{target}"
        return target

    # =========================================================================
    # ACCESSOR METHODS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """
        Get a header value (case-insensitive lookup).

        Args:
            name: Header name (any case)
            default: Value to return if header not found

        Returns:
            Header value or default
        """
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get the first value of a query parameter."""
        values = self.query_params.get(name, [])
        return values[0] if values else default
