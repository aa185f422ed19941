"""
=============================================================================
HTTP RESPONSE MODEL & BUILDER
=============================================================================

Responses flow back UP the middleware chain. Any stage may decorate the
response it receives from downstream (add headers on the way back) or
author a replacement (short-circuit, error handler, timeout).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                RESPONSE MUTATION ON THE WAY BACK                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   handler          HTTPResponse(status=200, body=b"...")            │
    │      │                                                               │
    │      ▼                                                               │
    │   rate limit       + X-RateLimit-Limit / Remaining / Reset          │
    │      │                                                               │
    │      ▼                                                               │
    │   CORS             + Access-Control-Allow-Origin                    │
    │      │                                                               │
    │      ▼                                                               │
    │   logging          (reads status, never mutates)                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BIT-EXACT JSON BODIES
=============================================================================

The bodies the pipeline authors itself are compact JSON with no spaces:

    {"error":"Internal Server Error"}
    {"error":"Request Timeout"}
    {"error":"Too Many Requests","retryAfter":42}

json_response() produces these with Content-Type: application/json.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response travelling back up the chain.

    This is a simple mutable container. Use ResponseBuilder for a more
    convenient way to construct responses.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a response header, replacing any existing value.

        Existing headers are matched case-insensitively so that a stage
        setting "content-type" does not leave a stale "Content-Type".

        Returns:
            Self for method chaining
        """
        for existing in list(self.headers):
            if existing.lower() == name.lower() and existing != name:
                del self.headers[existing]
        self.headers[name] = value
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a response header (case-insensitive lookup)."""
        if name in self.headers:
            return self.headers[name]
        lowered = name.lower()
        for existing, value in self.headers.items():
            if existing.lower() == lowered:
                return value
        return default

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """Set the response body. Strings are encoded as UTF-8."""
        if isinstance(body, str):
            self.body = body.encode("utf-8")
        else:
            self.body = body
        return self

    @property
    def text(self) -> str:
        """The body decoded as UTF-8."""
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body.decode("utf-8"))


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .json({"message": "Hello"})
            .header("X-Custom", "value")
            .build())

    Each method returns ``self`` except build().
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the HTTP status code."""
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a single response header."""
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        """Add multiple headers at once."""
        self._headers.update(headers)
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the response body (raw bytes or string)."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        """Set a plain text response body."""
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def json(self, data: Any, compact: bool = False) -> "ResponseBuilder":
        """
        Set a JSON response body.

        Args:
            data: Any JSON-serializable data
            compact: If True, emit no whitespace between tokens and use a
                     bare "application/json" Content-Type. The pipeline's
                     own error bodies are built this way.

        Returns:
            Self for method chaining
        """
        if compact:
            self._body = json.dumps(data, separators=(",", ":")).encode("utf-8")
            self._headers["Content-Type"] = "application/json"
        else:
            self._body = json.dumps(data, ensure_ascii=False).encode("utf-8")
            self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def build(self) -> HTTPResponse:
        """Build and return the HTTPResponse object."""
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def json_response(
    status: HTTPStatus,
    payload: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
) -> HTTPResponse:
    """
    Create a compact JSON response.

    Example:
        json_response(HTTPStatus.REQUEST_TIMEOUT, {"error": "Request Timeout"})
        # body == b'{"error":"Request Timeout"}'
    """
    builder = ResponseBuilder().status(status).json(payload, compact=True)
    if headers:
        builder.headers(headers)
    return builder.build()


def ok(body: Union[str, bytes, dict, list] = "") -> HTTPResponse:
    """Create a 200 OK response (dicts and lists become JSON)."""
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body)
    else:
        builder.body(body)
    return builder.build()


def no_content() -> HTTPResponse:
    """Create a 204 No Content response."""
    return HTTPResponse(status=HTTPStatus.NO_CONTENT)


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """Create a 500 response with a compact JSON error body."""
    return json_response(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": message})
