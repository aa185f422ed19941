"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The subset of HTTP status codes the pipeline produces or inspects.

    ┌─────────┬──────────────────────────────────────────────────────────┐
    │  Range  │ Meaning                                                  │
    ├─────────┼──────────────────────────────────────────────────────────┤
    │  2xx    │ Success (204 = CORS preflight answer)                    │
    │  3xx    │ Redirection (still "successful" for rate limiting)       │
    │  4xx    │ Client error (408 timeout, 429 rate limited)             │
    │  5xx    │ Server error (500 from the default error handler)        │
    └─────────┴──────────────────────────────────────────────────────────┘

Anything below 400 counts as a successful response when the rate limiter
is configured to skip successful requests.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes as an IntEnum.

    IntEnum members compare equal to plain ints, so handlers may return
    either ``HTTPStatus.OK`` or ``200``.
    """

    # 2xx Success
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NO_CONTENT = 204

    # 3xx Redirection
    MOVED_PERMANENTLY = 301
    FOUND = 302
    NOT_MODIFIED = 304

    # 4xx Client Errors
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408              # Timeout guard deadline fired
    TOO_MANY_REQUESTS = 429            # Rate limited

    # 5xx Server Errors
    INTERNAL_SERVER_ERROR = 500        # Default error handler
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504

    @property
    def phrase(self) -> str:
        """Get the reason phrase for this status code."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        """Check if this is a 2xx (success) status code."""
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """
        Check if this is an error status code (4xx or 5xx).

        The rate limiter uses the same boundary: below 400 is a success.
        """
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.ACCEPTED: "Accepted",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.UNAUTHORIZED: "Unauthorized",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.TOO_MANY_REQUESTS: "Too Many Requests",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.BAD_GATEWAY: "Bad Gateway",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.GATEWAY_TIMEOUT: "Gateway Timeout",
}
