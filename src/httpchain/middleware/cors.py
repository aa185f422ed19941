"""
=============================================================================
CORS MIDDLEWARE
=============================================================================

Computes Cross-Origin Resource Sharing headers.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CORS PREFLIGHT FLOW                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Browser                                          Server            │
    │      │  OPTIONS /api/users                            │              │
    │      │  Origin: https://a.com                         │              │
    │      │ ─────────────────────────────────────────────► │              │
    │      │                                                │              │
    │      │  204 No Content                                │              │
    │      │  Access-Control-Allow-Origin: https://a.com    │              │
    │      │  Access-Control-Allow-Methods: GET, POST, ...  │              │
    │      │  Access-Control-Allow-Headers: Content-Type, ..│              │
    │      │  Access-Control-Max-Age: 86400                 │              │
    │      │ ◄───────────────────────────────────────────── │              │
    │      │                                                │              │
    │      │  POST /api/users  (the actual request)         │              │
    │      │ ─────────────────────────────────────────────► │              │
    │      │  200 OK + Access-Control-Allow-Origin          │              │
    │      │ ◄───────────────────────────────────────────── │              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ORIGIN MATCHING
=============================================================================

    origin="*"                       → "*"
    origin="https://app.com"         → "https://app.com" (always, literally)
    origin=["https://a.com", ...]    → the request's Origin if it is in the
                                       list, otherwise NO allow-origin header
                                       (the browser blocks the response)

=============================================================================
"""

from typing import Optional, List, Union
from dataclasses import dataclass, field

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


@dataclass
class CORSConfig:
    """
    CORS configuration options.

    DEVELOPMENT (permissive):
        CORSConfig()  # origin="*"

    PRODUCTION (restrictive):
        CORSConfig(
            origin=["https://myapp.com"],
            credentials=True,
            methods=["GET", "POST"],
            headers=["Authorization", "Content-Type"],
        )
    """

    # "*", a literal origin, or a list of allowed literal origins
    origin: Union[str, List[str]] = "*"

    # Advertised on preflight only
    methods: List[str] = field(default_factory=lambda: ["GET", "POST", "PUT", "DELETE", "OPTIONS"])
    headers: List[str] = field(default_factory=lambda: ["Content-Type", "Authorization"])

    # Allow cookies / authorization headers
    credentials: bool = False

    # How long the browser may cache a preflight answer (seconds)
    max_age: int = 86400

    def validate(self) -> None:
        if self.max_age < 0:
            raise ValueError(f"max_age must be >= 0, got {self.max_age}")
        if not isinstance(self.origin, (str, list, tuple)):
            raise ValueError(f"origin must be a string or a list of strings, got {self.origin!r}")


class CORSMiddleware(Middleware):
    """
    CORS middleware for handling cross-origin requests.

    1. OPTIONS requests (preflight) are answered here with 204
    2. Every other response gets the allow-origin / allow-credentials headers

    CORS middleware should be early in the pipeline, but after logging:

        pipeline.add(LoggingMiddleware())
        pipeline.add(CORSMiddleware())
        pipeline.add(AuthMiddleware())   # preflight must not need auth
    """

    def __init__(self, config: Optional[CORSConfig] = None):
        self.config = config or CORSConfig()
        self.config.validate()

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        origin = request.get_header("origin")

        if request.method == "OPTIONS":
            return self._handle_preflight(origin)

        response = next(request)
        self._add_cors_headers(response, origin)
        return response

    def _handle_preflight(self, origin: str) -> HTTPResponse:
        """Answer a preflight probe: 204, empty body, negotiated headers."""
        response = HTTPResponse(status=HTTPStatus.NO_CONTENT)

        self._add_cors_headers(response, origin)
        response.set_header("Access-Control-Allow-Methods", ", ".join(self.config.methods))
        response.set_header("Access-Control-Allow-Headers", ", ".join(self.config.headers))
        response.set_header("Access-Control-Max-Age", str(self.config.max_age))

        return response

    def allowed_origin(self, origin: str) -> Optional[str]:
        """
        The Access-Control-Allow-Origin value for a request Origin.

        Returns None when the origin is not allowed.
        """
        if isinstance(self.config.origin, str):
            return self.config.origin
        if origin and origin in self.config.origin:
            return origin
        return None

    def _add_cors_headers(self, response: HTTPResponse, origin: str):
        allowed = self.allowed_origin(origin)
        if allowed is not None:
            response.set_header("Access-Control-Allow-Origin", allowed)

        if self.config.credentials:
            response.set_header("Access-Control-Allow-Credentials", "true")

        # The answer depends on the Origin header when matching a list;
        # tell caches so they do not serve one origin's answer to another
        if not isinstance(self.config.origin, str):
            vary = response.get_header("Vary", "")
            tokens = [token.strip().lower() for token in vary.split(",")]
            if "origin" not in tokens and "*" not in tokens:
                response.set_header("Vary", f"{vary}, Origin".lstrip(", "))
