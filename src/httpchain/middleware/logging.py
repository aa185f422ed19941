"""
=============================================================================
LOGGING MIDDLEWARE
=============================================================================

Logs every request that passes through the chain, with timing.

=============================================================================
LOG FORMATS
=============================================================================

    SIMPLE (default), one line:
    ┌─────────────────────────────────────────────────────────────────────┐
    │ GET /api/users -> 200 (3.12ms)                                      │
    └─────────────────────────────────────────────────────────────────────┘

    DETAILED, multi-line:
    ┌─────────────────────────────────────────────────────────────────────┐
    │ [2026-10-19T12:00:00.000+00:00] GET /api/users?page=2 -> 200 (3.12ms)│
    │ Headers: {"host": "api.example.com", "user-agent": "curl/8.0"}      │
    │ Body: {"name": "alice"}                                             │
    └─────────────────────────────────────────────────────────────────────┘

    JSON, one structured record (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"timestamp": "...", "method": "GET", "path": "/api/users",         │
    │  "query": "?page=2", "status": 200, "duration": "3.12ms",           │
    │  "user_agent": "curl/8.0"}                                          │
    └─────────────────────────────────────────────────────────────────────┘

Logging is best effort: a failure while formatting or emitting a record
never fails the request.

=============================================================================
"""

import time
import json
import logging
from datetime import datetime, timezone
from typing import Optional, Dict
from dataclasses import dataclass

from .base import Middleware, NextHandler
from .context import set_context
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# Access records go to a fixed, namespaced logger so they can be routed
# separately:
#   logging.getLogger("httpchain.access").addHandler(file_handler)
logger = logging.getLogger("httpchain.access")

_internal = logging.getLogger(__name__)

LOG_FORMATS = ("simple", "detailed", "json")

UNREADABLE_BODY = "[Unable to read body]"


@dataclass
class LoggerConfig:
    """Logging middleware settings."""

    include_body: bool = False
    include_headers: bool = False
    log_format: str = "simple"

    def validate(self) -> None:
        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"log_format must be one of {', '.join(LOG_FORMATS)}, got {self.log_format!r}"
            )


@dataclass
class RequestLog:
    """
    Structured log entry for one request.

    headers and request_body are only filled in when the middleware is
    configured to include them.
    """

    timestamp: str
    method: str
    path: str
    query: str
    status: int
    duration_ms: float
    user_agent: Optional[str]
    headers: Optional[Dict[str, str]] = None
    request_body: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "timestamp": self.timestamp,
            "method": self.method,
            "path": self.path,
            "query": self.query,
            "status": self.status,
            "duration": f"{self.duration_ms:.2f}ms",
            "user_agent": self.user_agent,
        }
        if self.headers is not None:
            data["headers"] = self.headers
        if self.request_body:
            data["request_body"] = self.request_body
        return data

    def to_simple(self) -> str:
        return f"{self.method} {self.path} -> {self.status} ({self.duration_ms:.2f}ms)"

    def to_detailed(self) -> str:
        lines = [
            f"[{self.timestamp}] {self.method} {self.path}{self.query} "
            f"-> {self.status} ({self.duration_ms:.2f}ms)"
        ]
        if self.headers is not None:
            lines.append(f"Headers: {json.dumps(self.headers)}")
        if self.request_body:
            lines.append(f"Body: {self.request_body}")
        return "\n".join(lines)

    def render(self, log_format: str) -> str:
        if log_format == "json":
            return json.dumps(self.to_dict())
        if log_format == "detailed":
            return self.to_detailed()
        return self.to_simple()


def snapshot_body(request: HTTPRequest) -> Optional[str]:
    """
    Best-effort text copy of the request body.

    Returns None for an empty body and the UNREADABLE_BODY marker for a
    body that cannot be read as UTF-8 text (invalid bytes, a stream).
    Streams are never consumed here.
    """
    body = request.body
    if body is None or (isinstance(body, (bytes, bytearray, str)) and not body):
        return None
    if isinstance(body, str):
        return body
    try:
        return memoryview(body).tobytes().decode("utf-8")
    except Exception:
        return UNREADABLE_BODY


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Logging middleware should be FIRST in the pipeline so that it sees
    every request, including those rejected by later middleware, and its
    timing covers the full chain:

        pipeline.add(LoggingMiddleware(log_format="json"))
        pipeline.add(CORSMiddleware())
        pipeline.add(RateLimitMiddleware(window_ms=60_000, max_requests=100))
    """

    def __init__(
        self,
        include_body: bool = False,
        include_headers: bool = False,
        log_format: str = "simple",
        log_level: int = logging.INFO,
    ):
        """
        Initialize logging middleware.

        Args:
            include_body: Add a UTF-8 snapshot of the request body.
            include_headers: Add the full request header set.
            log_format: "simple", "detailed" or "json".
            log_level: Level used for access records.
        """
        LoggerConfig(include_body, include_headers, log_format).validate()
        self.include_body = include_body
        self.include_headers = include_headers
        self.log_format = log_format
        self.log_level = log_level

    @classmethod
    def from_config(cls, config: LoggerConfig) -> "LoggingMiddleware":
        return cls(
            include_body=config.include_body,
            include_headers=config.include_headers,
            log_format=config.log_format,
        )

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Log the request and response.

        Flow:
        1. Start timing, record start time in the request context
        2. Snapshot the body (if configured)
        3. Call next handler
        4. Build and emit the log entry
        """
        start = time.perf_counter()
        timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        set_context(request, "start_time", start)

        request_body = snapshot_body(request) if self.include_body else None

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        self._emit(request, response, timestamp, duration_ms, request_body)
        return response

    def _emit(
        self,
        request: HTTPRequest,
        response: HTTPResponse,
        timestamp: str,
        duration_ms: float,
        request_body: Optional[str],
    ) -> None:
        try:
            entry = RequestLog(
                timestamp=timestamp,
                method=request.method,
                path=request.path,
                query=f"?{request.query_string}" if request.query_string else "",
                status=int(response.status),
                duration_ms=duration_ms,
                user_agent=request.get_header("user-agent") or None,
                headers=dict(request.headers) if self.include_headers else None,
                request_body=request_body,
            )
            logger.log(self.log_level, entry.render(self.log_format))
        except Exception as e:
            _internal.debug(f"Dropped access log record: {type(e).__name__}: {e}")
