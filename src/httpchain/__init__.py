"""
=============================================================================
HTTPCHAIN - REQUEST-PROCESSING PIPELINE FOR HTTP SERVERS
=============================================================================

A chain of composable middleware wrapping a terminal handler, plus the
built-in middleware most services need:

    - LoggingMiddleware    request/response access logs
    - CORSMiddleware       preflight answers and allow-origin headers
    - RateLimitMiddleware  fixed-window limits per client key
    - TimeoutMiddleware    408 when the chain misses its deadline

and a per-request context store for passing data between stages.

=============================================================================
QUICK START
=============================================================================

    from httpchain import MiddlewarePipeline, HTTPRequest, ok
    from httpchain.middleware import (
        LoggingMiddleware, CORSMiddleware, RateLimitMiddleware, TimeoutMiddleware,
    )

    def app(request):
        return ok({"hello": "world"})

    handler = (MiddlewarePipeline()
        .add(LoggingMiddleware())
        .add(CORSMiddleware())
        .add(RateLimitMiddleware(window_ms=60_000, max_requests=100))
        .add(TimeoutMiddleware(30_000))
        .handle(app))

    response = handler(HTTPRequest.from_url("GET", "http://api.example.com/"))

The host server owns sockets and HTTP parsing; it calls handler(request)
once per request, from any thread.

=============================================================================
"""

__version__ = "1.0.0"

from .config import PipelineConfig, TimeoutConfig, ConfigError, build_pipeline, setup_logging
from .http import HTTPRequest, HTTPResponse, HTTPStatus, ResponseBuilder, json_response, ok
from .middleware import (
    Dispatcher,
    DoubleInvocationError,
    ErrorPolicy,
    Middleware,
    MiddlewarePipeline,
    compose,
    create_pipeline,
    get_context,
    set_context,
    with_middleware,
)

__all__ = [
    "__version__",

    # Configuration
    "PipelineConfig",
    "TimeoutConfig",
    "ConfigError",
    "build_pipeline",
    "setup_logging",

    # HTTP types
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "ResponseBuilder",
    "json_response",
    "ok",

    # Composition
    "Dispatcher",
    "DoubleInvocationError",
    "ErrorPolicy",
    "Middleware",
    "MiddlewarePipeline",
    "compose",
    "create_pipeline",
    "with_middleware",

    # Context store
    "get_context",
    "set_context",
]
