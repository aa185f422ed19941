"""
=============================================================================
MIDDLEWARE FRAMEWORK
=============================================================================

Middleware is code that runs BETWEEN receiving a request and calling the
final handler, like a pipeline of filters:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    MIDDLEWARE PIPELINE                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌──────────────────┐                                              │
    │   │ LoggingMiddleware│ ──► Times and logs the request               │
    │   └────────┬─────────┘                                              │
    │            ▼                                                         │
    │   ┌──────────────────┐                                              │
    │   │ CORSMiddleware   │ ──► Answers preflight, adds CORS headers     │
    │   └────────┬─────────┘                                              │
    │            ▼                                                         │
    │   ┌──────────────────┐                                              │
    │   │ RateLimitMiddle  │ ──► May reject with 429                      │
    │   └────────┬─────────┘                                              │
    │            ▼                                                         │
    │   ┌──────────────────┐                                              │
    │   │ TimeoutMiddleware│ ──► May give up with 408                     │
    │   └────────┬─────────┘                                              │
    │            ▼                                                         │
    │   ┌──────────────────┐                                              │
    │   │   Your Handler   │ ──► Actual business logic                    │
    │   └────────┬─────────┘                                              │
    │            ▼                                                         │
    │   Response flows back UP through middleware                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .base import Middleware, NextHandler, Handler, FunctionMiddleware, function_middleware
from .dispatcher import (
    Dispatcher,
    DoubleInvocationError,
    ErrorPolicy,
    compose,
    default_error_handler,
    with_middleware,
)
from .pipeline import MiddlewarePipeline, create_pipeline
from .context import ContextMiddleware, get_context, set_context
from .logging import LoggingMiddleware, LoggerConfig
from .cors import CORSMiddleware, CORSConfig
from .rate_limit import RateLimitMiddleware, RateLimitConfig, RateLimitEntry
from .timeout import TimeoutMiddleware, TimeoutExceededError

__all__ = [
    # Contract
    "Middleware",
    "NextHandler",
    "Handler",
    "FunctionMiddleware",
    "function_middleware",

    # Composition
    "Dispatcher",
    "DoubleInvocationError",
    "ErrorPolicy",
    "compose",
    "default_error_handler",
    "with_middleware",
    "MiddlewarePipeline",
    "create_pipeline",

    # Context store
    "ContextMiddleware",
    "get_context",
    "set_context",

    # Built-in middleware
    "LoggingMiddleware",
    "LoggerConfig",
    "CORSMiddleware",
    "CORSConfig",
    "RateLimitMiddleware",
    "RateLimitConfig",
    "RateLimitEntry",
    "TimeoutMiddleware",
    "TimeoutExceededError",
]
