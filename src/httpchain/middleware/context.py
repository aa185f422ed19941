"""
=============================================================================
REQUEST CONTEXT STORE
=============================================================================

A per-request key/value bag for passing data between chain stages.

    LoggingMiddleware   set_context(request, "start_time", ...)
    AuthMiddleware      set_context(request, "user", user)
    handler             get_context(request)["user"]

The mapping lives ON the request object, created on first access and
dropped together with the request. Two concurrent requests are two
different objects, so they can never observe each other's context and no
locking is needed here.

=============================================================================
"""

from typing import Any, Dict, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .base import Middleware, NextHandler


def get_context(request: HTTPRequest) -> Dict[str, Any]:
    """
    Get the request's context, creating an empty one on first call.

    The returned dict is live: writes to it are visible to later stages.
    """
    if request._context is None:
        request._context = {}
    return request._context


def set_context(request: HTTPRequest, key: str, value: Any) -> None:
    """Write one value into the request's context."""
    get_context(request)[key] = value


class ContextMiddleware(Middleware):
    """
    Seeds every request's context with initial values.

        pipeline.add(ContextMiddleware({"tenant": "default"}))

    Each request gets its own mapping; the seeded values themselves are
    shared (pools, clients and loggers are seeded as-is).
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.initial = dict(initial or {})

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        context = get_context(request)
        for key, value in self.initial.items():
            context.setdefault(key, value)
        return next(request)
