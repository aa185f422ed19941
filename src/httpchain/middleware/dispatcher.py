"""
=============================================================================
DISPATCHER - THE COMPOSITION ENGINE
=============================================================================

Sequences an ordered list of middleware around a terminal handler.

=============================================================================
CURSOR-BASED DISPATCH
=============================================================================

Every request gets its own cursor with a HIGH-WATER MARK: the highest
stage index dispatched so far. advance(i) is the only way to run a stage.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        advance(i)                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   i <= high_water?  ──yes──►  DoubleInvocationError (never caught)  │
    │        │ no                                                          │
    │        ▼                                                             │
    │   high_water = i                                                     │
    │        │                                                             │
    │        ├── i <  len(middleware) → middleware[i](request, next)      │
    │        │                             next() == advance(i + 1)        │
    │        │                                                             │
    │        └── i == len(middleware) → handler(request)                  │
    │                                                                      │
    │   raised?                                                            │
    │        ├── continue_on_error, stage never continued                 │
    │        │        → log, advance(i + 1)   (stage is a no-op)          │
    │        └── otherwise                                                 │
    │                 → error_handler(error, request)  (chain ends)       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Exactly one of these authors the final response:
    1. a middleware that returns without calling next (short-circuit)
    2. the terminal handler
    3. the error handler

=============================================================================
ERROR TAXONOMY
=============================================================================

    DoubleInvocationError   next() called twice by one stage. A bug in the
                            chain, so it always propagates to the caller.

    Any other Exception     A downstream error. Recovered per ErrorPolicy:
                            skipped (continue_on_error) or converted to a
                            response by the error handler.

=============================================================================
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence
import logging
import threading

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, json_response
from ..http.status_codes import HTTPStatus
from .base import Handler, Middleware, NextHandler, as_middleware


logger = logging.getLogger(__name__)


ErrorHandler = Callable[[Exception, HTTPRequest], HTTPResponse]


class DoubleInvocationError(RuntimeError):
    """
    Raised when a stage calls its continuation more than once.

    Attributes:
        stage_index: Position of the offending middleware in the chain
        stage_name: Name of the offending middleware
    """

    def __init__(self, stage_index: int, stage_name: str):
        super().__init__(
            f"next() called multiple times by middleware #{stage_index} ({stage_name})"
        )
        self.stage_index = stage_index
        self.stage_name = stage_name


def default_error_handler(error: Exception, request: HTTPRequest) -> HTTPResponse:
    """
    Convert an unhandled chain error into a 500 response.

    Body is exactly {"error":"Internal Server Error"}. The error detail is
    logged, never sent to the client.
    """
    logger.error(
        f"Unhandled middleware error: {request.method} {request.path} "
        f"- {type(error).__name__}: {error}",
        exc_info=error,
    )
    return json_response(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": "Internal Server Error"})


@dataclass
class ErrorPolicy:
    """
    What the dispatcher does when a middleware or the handler raises.

    Fields left as None are "unset" so that policies can be merged field
    by field; unset fields resolve to the defaults:

        continue_on_error   False
        error_handler       default_error_handler (500 JSON response)
    """

    continue_on_error: Optional[bool] = None
    error_handler: Optional[ErrorHandler] = None

    def merge(self, other: "ErrorPolicy") -> "ErrorPolicy":
        """Return a new policy where every field set on ``other`` wins."""
        return ErrorPolicy(
            continue_on_error=(
                other.continue_on_error
                if other.continue_on_error is not None
                else self.continue_on_error
            ),
            error_handler=other.error_handler or self.error_handler,
        )

    @property
    def should_continue(self) -> bool:
        return bool(self.continue_on_error)

    @property
    def handler(self) -> ErrorHandler:
        return self.error_handler or default_error_handler


class Dispatcher:
    """
    An immutable chain: middleware + terminal handler + error policy.

    Calling the dispatcher runs the chain for one request:

        dispatch = Dispatcher([LoggingMiddleware(), CORSMiddleware()], app)
        response = dispatch(request)

    The dispatcher itself keeps no state between requests. Each call
    creates a fresh _ChainRun holding that request's cursor.
    """

    def __init__(
        self,
        middlewares: Sequence[Middleware],
        handler: Handler,
        policy: Optional[ErrorPolicy] = None,
    ):
        self._middleware = tuple(as_middleware(mw) for mw in middlewares)
        self._handler = handler
        self._policy = policy or ErrorPolicy()

    @property
    def middleware(self) -> tuple:
        return self._middleware

    @property
    def policy(self) -> ErrorPolicy:
        return self._policy

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return _ChainRun(self).advance(0, request)

    def __len__(self) -> int:
        return len(self._middleware)


class _ChainRun:
    """Per-request dispatch state: the cursor's high-water mark."""

    def __init__(self, dispatcher: Dispatcher):
        self._stages = dispatcher._middleware
        self._handler = dispatcher._handler
        self._policy = dispatcher._policy
        self._high_water = -1
        # A timeout guard may run the continuation on another thread
        self._lock = threading.Lock()

    def _stage_name(self, index: int) -> str:
        if index < len(self._stages):
            return self._stages[index].name
        return getattr(self._handler, "__name__", "handler")

    def advance(self, index: int, request: HTTPRequest) -> HTTPResponse:
        with self._lock:
            if index <= self._high_water:
                raise DoubleInvocationError(index - 1, self._stage_name(index - 1))
            self._high_water = index

        try:
            if index < len(self._stages):
                response = self._stages[index](request, self._continuation(index, request))
            else:
                response = self._handler(request)
            if response is None:
                raise TypeError(f"{self._stage_name(index)} returned None instead of a response")
            return response
        except DoubleInvocationError:
            raise
        except Exception as error:
            return self._recover(index, request, error)

    def _continuation(self, index: int, request: HTTPRequest) -> NextHandler:
        def next_handler(next_request: Optional[HTTPRequest] = None) -> HTTPResponse:
            return self.advance(index + 1, request if next_request is None else next_request)

        return next_handler

    def _recover(self, index: int, request: HTTPRequest, error: Exception) -> HTTPResponse:
        # A stage that already continued cannot be skipped: its downstream
        # stages have run and would run twice.
        skippable = index < len(self._stages) and self._high_water == index
        if self._policy.should_continue and skippable:
            logger.error(
                f"Middleware error in {self._stage_name(index)}, continuing: "
                f"{type(error).__name__}: {error}",
                exc_info=error,
            )
            return self.advance(index + 1, request)

        return self._policy.handler(error, request)


# =============================================================================
# FUNCTIONAL FORMS
# =============================================================================

def compose(
    middlewares: Sequence[Middleware],
    handler: Handler,
    policy: Optional[ErrorPolicy] = None,
) -> Dispatcher:
    """
    Compose middleware with a final handler into one handler.

        app = compose([LoggingMiddleware(), CORSMiddleware()], my_handler)
        response = app(request)
    """
    return Dispatcher(middlewares, handler, policy)


def with_middleware(middleware: Middleware, handler: Handler) -> Dispatcher:
    """Wrap a handler with a single middleware."""
    return Dispatcher([middleware], handler)
