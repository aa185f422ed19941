"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Defines the middleware contract: a unit of behaviour that, given a
request and a continuation, produces a response.

    ┌─────────────────────────────────────────────────────────────────────┐
    │              CHAIN OF RESPONSIBILITY - REQUEST FLOW                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Request ────────────────────────────────────────────────►         │
    │                                                                      │
    │   ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐     │
    │   │  Logging │───►│   CORS   │───►│   Rate   │───►│ Handler  │     │
    │   │    MW    │    │    MW    │    │  Limit   │    │          │     │
    │   └────┬─────┘    └────┬─────┘    └────┬─────┘    └────┬─────┘     │
    │        ▼               ▼               ▼               ▼            │
    │   [before]        [before]        [before]         [exec]          │
    │   start timer     preflight?      count key        handle          │
    │        ▲               ▲               ▲               │            │
    │   [after]         [after]         [after]              ▼            │
    │   log line        allow-origin    X-RateLimit-*     [done]         │
    │                                                                      │
    │   ◄──────────────────────────────────────────────── Response        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A stage's post-continuation code runs strictly after every downstream
stage has fully completed: nesting is LIFO around the call to next().

=============================================================================
THE CONTINUATION
=============================================================================

The continuation may be called AT MOST ONCE per stage. Calling it a
second time is a programming error and raises DoubleInvocationError
(see dispatcher.py). Not calling it at all is a short-circuit: no later
stage and not the handler will run.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# =============================================================================
# TYPE ALIASES
# =============================================================================

# The continuation handed to each middleware. Call it as next(request), or
# as next() to continue with the stage's own request.
NextHandler = Callable[..., HTTPResponse]

# The terminal handler: request in, response out. No continuation.
Handler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    =========================================================================
    MIDDLEWARE ANATOMY
    =========================================================================

        class MyMiddleware(Middleware):
            def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
                # PRE-PROCESSING
                if not self.is_valid(request):
                    return bad_request()     # Short-circuit!

                response = next(request)     # At most once!

                # POST-PROCESSING
                response.set_header("X-Processed-By", "MyMiddleware")
                return response

    =========================================================================
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming HTTP request
            next: Continuation running the rest of the chain

        Returns:
            HTTP response (either from next() or short-circuited)
        """

    @property
    def name(self) -> str:
        """Get the middleware name for logging."""
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """
    Wraps a plain ``(request, next) -> response`` function as middleware.

    Usage:
        def add_header(request, next):
            response = next(request)
            response.set_header("X-Custom", "value")
            return response

        pipeline.add(FunctionMiddleware(add_header))
    """

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None
    ):
        self._func = func
        self._name = name or getattr(func, "__name__", type(func).__name__)

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[HTTPRequest, NextHandler], HTTPResponse]
) -> FunctionMiddleware:
    """
    Decorator to create middleware from a function.

        @function_middleware
        def stamp(request, next):
            response = next(request)
            response.set_header("X-Stamped", "true")
            return response

        pipeline.add(stamp)
    """
    return FunctionMiddleware(func)


def as_middleware(middleware) -> Middleware:
    """Coerce a Middleware or a plain (request, next) callable to Middleware."""
    if isinstance(middleware, Middleware):
        return middleware
    if callable(middleware):
        return FunctionMiddleware(middleware)
    raise TypeError(f"Expected middleware or callable, got {type(middleware).__name__}")
