"""
=============================================================================
MIDDLEWARE PIPELINE (CHAIN BUILDER)
=============================================================================

A fluent accumulator for middleware and error policy. handle() freezes
what has been accumulated into a Dispatcher.

    pipeline = (MiddlewarePipeline()
        .add(LoggingMiddleware())        # First added = outermost
        .add(CORSMiddleware())
        .add(RateLimitMiddleware(window_ms=60_000, max_requests=100))
        .configure(continue_on_error=False))

    app = pipeline.handle(router_handler)
    response = app(request)

Resulting structure:

    ┌─────────────────────────────────────────────────────────┐
    │  LoggingMiddleware                                      │
    │  ┌───────────────────────────────────────────────────┐  │
    │  │  CORSMiddleware                                   │  │
    │  │  ┌─────────────────────────────────────────────┐  │  │
    │  │  │  RateLimitMiddleware                        │  │  │
    │  │  │  ┌─────────────────────────────────────┐    │  │  │
    │  │  │  │         FINAL HANDLER               │    │  │  │
    │  │  │  └─────────────────────────────────────┘    │  │  │
    │  │  └─────────────────────────────────────────────┘  │  │
    │  └───────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────┘

=============================================================================
"""

from typing import List, Optional
import logging

from .base import Handler, Middleware, as_middleware
from .dispatcher import Dispatcher, ErrorHandler, ErrorPolicy


logger = logging.getLogger(__name__)


class MiddlewarePipeline:
    """
    Mutable builder for a middleware chain.

    The builder is discarded (or reused) after handle(); the Dispatcher it
    returns is a snapshot and does not see later add() calls.
    """

    def __init__(self):
        self._middleware: List[Middleware] = []
        self._policy = ErrorPolicy()

    def add(self, middleware) -> "MiddlewarePipeline":
        """
        Add middleware to the pipeline.

        Middleware is executed in the order added (first added = outermost).
        Plain ``(request, next)`` functions are accepted too.

        Returns:
            Self for method chaining
        """
        middleware = as_middleware(middleware)
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware) -> "MiddlewarePipeline":
        """
        Add multiple middleware at once.

            pipeline.use(LoggingMiddleware(), CORSMiddleware())
        """
        for mw in middleware:
            self.add(mw)
        return self

    def configure(
        self,
        policy: Optional[ErrorPolicy] = None,
        *,
        continue_on_error: Optional[bool] = None,
        error_handler: Optional[ErrorHandler] = None,
    ) -> "MiddlewarePipeline":
        """
        Merge error-policy settings into the pipeline.

        Last write wins per field; fields not given keep their value:

            pipeline.configure(continue_on_error=True)
            pipeline.configure(error_handler=my_handler)
            # → continue_on_error=True, error_handler=my_handler

        Returns:
            Self for method chaining
        """
        if policy is not None:
            self._policy = self._policy.merge(policy)
        self._policy = self._policy.merge(
            ErrorPolicy(continue_on_error=continue_on_error, error_handler=error_handler)
        )
        return self

    @property
    def policy(self) -> ErrorPolicy:
        return self._policy

    def handle(self, handler: Handler) -> Dispatcher:
        """
        Materialize the chain around the final handler.

        An empty pipeline is legal: the dispatcher calls the handler
        directly (still under the error policy).
        """
        return Dispatcher(list(self._middleware), handler, self._policy)

    # The server-facing name for the same operation
    wrap = handle

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)


def create_pipeline() -> MiddlewarePipeline:
    """Create a new, empty middleware pipeline."""
    return MiddlewarePipeline()
