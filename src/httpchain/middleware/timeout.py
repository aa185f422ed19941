"""
=============================================================================
REQUEST TIMEOUT MIDDLEWARE
=============================================================================

Races the rest of the chain against a deadline.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THE RACE                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   request thread                 worker thread                       │
    │   ──────────────                 ─────────────                       │
    │   start worker ───────────────►  response = next(request)           │
    │   wait(done, timeout)                   │                            │
    │        │                                ▼                            │
    │        ├── done first ◄───────────  done.set()                      │
    │        │     → return its response (or re-raise its error)          │
    │        │                                                             │
    │        └── deadline first                                            │
    │              → cancel_event.set()                                    │
    │              → 408 {"error":"Request Timeout"}                      │
    │              (worker keeps running; its result is discarded)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CANCELLATION IS ADVISORY
=============================================================================

Python threads cannot be killed. On expiry we stop WAITING, we do not stop
the work. Handlers that want to cooperate can poll the event published in
the request context:

    cancel = get_context(request).get("cancel_event")
    for chunk in work:
        if cancel is not None and cancel.is_set():
            break

=============================================================================
"""

import logging
import threading
from typing import Optional

from .base import Middleware, NextHandler
from .context import get_context
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, json_response
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

CANCEL_EVENT_KEY = "cancel_event"


class TimeoutExceededError(Exception):
    """
    Internal signal: the deadline fired before the chain finished.

    Never escapes TimeoutMiddleware; it always becomes a 408 response.
    Kept distinct from the builtin TimeoutError so that a handler raising
    TimeoutError is propagated as a normal error, not mistaken for expiry.
    """

    def __init__(self, timeout_ms: int):
        super().__init__(f"Request timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class _Outcome:
    """Result slot filled in by the worker thread."""

    def __init__(self):
        self.done = threading.Event()
        self.response: Optional[HTTPResponse] = None
        self.error: Optional[BaseException] = None


class TimeoutMiddleware(Middleware):
    """
    Request timeout middleware.

        pipeline.add(TimeoutMiddleware(30_000))   # 30 seconds

    Place it close to the handler: stages added before it are not covered
    by the deadline, stages added after it are.
    """

    def __init__(self, timeout_ms: int):
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {timeout_ms}")
        self.timeout_ms = timeout_ms

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        # Nested guards share one event, so the handler sees whichever fires first
        cancel_event = get_context(request).setdefault(CANCEL_EVENT_KEY, threading.Event())

        outcome = _Outcome()

        def run():
            try:
                outcome.response = next(request)
            except BaseException as e:  # handed back to the request thread
                outcome.error = e
            finally:
                outcome.done.set()

        worker = threading.Thread(
            target=run,
            name=f"timeout-{request.method}-{request.path}",
            daemon=True,
        )
        worker.start()

        try:
            self._wait(outcome)
        except TimeoutExceededError as e:
            cancel_event.set()
            logger.warning(f"{request.method} {request.path} - {e}")
            return json_response(HTTPStatus.REQUEST_TIMEOUT, {"error": "Request Timeout"})

        if outcome.error is not None:
            raise outcome.error
        return outcome.response

    def _wait(self, outcome: _Outcome) -> None:
        """Block until the worker finishes or raise TimeoutExceededError."""
        if not outcome.done.wait(self.timeout_ms / 1000):
            raise TimeoutExceededError(self.timeout_ms)
