"""
=============================================================================
RATE LIMITING MIDDLEWARE
=============================================================================

Limits how many requests a client (a "key") may make per time window.

=============================================================================
FIXED WINDOW ALGORITHM
=============================================================================

Each key owns one entry: a request count and the time its window ends.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  FIXED WINDOW (max_requests = 3)                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   t=0s   req 1  → no entry      → {count=1, reset_at=60s}  ALLOW    │
    │   t=5s   req 2  → 60s > 5s      → count=2                  ALLOW    │
    │   t=9s   req 3  → 60s > 9s      → count=3                  ALLOW    │
    │   t=12s  req 4  → 60s > 12s     → count=4 > 3              429      │
    │                                   Retry-After: 48                   │
    │   t=61s  req 5  → 60s <= 61s    → {count=1, reset_at=121s} ALLOW    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The window starts at the key's FIRST request, not at a global clock tick,
and does not slide: once reset_at passes, the next request opens a brand
new window.

Entries are never evicted. An expired entry costs idle memory only; it is
reset on its key's next use.

=============================================================================
THREAD SAFETY
=============================================================================

The entry table is the only state shared between requests. Every
read-modify-write (lookup → reset or increment → maybe decrement) happens
under one lock, so two threads can never both read count=N and both write
N+1. The lock is NOT held while the rest of the chain runs.

=============================================================================
RESPONSE HEADERS
=============================================================================

Allowed requests:
    X-RateLimit-Limit:     3
    X-RateLimit-Remaining: 1
    X-RateLimit-Reset:     1718000060000   (reset_at, epoch milliseconds)

Rejected requests (429) additionally:
    Retry-After:           48               (seconds, rounded up)
    Content-Type:          application/json
    {"error":"Too Many Requests","retryAfter":48}

=============================================================================
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, json_response
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    """
    Fixed-window counter for one key.

    count:    Requests counted in the current window
    reset_at: When the window ends (epoch milliseconds)
    """

    count: int
    reset_at: int


@dataclass
class RateLimitConfig:
    """
    Rate limiter settings.

    window_ms:                Window length in milliseconds
    max_requests:             Requests allowed per window
    skip_successful_requests: Do not count responses with status < 400
    """

    window_ms: int = 60_000
    max_requests: int = 100
    skip_successful_requests: bool = False

    def validate(self) -> None:
        if self.window_ms <= 0:
            raise ValueError(f"window_ms must be > 0, got {self.window_ms}")
        if self.max_requests <= 0:
            raise ValueError(f"max_requests must be > 0, got {self.max_requests}")


def hostname_key(request: HTTPRequest) -> str:
    """Default key function: the request's target hostname."""
    return request.hostname


class RateLimitMiddleware(Middleware):
    """
    Fixed-window rate limiting middleware.

    =========================================================================
    USAGE EXAMPLES
    =========================================================================

    # 100 requests per minute per host
    pipeline.add(RateLimitMiddleware(window_ms=60_000, max_requests=100))

    # Rate limit by API key instead of hostname
    pipeline.add(RateLimitMiddleware(
        window_ms=60_000,
        max_requests=1000,
        key_func=lambda req: req.get_header("X-API-Key", "anonymous"),
    ))

    # Only failures count (e.g. login attempts)
    pipeline.add(RateLimitMiddleware(
        window_ms=15 * 60_000,
        max_requests=5,
        skip_successful_requests=True,
    ))

    =========================================================================
    """

    def __init__(
        self,
        window_ms: int,
        max_requests: int,
        key_func: Optional[Callable[[HTTPRequest], str]] = None,
        skip_successful_requests: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize rate limit middleware.

        Args:
            window_ms: Window length in milliseconds.

            max_requests: Requests allowed per key per window.

            key_func: Function to extract the rate limit key from a
                      request. Defaults to the target hostname.

            skip_successful_requests: If True, requests whose response
                      status is below 400 are not counted.

            clock: Returns the current time in seconds (time.time).
                   Tests inject a fake clock to move across windows.
        """
        RateLimitConfig(window_ms, max_requests, skip_successful_requests).validate()

        self.window_ms = window_ms
        self.max_requests = max_requests
        self.key_func = key_func or hostname_key
        self.skip_successful_requests = skip_successful_requests
        self._clock = clock

        # Per-key counters, shared by every request through this instance
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: RateLimitConfig,
        key_func: Optional[Callable[[HTTPRequest], str]] = None,
    ) -> "RateLimitMiddleware":
        return cls(
            window_ms=config.window_ms,
            max_requests=config.max_requests,
            key_func=key_func,
            skip_successful_requests=config.skip_successful_requests,
        )

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Rate limit the request.

        Flow:
        1. Extract rate limit key
        2. Under the lock: open a new window or count this request
        3. Over the limit: return 429 without calling next
        4. Otherwise call next
        5. Under the lock: maybe un-count a successful request
        6. Add X-RateLimit-* headers reflecting the entry after step 5
        """
        key = self.key_func(request)

        with self._lock:
            now = self._now_ms()
            entry = self._entries.get(key)

            if entry is None or entry.reset_at <= now:
                self._entries[key] = RateLimitEntry(count=1, reset_at=now + self.window_ms)
                rejected = None
            else:
                entry.count += 1
                rejected = (entry.count, entry.reset_at) if entry.count > self.max_requests else None

        if rejected is not None:
            count, reset_at = rejected
            return self._reject(key, count, reset_at, now)

        response = next(request)

        with self._lock:
            current = self._entries.get(key)
            if current is None:
                return response
            if self.skip_successful_requests and response.status < 400:
                current.count = max(0, current.count - 1)
            count, reset_at = current.count, current.reset_at

        for name, value in self._limit_headers(count, reset_at).items():
            response.set_header(name, value)

        return response

    def _limit_headers(self, count: int, reset_at: int) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.max_requests),
            "X-RateLimit-Remaining": str(max(0, self.max_requests - count)),
            "X-RateLimit-Reset": str(reset_at),
        }

    def _reject(self, key: str, count: int, reset_at: int, now: int) -> HTTPResponse:
        """Build the 429 Too Many Requests response."""
        retry_after = math.ceil((reset_at - now) / 1000)

        logger.warning(f"Rate limit exceeded for {key!r}: {count}/{self.max_requests}, retry in {retry_after}s")

        headers = {"Retry-After": str(retry_after)}
        headers.update(self._limit_headers(count, reset_at))
        return json_response(
            HTTPStatus.TOO_MANY_REQUESTS,
            {"error": "Too Many Requests", "retryAfter": retry_after},
            headers=headers,
        )

    def entry(self, key: str) -> Optional[RateLimitEntry]:
        """Snapshot of the entry for ``key`` (None if never seen)."""
        with self._lock:
            entry = self._entries.get(key)
            return RateLimitEntry(entry.count, entry.reset_at) if entry else None

    def reset(self, key: Optional[str] = None):
        """
        Reset rate limits.

        Args:
            key: Specific key to reset, or None to reset all.
        """
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
