"""
pytest configuration and fixtures.
"""

from typing import Callable, List
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpchain.http import HTTPRequest, HTTPResponse, HTTPStatus, ok
from httpchain.middleware import FunctionMiddleware


class FakeClock:
    """Manually advanced clock (seconds), for window arithmetic."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def get_request() -> HTTPRequest:
    """Sample GET request."""
    return HTTPRequest.from_url(
        "GET",
        "http://api.example.com:8080/api/users?page=1&limit=10",
        headers={"User-Agent": "pytest", "Accept": "application/json"},
        client_address=("127.0.0.1", 12345),
    )


@pytest.fixture
def make_request() -> Callable[..., HTTPRequest]:
    """Factory for fresh requests (one per chain call)."""
    def factory(method: str = "GET", url: str = "http://api.example.com/", **kwargs) -> HTTPRequest:
        return HTTPRequest.from_url(method, url, **kwargs)
    return factory


@pytest.fixture
def calls() -> List[str]:
    """Shared trace of which stages ran, in order."""
    return []


@pytest.fixture
def handler(calls: List[str]) -> Callable[[HTTPRequest], HTTPResponse]:
    """Terminal handler that records itself and returns 200."""
    def app(request: HTTPRequest) -> HTTPResponse:
        calls.append("handler")
        return ok({"status": "ok"})
    return app


@pytest.fixture
def tracer(calls: List[str]):
    """Factory for pass-through middleware that records before/after."""
    def factory(name: str) -> FunctionMiddleware:
        def trace(request, next):
            calls.append(f"{name}:before")
            response = next(request)
            calls.append(f"{name}:after")
            return response
        return FunctionMiddleware(trace, name=name)
    return factory


@pytest.fixture
def status_handler():
    """Factory for terminal handlers returning an empty response with a status."""
    def factory(status: HTTPStatus):
        def app(request: HTTPRequest) -> HTTPResponse:
            return HTTPResponse(status=status)
        return app
    return factory
