"""
Unit tests for the request timeout middleware.
"""

import threading
import pytest

from httpchain.http import HTTPStatus, ok
from httpchain.middleware import (
    DoubleInvocationError,
    ErrorPolicy,
    MiddlewarePipeline,
    TimeoutMiddleware,
    get_context,
)


@pytest.fixture
def release():
    """Event a slow handler blocks on; set on teardown so no worker lingers."""
    event = threading.Event()
    yield event
    event.set()


class TestTimeoutMiddleware:
    """Tests for TimeoutMiddleware."""

    def test_fast_response_is_returned_unchanged(self, get_request):
        expected = ok({"fast": True})
        app = MiddlewarePipeline().add(TimeoutMiddleware(1000)).handle(lambda req: expected)

        assert app(get_request) is expected

    def test_slow_handler_gets_408(self, get_request, release):
        """The deadline wins: bit-exact 408 body."""
        def slow(request):
            release.wait(5)
            return ok("too late")

        app = MiddlewarePipeline().add(TimeoutMiddleware(50)).handle(slow)
        response = app(get_request)

        assert response.status == HTTPStatus.REQUEST_TIMEOUT
        assert response.headers["Content-Type"] == "application/json"
        assert response.body == b'{"error":"Request Timeout"}'

    def test_cancel_event_is_published_and_set_on_expiry(self, get_request, release):
        """Handlers can observe cancellation through the request context."""
        seen = []

        def slow(request):
            seen.append(get_context(request)["cancel_event"])
            release.wait(5)
            return ok()

        app = MiddlewarePipeline().add(TimeoutMiddleware(50)).handle(slow)
        app(get_request)

        assert len(seen) == 1
        assert seen[0].is_set()

    def test_cancel_event_not_set_when_in_time(self, get_request):
        def app(request):
            return ok()

        dispatch = MiddlewarePipeline().add(TimeoutMiddleware(1000)).handle(app)
        dispatch(get_request)

        assert not get_context(get_request)["cancel_event"].is_set()

    def test_cooperative_handler_stops_early(self, get_request):
        """A handler polling the cancel event can stop its own work."""
        stopped = threading.Event()

        def cooperative(request):
            cancel = get_context(request)["cancel_event"]
            while not cancel.wait(0.01):
                pass
            stopped.set()
            return ok()

        app = MiddlewarePipeline().add(TimeoutMiddleware(50)).handle(cooperative)

        assert app(get_request).status == HTTPStatus.REQUEST_TIMEOUT
        assert stopped.wait(2)

    def test_handler_error_is_propagated(self, get_request):
        """Errors from the worker reach the error policy, not a 408."""
        def broken(request):
            raise LookupError("no such user")

        handled = []

        def on_error(error, request):
            handled.append(error)
            return ok({"handled": type(error).__name__})

        app = (MiddlewarePipeline()
            .add(TimeoutMiddleware(1000))
            .configure(ErrorPolicy(error_handler=on_error))
            .handle(broken))

        assert app(get_request).json() == {"handled": "LookupError"}
        assert isinstance(handled[0], LookupError)

    def test_builtin_timeout_error_is_not_a_timeout(self, get_request):
        """A handler raising TimeoutError is an ordinary failure (500)."""
        def app(request):
            raise TimeoutError("upstream")

        dispatch = MiddlewarePipeline().add(TimeoutMiddleware(1000)).handle(app)

        assert dispatch(get_request).status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_downstream_stages_are_covered(self, get_request, release):
        """Middleware added after the timeout run inside the deadline."""
        def slow_stage(request, next):
            release.wait(5)
            return next(request)

        app = (MiddlewarePipeline()
            .add(TimeoutMiddleware(50))
            .add(slow_stage)
            .handle(lambda req: ok()))

        assert app(get_request).status == HTTPStatus.REQUEST_TIMEOUT

    def test_outer_stages_see_the_408(self, get_request, release):
        statuses = []

        def observe(request, next):
            response = next(request)
            statuses.append(response.status)
            return response

        def slow(request):
            release.wait(5)
            return ok()

        app = (MiddlewarePipeline()
            .add(observe)
            .add(TimeoutMiddleware(50))
            .handle(slow))
        app(get_request)

        assert statuses == [HTTPStatus.REQUEST_TIMEOUT]

    @pytest.mark.parametrize("timeout_ms", [0, -1])
    def test_rejects_non_positive_timeout(self, timeout_ms):
        with pytest.raises(ValueError):
            TimeoutMiddleware(timeout_ms)

    def test_chain_errors_escape_unchanged(self, get_request, handler):
        """A DoubleInvocationError raised behind the guard is re-raised as-is."""
        def twice(request, next):
            next(request)
            return next(request)

        app = (MiddlewarePipeline()
            .add(TimeoutMiddleware(1000))
            .add(twice)
            .handle(handler))

        with pytest.raises(DoubleInvocationError) as exc_info:
            app(get_request)
        assert exc_info.value.stage_index == 1

    def test_nested_guards_share_cancel_event(self, get_request, release):
        """The outer deadline sets the event the handler is polling."""
        seen = []

        def slow(request):
            seen.append(get_context(request)["cancel_event"])
            release.wait(5)
            return ok()

        app = (MiddlewarePipeline()
            .add(TimeoutMiddleware(50))
            .add(TimeoutMiddleware(5000))
            .handle(slow))

        assert app(get_request).status == HTTPStatus.REQUEST_TIMEOUT
        assert seen[0].is_set()
