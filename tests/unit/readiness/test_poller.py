import threading
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
import pytest
from structlog.testing import capture_logs
from tenacity import wait_fixed

from sealedsecret.exceptions import (
    KeyResolverNotFoundError,
    KeyResolverUnavailableError,
    OperationCancelledError,
    ReadinessTimeoutError,
)
from sealedsecret.readiness import ReadinessPoller, is_retryable


@dataclass
class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    now: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _failing(*errors: BaseException, result: str = "key") -> Callable[[], str]:
    """Return a resolver that raises the given errors in turn, then succeeds."""
    pending = list(errors)
    calls: list[int] = []

    def resolver() -> str:
        calls.append(1)
        if pending:
            raise pending.pop(0)
        return result

    resolver.calls = calls  # type: ignore[attr-defined]
    return resolver


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "http://controller/v1/cert.pem")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"{status}", request=request, response=response)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def _poller(clock: FakeClock, **kwargs: object) -> ReadinessPoller:
    return ReadinessPoller(clock=clock, sleep=clock.sleep, **kwargs)  # type: ignore[arg-type]


class TestIsRetryable:
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (KeyResolverNotFoundError("no service"), True),
            (KeyResolverUnavailableError("no endpoints"), True),
            (_status_error(404), True),
            (_status_error(503), True),
            (_status_error(500), False),
            (_status_error(403), False),
            (ValueError("bad pem"), False),
        ],
    )
    def test_classifies(self, error: BaseException, expected: bool) -> None:  # noqa: FBT001
        assert is_retryable(error) is expected


class TestPoll:
    def test_returns_first_success_without_sleeping(self, clock: FakeClock) -> None:
        resolver = _failing()

        assert _poller(clock).poll(resolver, deadline=60) == "key"
        assert clock.sleeps == []

    def test_retries_transient_errors(self, clock: FakeClock) -> None:
        resolver = _failing(
            KeyResolverNotFoundError("no service"),
            KeyResolverUnavailableError("no endpoints"),
            _status_error(503),
        )

        result = _poller(clock, wait=wait_fixed(2)).poll(resolver, deadline=60)

        assert result == "key"
        assert len(resolver.calls) == 4  # type: ignore[attr-defined]
        assert clock.sleeps == [2, 2, 2]

    def test_fatal_error_is_raised_unchanged(self, clock: FakeClock) -> None:
        error = ValueError("bad pem")
        resolver = _failing(error)

        with pytest.raises(ValueError, match="bad pem") as exc_info:
            _ = _poller(clock).poll(resolver, deadline=60)

        assert exc_info.value is error
        assert len(resolver.calls) == 1  # type: ignore[attr-defined]
        assert clock.sleeps == []

    def test_fatal_after_transient(self, clock: FakeClock) -> None:
        resolver = _failing(KeyResolverNotFoundError("no service"), _status_error(500))

        with pytest.raises(httpx.HTTPStatusError):
            _ = _poller(clock, wait=wait_fixed(1)).poll(resolver, deadline=60)

        assert len(resolver.calls) == 2  # type: ignore[attr-defined]

    def test_deadline_raises_timeout_from_last_error(self, clock: FakeClock) -> None:
        errors = [KeyResolverUnavailableError(f"attempt {i}") for i in range(20)]
        resolver = _failing(*errors)

        with pytest.raises(ReadinessTimeoutError) as exc_info:
            _ = _poller(clock).poll(resolver, deadline=5)

        # Exponential waits of 0.5, 1 and 2 seconds, then the 1.5 seconds left
        assert clock.sleeps == [0.5, 1, 2, 1.5]
        assert exc_info.value.attempts == 5
        assert exc_info.value.deadline == 5
        assert exc_info.value.__cause__ is errors[4]

    def test_wait_never_exceeds_remaining_time(self, clock: FakeClock) -> None:
        resolver = _failing(*[KeyResolverNotFoundError("x") for _ in range(10)])

        with pytest.raises(ReadinessTimeoutError):
            _ = _poller(clock, wait=wait_fixed(4)).poll(resolver, deadline=10)

        assert clock.sleeps == [4, 4, 2]
        assert clock.now == 10

    def test_zero_deadline_makes_one_attempt(self, clock: FakeClock) -> None:
        resolver = _failing(KeyResolverNotFoundError("x"))

        with pytest.raises(ReadinessTimeoutError) as exc_info:
            _ = _poller(clock).poll(resolver, deadline=0)

        assert exc_info.value.attempts == 1

    def test_custom_classifier(self, clock: FakeClock) -> None:
        resolver = _failing(ValueError("flaky"))
        poller = _poller(
            clock, classifier=lambda e: isinstance(e, ValueError), wait=wait_fixed(1)
        )

        assert poller.poll(resolver, deadline=10) == "key"

    def test_logs_each_retry(self, clock: FakeClock) -> None:
        resolver = _failing(KeyResolverNotFoundError("no service"))

        with capture_logs() as logs:
            _ = _poller(clock, wait=wait_fixed(1)).poll(
                resolver, deadline=10, dependency="controller_key"
            )

        retries = [log for log in logs if log["event"] == "readiness_retry"]
        assert len(retries) == 1
        assert retries[0]["dependency"] == "controller_key"
        assert retries[0]["attempt"] == 1
        assert retries[0]["next_wait"] == 1


class TestCancellation:
    def test_cancelled_before_first_attempt(self, clock: FakeClock) -> None:
        cancel = threading.Event()
        cancel.set()
        resolver = _failing()

        with pytest.raises(OperationCancelledError):
            _ = _poller(clock).poll(resolver, deadline=60, cancel=cancel)

        assert resolver.calls == []  # type: ignore[attr-defined]

    def test_cancel_during_sleep_skips_next_attempt(self, clock: FakeClock) -> None:
        cancel = threading.Event()
        error = KeyResolverNotFoundError("no service")
        resolver = _failing(*[error for _ in range(10)])

        def sleep(seconds: float) -> None:
            clock.sleep(seconds)
            cancel.set()

        poller = ReadinessPoller(clock=clock, sleep=sleep, wait=wait_fixed(1))

        with pytest.raises(OperationCancelledError) as exc_info:
            _ = poller.poll(resolver, deadline=60, cancel=cancel)

        assert exc_info.value.__cause__ is error
        assert len(resolver.calls) == 1  # type: ignore[attr-defined]

    def test_cancellation_is_not_retried_by_broad_classifier(
        self, clock: FakeClock
    ) -> None:
        cancel = threading.Event()
        resolver = _failing(*[ValueError("flaky") for _ in range(10)])

        def sleep(seconds: float) -> None:
            clock.sleep(seconds)
            cancel.set()

        poller = ReadinessPoller(
            classifier=lambda _: True, clock=clock, sleep=sleep, wait=wait_fixed(1)
        )

        with pytest.raises(OperationCancelledError) as exc_info:
            _ = poller.poll(resolver, deadline=60, cancel=cancel)

        assert isinstance(exc_info.value.__cause__, ValueError)
        assert len(resolver.calls) == 1  # type: ignore[attr-defined]
        assert clock.sleeps == [1]

    def test_waits_on_cancel_event_by_default(self) -> None:
        cancel = threading.Event()
        resolver = _failing(*[KeyResolverNotFoundError("x") for _ in range(1000)])
        timer = threading.Timer(0.2, cancel.set)
        timer.start()
        try:
            with pytest.raises(OperationCancelledError):
                _ = ReadinessPoller(wait=wait_fixed(30)).poll(
                    resolver, deadline=60, cancel=cancel
                )
        finally:
            timer.cancel()

        assert len(resolver.calls) == 1  # type: ignore[attr-defined]
