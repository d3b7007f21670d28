"""Bounded-retry readiness polling.

ReadinessPoller calls a resolver until it succeeds, a non-retryable error
occurs, or a deadline passes. Retries are driven by tenacity; the clock and
sleep function are injectable so tests run without real delays.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Final

from tenacity import RetryError, Retrying, retry_if_exception, wait_exponential

from sealedsecret.exceptions import OperationCancelledError, ReadinessTimeoutError
from sealedsecret.readiness._classify import Classifier, is_retryable
from sealedsecret.utils import default_logger, raise_if_cancelled

if TYPE_CHECKING:
    import threading

    from structlog.typing import FilteringBoundLogger
    from tenacity import RetryCallState
    from tenacity.wait import WaitBaseT

APPLY_DEADLINE: Final = 180.0
REFRESH_DEADLINE: Final = 60.0


class ReadinessPoller:
    """Retry a resolver with exponential backoff until a deadline.

    Errors the classifier deems retryable are retried; any other error is
    re-raised unchanged on the first occurrence. When the deadline passes,
    ReadinessTimeoutError is raised from the last retryable error.

    Example:
        >>> poller = ReadinessPoller()
        >>> key = poller.poll(fetch_public_key, deadline=60)
    """

    __slots__: Final = ("_classifier", "_clock", "_logger", "_sleep", "_wait")

    def __init__(
        self,
        *,
        classifier: Classifier = is_retryable,
        wait: WaitBaseT | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], object] | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the poller.

        Args:
            classifier: Returns True for errors worth retrying.
            wait: tenacity wait strategy; exponential 0.5s to 10s by default.
            clock: Monotonic clock in seconds.
            sleep: Sleep function. Defaults to waiting on the cancel event,
                or time.sleep when there is none.
            logger: Optional logger.
        """
        self._classifier = classifier
        self._wait = (
            wait if wait is not None else wait_exponential(multiplier=0.5, min=0.5, max=10)
        )
        self._clock = clock
        self._sleep = sleep
        self._logger = logger if logger is not None else default_logger("readiness")

    def poll[T](
        self,
        resolver: Callable[[], T],
        *,
        deadline: float,
        cancel: threading.Event | None = None,
        dependency: str = "public_key",
    ) -> T:
        """Call resolver until it succeeds or the deadline passes.

        Args:
            resolver: Zero-argument callable producing the value.
            deadline: Seconds from now after which polling stops.
            cancel: Optional cancellation event, checked before every attempt
                and while sleeping between attempts.
            dependency: Name of what is being waited for, for logging.

        Returns:
            The resolver's first successful result.

        Raises:
            OperationCancelledError: If cancelled before or between attempts.
            ReadinessTimeoutError: If the deadline passed; chained to the
                last retryable error.
            Exception: Any non-retryable resolver error, unchanged.
        """
        raise_if_cancelled(cancel, "poll")
        start = self._clock()

        def remaining() -> float:
            return deadline - (self._clock() - start)

        def stop(_state: RetryCallState) -> bool:
            return (cancel is not None and cancel.is_set()) or remaining() <= 0

        def wait(state: RetryCallState) -> float:
            return max(0.0, min(self._wait(state), remaining()))

        def before_sleep(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome is not None else None
            self._logger.info(
                "readiness_retry",
                dependency=dependency,
                attempt=state.attempt_number,
                error=str(error),
                next_wait=state.upcoming_sleep,
            )

        previous: BaseException | None = None

        def attempt() -> T:
            nonlocal previous
            # tenacity checks stop only after an attempt
            _cancelled_from(cancel, previous)
            try:
                return resolver()
            except Exception as e:
                previous = e
                raise

        def retryable(error: BaseException) -> bool:
            if isinstance(error, OperationCancelledError):
                return False
            return self._classifier(error)

        if self._sleep is not None:
            sleep = self._sleep
        elif cancel is not None:
            sleep = cancel.wait
        else:
            sleep = time.sleep

        retrying = Retrying(
            stop=stop,
            wait=wait,
            retry=retry_if_exception(retryable),
            sleep=sleep,
            before_sleep=before_sleep,
        )
        try:
            return retrying(attempt)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            _cancelled_from(cancel, last_error)
            attempts = e.last_attempt.attempt_number
            self._logger.warning(
                "readiness_timeout",
                dependency=dependency,
                deadline=deadline,
                attempts=attempts,
            )
            msg = (
                f"{dependency} was not ready after {deadline:g}s "
                f"({attempts} attempts): {last_error}"
            )
            raise ReadinessTimeoutError(
                msg, deadline=deadline, attempts=attempts
            ) from last_error


def _cancelled_from(
    cancel: threading.Event | None, cause: BaseException | None
) -> None:
    """Raise OperationCancelledError chained to cause if cancel is set."""
    if cancel is not None and cancel.is_set():
        msg = "Operation cancelled: poll"
        raise OperationCancelledError(msg, operation="poll") from cause
