"""Cooperative cancellation helpers.

Remote-facing operations accept an optional ``threading.Event``. Setting the
event makes the operation fail with OperationCancelledError at its next
checkpoint.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Final

from sealedsecret.exceptions import OperationCancelledError

if TYPE_CHECKING:
    import threading
    from collections.abc import Iterator

# Seconds between cancellation checks while waiting for a lock
_LOCK_POLL_INTERVAL: Final = 0.05


def raise_if_cancelled(cancel: threading.Event | None, operation: str) -> None:
    """Raise OperationCancelledError if the cancel event is set.

    Args:
        cancel: Optional cancellation event.
        operation: Operation name for the error message.

    Raises:
        OperationCancelledError: If cancel is set.
    """
    if cancel is not None and cancel.is_set():
        msg = f"Operation cancelled: {operation}"
        raise OperationCancelledError(msg, operation=operation)


@contextmanager
def acquire(
    lock: threading.Lock,
    cancel: threading.Event | None,
    operation: str,
) -> Iterator[None]:
    """Hold a lock for the duration of the block, honouring cancellation.

    While waiting for the lock, the cancel event is checked periodically.
    The lock is always released when the block exits.

    Args:
        lock: The lock to acquire.
        cancel: Optional cancellation event.
        operation: Operation name for the error message.

    Yields:
        None, with the lock held.

    Raises:
        OperationCancelledError: If cancelled before the lock was acquired.
    """
    if cancel is None:
        _ = lock.acquire()
    else:
        while not lock.acquire(timeout=_LOCK_POLL_INTERVAL):
            raise_if_cancelled(cancel, operation)
        if cancel.is_set():
            lock.release()
            raise_if_cancelled(cancel, operation)
    try:
        yield
    finally:
        lock.release()
