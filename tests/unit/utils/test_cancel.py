import threading

import pytest

from sealedsecret.exceptions import OperationCancelledError
from sealedsecret.utils import acquire, raise_if_cancelled


class TestRaiseIfCancelled:
    def test_no_event(self) -> None:
        raise_if_cancelled(None, "publish")

    def test_unset_event(self) -> None:
        raise_if_cancelled(threading.Event(), "publish")

    def test_set_event(self) -> None:
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(OperationCancelledError, match="publish") as exc_info:
            raise_if_cancelled(cancel, "publish")

        assert exc_info.value.operation == "publish"


class TestAcquire:
    def test_holds_and_releases(self) -> None:
        lock = threading.Lock()

        with acquire(lock, None, "publish"):
            assert lock.locked()

        assert not lock.locked()

    def test_releases_on_error(self) -> None:
        lock = threading.Lock()

        with pytest.raises(RuntimeError), acquire(lock, threading.Event(), "publish"):
            msg = "boom"
            raise RuntimeError(msg)

        assert not lock.locked()

    def test_set_event_does_not_take_lock(self) -> None:
        lock = threading.Lock()
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(OperationCancelledError), acquire(lock, cancel, "delete"):
            pytest.fail("block must not run")

        assert not lock.locked()

    def test_cancelled_while_waiting(self) -> None:
        lock = threading.Lock()
        cancel = threading.Event()
        _ = lock.acquire()
        timer = threading.Timer(0.1, cancel.set)
        timer.start()
        try:
            with pytest.raises(OperationCancelledError), acquire(lock, cancel, "publish"):
                pytest.fail("block must not run")
        finally:
            timer.cancel()
            lock.release()
