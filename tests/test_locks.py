"""Lock registry tests (threads only, no database)."""

import threading
import time

import pytest

from budget_engine.exceptions import LockTimeoutError
from budget_engine.locks import LockRegistry


@pytest.fixture
def registry():
    return LockRegistry()


class TestLineLocks:
    def test_held_line_times_out_and_is_retryable(self, registry):
        acquired = threading.Event()
        release = threading.Event()

        def holder():
            with registry.budget_lines(["A"], timeout=1):
                acquired.set()
                release.wait(2)

        thread = threading.Thread(target=holder)
        thread.start()
        acquired.wait(1)
        try:
            with pytest.raises(LockTimeoutError) as exc_info:
                with registry.budget_lines(["B", "A"], timeout=0.05):
                    pass
            assert exc_info.value.retryable is True
        finally:
            release.set()
            thread.join()

    def test_partial_acquisition_is_released_on_timeout(self, registry):
        """B is taken before A times out; B must be free afterwards"""
        acquired = threading.Event()
        release = threading.Event()

        def holder():
            with registry.budget_lines(["C"], timeout=1):
                acquired.set()
                release.wait(2)

        thread = threading.Thread(target=holder)
        thread.start()
        acquired.wait(1)
        try:
            with pytest.raises(LockTimeoutError):
                with registry.budget_lines(["B", "C"], timeout=0.05):
                    pass
            with registry.budget_lines(["B"], timeout=0.05):
                pass
        finally:
            release.set()
            thread.join()

    def test_opposite_orders_do_not_deadlock(self, registry):
        counter = {"value": 0}

        def worker(codes):
            for _ in range(50):
                with registry.budget_lines(codes, timeout=2):
                    counter["value"] += 1

        threads = [
            threading.Thread(target=worker, args=(["X", "Y"],)),
            threading.Thread(target=worker, args=(["Y", "X"],)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(5)

        assert counter["value"] == 100


class TestPeriodLocks:
    def test_shared_holders_coexist(self, registry):
        with registry.period_shared("2025", timeout=0.1):
            with registry.period_shared("2025", timeout=0.1):
                pass

    def test_exclusive_waits_for_readers(self, registry):
        with registry.period_shared("2025", timeout=0.1):
            with pytest.raises(LockTimeoutError):
                with registry.period_exclusive("2025", timeout=0.05):
                    pass

    def test_reader_blocked_while_exclusive_held(self, registry):
        entered = threading.Event()
        release = threading.Event()

        def closer():
            with registry.period_exclusive("2025", timeout=1):
                entered.set()
                release.wait(2)

        thread = threading.Thread(target=closer)
        thread.start()
        entered.wait(1)
        try:
            started = time.monotonic()
            with pytest.raises(LockTimeoutError):
                with registry.period_shared("2025", timeout=0.05):
                    pass
            assert time.monotonic() - started < 1
        finally:
            release.set()
            thread.join()
        with registry.period_exclusive("2025", timeout=0.1):
            pass
