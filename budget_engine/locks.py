"""
In-process lock registry for the engine aggregates.

Lock model
----------
- One mutex per budget line (key ``line:<code>``).  Operations touching
  several lines acquire them in ascending code order, so two transfers in
  opposite directions can never deadlock.
- One readers-writer lock per accounting period.  Ordinary mutations hold it
  shared; the closing engine holds it exclusively from the definitive
  closing onward.
- One mutex per account while a reconciliation group is being formed
  (key ``lettrage:<account>``).

No acquisition waits forever: each takes a timeout and raises
``LockTimeoutError`` when it expires.  Locks acquired before the failure are
released, so a timeout never leaves state behind.

Row-level ``FOR UPDATE`` in the database covers multi-process deployments;
this registry serializes writers inside one process.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager

from budget_engine.config import get_settings
from budget_engine.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)


def _resolve_timeout(timeout: float | None) -> float:
    if timeout is None:
        return get_settings().LOCK_TIMEOUT_SECONDS
    return timeout


class PeriodLock:
    """Readers-writer lock with writer preference and timeouts."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def shared(self, timeout: float) -> Iterator[None]:
        deadline = time.monotonic() + timeout
        with self._cond:
            while self._writer or self._waiting_writers:
                remaining = deadline - time.monotonic()
                if remaining <= 0 or not self._cond.wait(remaining):
                    if self._writer or self._waiting_writers:
                        raise LockTimeoutError(
                            f"Période {self._name} verrouillée: délai d'attente dépassé."
                        )
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self, timeout: float) -> Iterator[None]:
        deadline = time.monotonic() + timeout
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0 or not self._cond.wait(remaining):
                        if self._writer or self._readers:
                            raise LockTimeoutError(
                                f"Période {self._name} occupée: délai d'attente dépassé."
                            )
            finally:
                self._waiting_writers -= 1
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class LockRegistry:
    """Lazily creates and hands out one lock per aggregate key."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._mutexes: dict[str, threading.Lock] = {}
        self._periods: dict[str, PeriodLock] = {}

    def _mutex(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._mutexes.get(key)
            if lock is None:
                lock = self._mutexes[key] = threading.Lock()
            return lock

    def _period(self, code: str) -> PeriodLock:
        with self._guard:
            lock = self._periods.get(code)
            if lock is None:
                lock = self._periods[code] = PeriodLock(code)
            return lock

    @contextmanager
    def _hold(self, key: str, timeout: float) -> Iterator[None]:
        lock = self._mutex(key)
        if not lock.acquire(timeout=timeout):
            raise LockTimeoutError(f"Ressource {key} verrouillée: délai d'attente dépassé.")
        try:
            yield
        finally:
            lock.release()

    @contextmanager
    def budget_lines(self, codes: Iterable[str], timeout: float | None = None) -> Iterator[None]:
        """Hold the locks of every line in *codes*, acquired in ascending order."""
        wait = _resolve_timeout(timeout)
        ordered = sorted(set(codes))
        with ExitStack() as stack:
            for code in ordered:
                stack.enter_context(self._hold(f"line:{code}", wait))
            logger.debug("budget_lines: holding %s", ordered)
            yield

    @contextmanager
    def account(self, number: str, timeout: float | None = None) -> Iterator[None]:
        with self._hold(f"lettrage:{number}", _resolve_timeout(timeout)):
            yield

    @contextmanager
    def period_shared(self, code: str, timeout: float | None = None) -> Iterator[None]:
        with self._period(code).shared(_resolve_timeout(timeout)):
            yield

    @contextmanager
    def periods_shared(self, codes: Iterable[str], timeout: float | None = None) -> Iterator[None]:
        """Share several period locks, acquired in ascending code order."""
        wait = _resolve_timeout(timeout)
        with ExitStack() as stack:
            for code in sorted(set(codes)):
                stack.enter_context(self._period(code).shared(wait))
            yield

    @contextmanager
    def period_exclusive(self, code: str, timeout: float | None = None) -> Iterator[None]:
        with self._period(code).exclusive(_resolve_timeout(timeout)):
            logger.debug("period_exclusive: holding %s", code)
            yield


registry = LockRegistry()
