"""
wacore Scheduled Tasks

Cancellable timers for challenge expiry, QR refresh, keep-alive and
reconnect backoff.

Design:
- Every scheduled callback is represented by an owned TaskHandle
- A cancelled handle never runs its callback
- ThreadingScheduler runs callbacks on daemon timer threads
- SerializedScheduler wraps another scheduler so each callback runs while
  holding the client's lock; cancelling under the same lock is then atomic
  with respect to the callback
"""

import time
import threading
import itertools
from abc import ABC, abstractmethod
from typing import Callable, Optional


Callback = Callable[[], None]


class TaskHandle:
    """Handle to one scheduled task."""

    _ids = itertools.count(1)

    def __init__(self, name: str = "", periodic: bool = False):
        self.id = next(self._ids)
        self.name = name
        self.periodic = periodic
        self.cancelled = False
        self.fired = 0
        self._cancel_hook: Optional[Callable[[], None]] = None

    def cancel(self) -> None:
        """Cancel the task. Safe to call more than once."""
        if self.cancelled:
            return
        self.cancelled = True
        if self._cancel_hook is not None:
            self._cancel_hook()
            self._cancel_hook = None

    @property
    def active(self) -> bool:
        """True while the task may still fire."""
        return not self.cancelled and (self.periodic or self.fired == 0)

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else ("active" if self.active else "done")
        return f"TaskHandle(id={self.id}, name={self.name!r}, {state})"


class Scheduler(ABC):
    """Abstract scheduler; times are in seconds."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callback, name: str = "") -> TaskHandle:
        """Run callback once after delay seconds."""
        pass

    @abstractmethod
    def call_every(self, interval: float, callback: Callback, name: str = "") -> TaskHandle:
        """Run callback every interval seconds until cancelled."""
        pass

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""
        pass

    def now_ms(self) -> int:
        return int(self.now() * 1000)


class ThreadingScheduler(Scheduler):
    """
    Scheduler backed by threading.Timer.

    Each task owns a daemon timer thread. Periodic tasks re-arm after every
    run.
    """

    def now(self) -> float:
        return time.time()

    @staticmethod
    def _run(handle: TaskHandle, callback: Callback) -> None:
        if handle.cancelled:
            return
        handle.fired += 1
        callback()

    @staticmethod
    def _arm(handle: TaskHandle, delay: float, fire: Callback) -> None:
        timer = threading.Timer(max(0.0, delay), fire)
        timer.daemon = True
        timer.name = f"wacore-{handle.name or 'task'}-{handle.id}"
        handle._cancel_hook = timer.cancel
        timer.start()

    def call_later(self, delay: float, callback: Callback, name: str = "") -> TaskHandle:
        handle = TaskHandle(name)
        self._arm(handle, delay, lambda: self._run(handle, callback))
        return handle

    def call_every(self, interval: float, callback: Callback, name: str = "") -> TaskHandle:
        if interval <= 0:
            raise ValueError("Interval must be positive")
        handle = TaskHandle(name, periodic=True)

        def fire() -> None:
            self._run(handle, callback)
            if not handle.cancelled:
                self._arm(handle, interval, fire)

        self._arm(handle, interval, fire)
        return handle


class SerializedScheduler(Scheduler):
    """
    Runs another scheduler's callbacks under a lock.

    The callback is skipped if its handle was cancelled while the timer
    thread waited for the lock.
    """

    def __init__(self, inner: Scheduler, lock: threading.RLock):
        self._inner = inner
        self._lock = lock

    def now(self) -> float:
        return self._inner.now()

    def _guard(self, holder: list, callback: Callback) -> Callback:
        def run() -> None:
            with self._lock:
                handle = holder[0]
                if handle is None or handle.cancelled:
                    return
                callback()
        return run

    def call_later(self, delay: float, callback: Callback, name: str = "") -> TaskHandle:
        holder: list = [None]
        holder[0] = self._inner.call_later(delay, self._guard(holder, callback), name)
        return holder[0]

    def call_every(self, interval: float, callback: Callback, name: str = "") -> TaskHandle:
        holder: list = [None]
        holder[0] = self._inner.call_every(interval, self._guard(holder, callback), name)
        return holder[0]
