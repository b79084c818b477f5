"""Semaphores, locks and Mesa-style condition variables for kernel threads.

Atomicity comes from disabling interrupts on the simulated uniprocessor.
Locks are built on a semaphore, and condition variables on one semaphore
per waiting thread.
"""

from __future__ import annotations

from collections import deque
from typing import Any

from cooperos.interrupt import IntStatus
from cooperos.thread import Thread


class Semaphore:
    """A counting semaphore whose value never drops below zero.

    ``kernel`` is any object with ``interrupt``, ``scheduler`` and
    ``current_thread`` attributes.
    """

    def __init__(self, kernel: Any, name: str, initial_value: int) -> None:
        if initial_value < 0:
            raise ValueError("a semaphore's initial value must not be negative")
        self._kernel = kernel
        self.name = name
        self._value = initial_value
        self._queue: deque[Any] = deque()

    def __repr__(self) -> str:
        return f"Semaphore({self.name!r}, value={self._value}, waiting={len(self._queue)})"

    @property
    def value(self) -> int:
        """The value at the moment of reading; it may change as soon as threads switch."""
        return self._value

    def p(self) -> None:
        """Wait until the value is positive, then decrement it."""
        interrupt = self._kernel.interrupt
        current = self._kernel.current_thread
        old_level = interrupt.set_level(IntStatus.OFF)
        while self._value == 0:
            self._queue.append(current)
            current.sleep(False)
        self._value -= 1
        interrupt.set_level(old_level)

    def v(self) -> None:
        """Increment the value, making the longest waiter ready to run."""
        interrupt = self._kernel.interrupt
        old_level = interrupt.set_level(IntStatus.OFF)
        if self._queue:
            self._kernel.scheduler.ready_to_run(self._queue.popleft())
        self._value += 1
        interrupt.set_level(old_level)

    def self_test(self) -> None:
        """Ping-pong ten times with a forked helper thread through this semaphore."""
        if self._value != 0:
            raise RuntimeError("the semaphore self test needs a semaphore with value 0")
        ping = Semaphore(self._kernel, "ping", 0)

        def helper(pong: Semaphore) -> None:
            for _ in range(10):
                ping.p()
                pong.v()

        Thread(self._kernel, "ping").fork(helper, self)
        for _ in range(10):
            ping.v()
            self.p()


class Lock:
    """A mutual-exclusion lock; only the thread that acquired it may release it.

    Usable as a context manager.
    """

    def __init__(self, kernel: Any, name: str) -> None:
        self._kernel = kernel
        self.name = name
        self._semaphore = Semaphore(kernel, "lock", 1)
        self._holder: Any = None

    def __repr__(self) -> str:
        holder = getattr(self._holder, "name", None)
        return f"Lock({self.name!r}, holder={holder!r})"

    def __enter__(self) -> "Lock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def acquire(self) -> None:
        """Wait until the lock is free, then take it."""
        self._semaphore.p()
        self._holder = self._kernel.current_thread

    def release(self) -> None:
        """Free the lock, waking a thread waiting for it."""
        if not self.is_held_by_current_thread():
            raise RuntimeError(f"lock {self.name!r} is not held by the running thread")
        self._holder = None
        self._semaphore.v()

    def is_held_by_current_thread(self) -> bool:
        """True if the running thread holds this lock."""
        return self._holder is not None and self._holder is self._kernel.current_thread


class Condition:
    """A Mesa-style condition variable: woken waiters re-acquire the lock themselves."""

    def __init__(self, kernel: Any, name: str) -> None:
        self._kernel = kernel
        self.name = name
        self._waiters: deque[Semaphore] = deque()

    def __repr__(self) -> str:
        return f"Condition({self.name!r}, waiting={len(self._waiters)})"

    def __len__(self) -> int:
        return len(self._waiters)

    @staticmethod
    def _require_held(condition_lock: Lock) -> None:
        if not condition_lock.is_held_by_current_thread():
            raise RuntimeError(f"lock {condition_lock.name!r} is not held by the running thread")

    def wait(self, condition_lock: Lock) -> None:
        """Release ``condition_lock``, sleep until signalled, then re-acquire it."""
        self._require_held(condition_lock)
        waiter = Semaphore(self._kernel, "condition", 0)
        self._waiters.append(waiter)
        condition_lock.release()
        waiter.p()
        condition_lock.acquire()

    def signal(self, condition_lock: Lock) -> None:
        """Wake the longest waiting thread, if any."""
        self._require_held(condition_lock)
        if self._waiters:
            self._waiters.popleft().v()

    def broadcast(self, condition_lock: Lock) -> None:
        """Wake every waiting thread."""
        while self._waiters:
            self.signal(condition_lock)