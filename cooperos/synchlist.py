"""A list whose readers wait for items, with access guarded by a lock."""

from __future__ import annotations

from collections import deque
from typing import Any, Callable, Generic, TypeVar

from cooperos.synch import Condition, Lock
from cooperos.thread import Thread

T = TypeVar("T")


class SynchList(Generic[T]):
    """A FIFO list shared between kernel threads.

    Threads removing an item wait until one is available, and only one
    thread at a time touches the underlying list.
    """

    def __init__(self, kernel: Any) -> None:
        self._kernel = kernel
        self._items: deque[T] = deque()
        self._lock = Lock(kernel, "list lock")
        self._list_empty = Condition(kernel, "list empty cond")

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"SynchList({list(self._items)!r})"

    def append(self, item: T) -> None:
        """Add ``item`` at the end and wake a thread waiting for one."""
        with self._lock:
            self._items.append(item)
            self._list_empty.signal(self._lock)

    def remove_front(self) -> T:
        """Remove and return the first item, waiting while the list is empty."""
        with self._lock:
            while not self._items:
                self._list_empty.wait(self._lock)
            return self._items.popleft()

    def apply(self, func: Callable[[T], Any]) -> None:
        """Call ``func`` on every item, front to back."""
        with self._lock:
            for item in self._items:
                func(item)

    def self_test(self, value: T) -> None:
        """Ping-pong ``value`` ten times with a forked helper through two lists."""
        if self._items:
            raise RuntimeError("the synchronized list self test needs an empty list")
        ping: SynchList[T] = SynchList(self._kernel)

        def helper(target: SynchList[T]) -> None:
            for _ in range(10):
                target.append(ping.remove_front())

        Thread(self._kernel, "ping").fork(helper, self)
        for _ in range(10):
            ping.append(value)
            returned = self.remove_front()
            if returned != value:
                raise RuntimeError(f"expected {value!r} back, got {returned!r}")