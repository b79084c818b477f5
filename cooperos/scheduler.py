"""Ready queue and dispatcher: picks the next thread and switches to it."""

from __future__ import annotations

from collections import deque
from typing import Any, List, Optional, Protocol

from cooperos.interrupt import IntStatus


class Schedulable(Protocol):
    """What the scheduler needs from a thread."""

    name: str

    def mark_ready(self) -> None: ...

    def mark_running(self) -> None: ...

    def check_overflow(self) -> None: ...

    def switch_to(self, other: "Schedulable") -> None: ...

    def destroy(self) -> None: ...


class Scheduler:
    """First-in first-out scheduler over the threads that are ready to run.

    ``kernel`` is any object with ``interrupt`` and ``current_thread``
    attributes.  All operations require interrupts to be disabled, which is
    what makes them atomic on the simulated uniprocessor.
    """

    def __init__(self, kernel: Any) -> None:
        self._kernel = kernel
        self._ready: deque[Schedulable] = deque()
        self._to_be_destroyed: Optional[Schedulable] = None

    def __len__(self) -> int:
        return len(self._ready)

    def _require_interrupts_off(self) -> None:
        if self._kernel.interrupt.level is not IntStatus.OFF:
            raise RuntimeError("the scheduler must be called with interrupts disabled")

    def ready_to_run(self, thread: Schedulable) -> None:
        """Mark ``thread`` ready and put it at the back of the ready queue."""
        self._require_interrupts_off()
        thread.mark_ready()
        self._ready.append(thread)

    def find_next_to_run(self) -> Optional[Schedulable]:
        """Remove and return the front of the ready queue, or None if it is empty."""
        self._require_interrupts_off()
        return self._ready.popleft() if self._ready else None

    def run(self, next_thread: Schedulable, finishing: bool) -> None:
        """Hand the CPU to ``next_thread``.

        If ``finishing`` is set the outgoing thread is destroyed once some other
        thread is running.  Returns when the outgoing thread is scheduled again.
        """
        old_thread = self._kernel.current_thread
        self._require_interrupts_off()
        if finishing:
            if self._to_be_destroyed is not None:
                raise RuntimeError("a finished thread is already waiting to be destroyed")
            self._to_be_destroyed = old_thread

        old_thread.check_overflow()
        self._kernel.current_thread = next_thread
        next_thread.mark_running()

        old_thread.switch_to(next_thread)

        self._require_interrupts_off()
        self.check_to_be_destroyed()

    def check_to_be_destroyed(self) -> None:
        """Destroy the thread that finished before the current one started, if any."""
        if self._to_be_destroyed is not None:
            finished, self._to_be_destroyed = self._to_be_destroyed, None
            finished.destroy()

    def dump(self) -> List[str]:
        """Print the names of the threads on the ready queue and return them in order."""
        names = [thread.name for thread in self._ready]
        print("Ready list contents:")
        print("".join(names), end="")
        return names