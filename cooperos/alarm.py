"""Software alarm clock: time slicing and sleeping threads until a later tick."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Callable, Optional

from cooperos.interrupt import Interrupt, IntStatus, MachineStatus

TIMER_TICKS = 100
"""Simulated ticks between timer interrupts."""


@dataclass
class Process:
    """A sleeping thread and the alarm time at which it wakes."""

    thread: Any
    wakeup_time: int


class WaitQueue:
    """Threads waiting for the alarm clock, counted in timer interrupts."""

    def __init__(self, kernel: Any) -> None:
        self._kernel = kernel
        self.current_time = 0
        self._processes: list[Process] = []

    def __len__(self) -> int:
        return len(self._processes)

    def add_thread(self, thread: Any, delay: int) -> None:
        """Put ``thread`` to sleep until ``delay`` more alarm ticks have passed."""
        if self._kernel.interrupt.level is not IntStatus.OFF:
            raise RuntimeError("add_thread must be called with interrupts disabled")
        self._processes.append(Process(thread, self.current_time + delay))
        thread.sleep(False)

    def dispatch(self) -> bool:
        """Advance the alarm clock one tick and wake every thread that is due.

        Returns True if any thread was woken.
        """
        self.current_time += 1
        due = [p for p in self._processes if self.current_time >= p.wakeup_time]
        self._processes = [p for p in self._processes if self.current_time < p.wakeup_time]
        for process in due:
            print("Thread continue...")
            self._kernel.scheduler.ready_to_run(process.thread)
        return bool(due)

    def is_empty(self) -> bool:
        """True if no thread is sleeping."""
        return not self._processes


class _Timer:
    def __init__(
        self,
        interrupt: Interrupt,
        handler: Callable[[], None],
        randomize: bool,
        rng: random.Random,
    ) -> None:
        self._interrupt = interrupt
        self._handler = handler
        self._randomize = randomize
        self._rng = rng
        self.disabled = False
        self._arm()

    def _arm(self) -> None:
        delay = 1 + self._rng.randrange(TIMER_TICKS * 2) if self._randomize else TIMER_TICKS
        self._interrupt.schedule(self._fire, delay, kind="timer")

    def _fire(self) -> None:
        self._handler()
        if not self.disabled:
            self._arm()


class Alarm:
    """Alarm clock driven by a periodic timer interrupt.

    Each timer interrupt advances the wait queue, waking sleeping threads, and
    asks for the running thread to be preempted.  When the CPU is idle and
    nothing else can ever happen, the timer is turned off so the machine halts.
    """

    def __init__(self, kernel: Any, do_random: bool = False, rng: Optional[random.Random] = None) -> None:
        self._kernel = kernel
        self.wait_queue = WaitQueue(kernel)
        self._timer = _Timer(kernel.interrupt, self.callback, do_random, rng or random.Random())

    @property
    def timer_enabled(self) -> bool:
        """True while the timer keeps interrupting."""
        return not self._timer.disabled

    def wait_until(self, delay: int) -> None:
        """Suspend the current thread for ``delay`` alarm ticks."""
        interrupt = self._kernel.interrupt
        old_level = interrupt.set_level(IntStatus.OFF)
        thread = self._kernel.current_thread
        print("Sleeping")
        self.wait_queue.add_thread(thread, delay)
        interrupt.set_level(old_level)

    def callback(self) -> None:
        """Timer interrupt handler."""
        interrupt = self._kernel.interrupt
        status = interrupt.status
        woke = self.wait_queue.dispatch()
        if status is MachineStatus.IDLE and not woke and self.wait_queue.is_empty():
            if not interrupt.any_future_interrupts():
                self._timer.disabled = True
        else:
            interrupt.yield_on_return()