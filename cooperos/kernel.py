"""The threaded kernel: command-line flags, start-up, self test and run."""

from __future__ import annotations

import random
import re
from typing import Optional, Sequence

from cooperos.alarm import Alarm
from cooperos.interrupt import Halted, Interrupt
from cooperos.scheduler import Scheduler
from cooperos.synch import Semaphore
from cooperos.synchlist import SynchList
from cooperos.thread import Thread

_LEADING_INT = re.compile(r"\s*[+-]?\d+")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group()) if match else 0


class Kernel:
    """Holds the kernel's global objects: running thread, scheduler, interrupts, alarm.

    ``argv`` holds the command-line arguments without the program name;
    ``-rs seed`` turns on randomly timed time slices.
    """

    def __init__(self, argv: Optional[Sequence[str]] = None) -> None:
        self.current_thread: Optional[Thread] = None
        self.scheduler: Optional[Scheduler] = None
        self.interrupt: Optional[Interrupt] = None
        self.alarm: Optional[Alarm] = None
        self.random_slice = False
        self._rng = random.Random()

        args = iter(argv or ())
        for arg in args:
            if arg == "-rs":
                seed = next(args, None)
                if seed is None:
                    raise ValueError("-rs needs a random seed")
                self._rng = random.Random(_atoi(seed))
                self.random_slice = True
            elif arg == "-u":
                print("Partial usage: cooperos [-rs randomSeed]")

    def initialize(self) -> None:
        """Create the interrupt controller, scheduler, alarm and the main thread."""
        self.interrupt = Interrupt(on_yield=self._preempt)
        self.scheduler = Scheduler(self)
        self.alarm = Alarm(self, self.random_slice, self._rng)
        self.current_thread = Thread(self, "main")
        self.current_thread.mark_running()
        self.interrupt.enable()

    def _preempt(self) -> None:
        if self.current_thread is not None:
            self.current_thread.yield_cpu()

    def _require_initialized(self) -> Thread:
        if self.current_thread is None:
            raise RuntimeError("the kernel has not been initialized")
        return self.current_thread

    def run(self) -> int:
        """Finish the main thread, let the others run, and return the tick at which the machine halts."""
        main_thread = self._require_initialized()
        try:
            main_thread.finish()
        except Halted:
            assert self.interrupt is not None
            return self.interrupt.ticks
        raise RuntimeError("the main thread was scheduled again after finishing")

    def self_test(self) -> None:
        """Exercise thread switching, semaphores and synchronized lists."""
        main_thread = self._require_initialized()
        main_thread.self_test()
        Semaphore(self, "test", 0).self_test()
        SynchList(self).self_test(9)