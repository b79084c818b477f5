"""Simulated interrupt controller: interrupt level, machine mode and pending device interrupts."""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

SYSTEM_TICK = 10
"""Simulated time that passes each time interrupts are re-enabled in kernel mode."""

USER_TICK = 1
"""Simulated time that passes per user-mode instruction."""


class IntStatus(Enum):
    """Whether interrupts are enabled."""

    OFF = "off"
    ON = "on"


class MachineStatus(Enum):
    """What the simulated CPU is currently doing."""

    IDLE = "idle"
    SYSTEM = "system"
    USER = "user"


class Halted(Exception):
    """Raised when the machine stops: nothing to run and nothing pending."""


@dataclass(order=True)
class _PendingInterrupt:
    when: int
    seq: int
    handler: Callable[[], None] = field(compare=False)
    kind: str = field(compare=False, default="device")


class Interrupt:
    """Keeps the interrupt level, the machine mode and the simulated clock.

    Devices ask for a callback at a future time with :meth:`schedule`.  Time
    advances whenever interrupts are re-enabled, and jumps forward to the next
    pending interrupt when the CPU idles.
    """

    def __init__(self, on_yield: Optional[Callable[[], None]] = None) -> None:
        self.level = IntStatus.OFF
        self.status = MachineStatus.SYSTEM
        self.ticks = 0
        self._on_yield = on_yield
        self._pending: list[_PendingInterrupt] = []
        self._counter = itertools.count()
        self._in_handler = False
        self._yield_pending = False

    @property
    def in_handler(self) -> bool:
        """True while an interrupt handler is running."""
        return self._in_handler

    def set_level(self, level: IntStatus) -> IntStatus:
        """Change the interrupt level and return the previous one.

        Turning interrupts back on lets simulated time advance by one tick.
        """
        if level is IntStatus.ON and self._in_handler:
            raise RuntimeError("interrupt handlers may not enable interrupts")
        old = self.level
        self.level = level
        if level is IntStatus.ON and old is IntStatus.OFF:
            self.one_tick()
        return old

    def enable(self) -> None:
        """Turn interrupts on."""
        self.set_level(IntStatus.ON)

    def one_tick(self) -> None:
        """Advance the clock one tick, fire due interrupts and honour a requested yield."""
        old_status = self.status
        self.ticks += USER_TICK if old_status is MachineStatus.USER else SYSTEM_TICK
        self.level = IntStatus.OFF
        self._check_if_due(advance_clock=False)
        self.level = IntStatus.ON
        if self._yield_pending:
            self._yield_pending = False
            self.status = MachineStatus.SYSTEM
            if self._on_yield is not None:
                self._on_yield()
            self.status = old_status

    def idle(self) -> None:
        """Wait for the next pending interrupt; halt the machine if there is none."""
        self.status = MachineStatus.IDLE
        if self._check_if_due(advance_clock=True):
            self._yield_pending = False
            self.status = MachineStatus.SYSTEM
            return
        self.halt()

    def halt(self) -> None:
        """Stop the machine."""
        raise Halted(f"machine halting at tick {self.ticks}")

    def yield_on_return(self) -> None:
        """Ask for a context switch once the current interrupt handler returns."""
        if not self._in_handler:
            raise RuntimeError("yield_on_return is only valid inside an interrupt handler")
        self._yield_pending = True

    def any_future_interrupts(self) -> bool:
        """True if some device interrupt is still scheduled."""
        return bool(self._pending)

    def schedule(self, handler: Callable[[], None], from_now: int, kind: str = "device") -> None:
        """Arrange for ``handler`` to be called ``from_now`` ticks in the future."""
        if from_now <= 0:
            raise ValueError("an interrupt must be scheduled in the future")
        heapq.heappush(
            self._pending,
            _PendingInterrupt(self.ticks + from_now, next(self._counter), handler, kind),
        )

    def _check_if_due(self, advance_clock: bool) -> bool:
        if not self._pending:
            return False
        first = self._pending[0]
        if first.when > self.ticks:
            if not advance_clock:
                return False
            self.ticks = first.when
        self._in_handler = True
        try:
            while self._pending and self._pending[0].when <= self.ticks:
                due = heapq.heappop(self._pending)
                due.handler()
        finally:
            self._in_handler = False
        return True