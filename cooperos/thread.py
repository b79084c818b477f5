"""Thread control blocks and cooperative context switching on a simulated uniprocessor.

Each forked thread runs on its own host thread, but only the thread that holds
the simulated CPU is ever allowed to make progress; the others are parked
until the scheduler hands the CPU to them.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Callable, Optional

from cooperos.interrupt import IntStatus

STACK_SIZE = 4 * 1024
"""Size of a forked thread's private stack, in words."""

STACK_FENCEPOST = 0xDEDBEEF
"""Value kept at the bottom of every stack to detect overflows."""


class ThreadStatus(Enum):
    """Life-cycle state of a thread."""

    JUST_CREATED = "just created"
    RUNNING = "running"
    READY = "ready"
    BLOCKED = "blocked"


class StackOverflowError(RuntimeError):
    """Raised when a thread's stack fencepost has been overwritten."""


class _ThreadExit(BaseException):
    """Unwinds the host of a thread that will never run again."""


class _World:
    """State shared by all threads of one kernel: who holds the CPU, and whether it stopped."""

    def __init__(self) -> None:
        self.cond = threading.Condition()
        self.running: Optional[Thread] = None
        self.stopped = False
        self.error: Optional[BaseException] = None

    def stop(self, error: BaseException) -> None:
        with self.cond:
            if not self.stopped:
                self.stopped = True
                self.error = error
            self.cond.notify_all()


class Thread:
    """A thread of execution managed by the kernel's scheduler.

    ``kernel`` is any object with ``interrupt``, ``scheduler`` and
    ``current_thread`` attributes.  The first thread created for a kernel
    stands for the code that is already running; later threads start running
    their procedure when they are forked and first scheduled.
    """

    def __init__(self, kernel: Any, name: str) -> None:
        self._kernel = kernel
        self.name = name
        self.status = ThreadStatus.JUST_CREATED
        self.stack: Optional[list[int]] = None
        self._func: Optional[Callable[[Any], Any]] = None
        self._arg: Any = None
        self._host: Optional[threading.Thread] = None
        self._destroyed = False

        creator = getattr(kernel, "current_thread", None)
        world = getattr(creator, "_world", None)
        if isinstance(world, _World):
            self._world = world
            self._is_root = False
        else:
            self._world = _World()
            self._world.running = self
            self._is_root = True

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Thread({self.name!r}, {self.status.name})"

    # -- basic operations -------------------------------------------------

    def fork(self, func: Callable[[Any], Any], arg: Any) -> None:
        """Make this thread run ``func(arg)`` concurrently with the caller."""
        self._func = func
        self._arg = arg
        self.stack = [0] * STACK_SIZE
        self.stack[0] = STACK_FENCEPOST

        interrupt = self._kernel.interrupt
        old_level = interrupt.set_level(IntStatus.OFF)
        self._kernel.scheduler.ready_to_run(self)
        interrupt.set_level(old_level)

    def yield_cpu(self) -> None:
        """Give the CPU to another ready thread, if there is one.

        The caller goes to the back of the ready queue and returns when it is
        scheduled again; with nothing else ready it returns at once.
        """
        interrupt = self._kernel.interrupt
        scheduler = self._kernel.scheduler
        old_level = interrupt.set_level(IntStatus.OFF)
        self._require_current()

        next_thread = scheduler.find_next_to_run()
        if next_thread is not None:
            scheduler.ready_to_run(self)
            scheduler.run(next_thread, False)
        interrupt.set_level(old_level)

    def sleep(self, finishing: bool) -> None:
        """Block this thread and give the CPU away, idling until someone is ready.

        Interrupts must already be disabled.  If ``finishing`` is set the
        thread is destroyed once another thread is running.
        """
        self._require_current()
        interrupt = self._kernel.interrupt
        if interrupt.level is not IntStatus.OFF:
            raise RuntimeError("sleep must be called with interrupts disabled")
        scheduler = self._kernel.scheduler
        try:
            self.status = ThreadStatus.BLOCKED
            next_thread = scheduler.find_next_to_run()
            while next_thread is None:
                interrupt.idle()
                next_thread = scheduler.find_next_to_run()
            scheduler.run(next_thread, finishing)
        except BaseException as exc:
            if self._is_root and not isinstance(exc, _ThreadExit):
                self._world.stop(exc)
            raise

    def begin(self) -> None:
        """Start-up work of a freshly scheduled thread: reclaim a finished predecessor, enable interrupts."""
        self._require_current()
        self._kernel.scheduler.check_to_be_destroyed()
        self._kernel.interrupt.enable()

    def finish(self) -> None:
        """End this thread; it is destroyed once another thread runs."""
        self._kernel.interrupt.set_level(IntStatus.OFF)
        self._require_current()
        self.sleep(True)

    def check_overflow(self) -> None:
        """Raise StackOverflowError if the stack's fencepost was overwritten."""
        if self.stack is not None and self.stack[0] != STACK_FENCEPOST:
            raise StackOverflowError(f"thread {self.name!r} overflowed its stack")

    def self_test(self) -> None:
        """Ping-pong between this thread and a forked one, each yielding five times."""
        kernel = self._kernel

        def simple_thread(which: int) -> None:
            for num in range(5):
                print(f"*** thread {which} looped {num} times")
                kernel.current_thread.yield_cpu()

        Thread(kernel, "forked thread").fork(simple_thread, 1)
        simple_thread(0)

    # -- hooks used by the scheduler --------------------------------------

    def mark_ready(self) -> None:
        """Record that the thread waits on the ready queue."""
        self.status = ThreadStatus.READY

    def mark_running(self) -> None:
        """Record that the thread holds the CPU."""
        self.status = ThreadStatus.RUNNING

    def switch_to(self, other: "Thread") -> None:
        """Hand the CPU to ``other`` and block until this thread gets it back."""
        world = self._world
        with world.cond:
            world.running = other
            other._ensure_started()
            world.cond.notify_all()
            self._await_cpu()

    def destroy(self) -> None:
        """Release the thread's resources; it must not be the running thread."""
        if self._kernel.current_thread is self:
            raise RuntimeError("a thread cannot destroy itself while running")
        self.stack = None
        with self._world.cond:
            self._destroyed = True
            self._world.cond.notify_all()

    # -- internals ----------------------------------------------------------

    def _require_current(self) -> None:
        if self._kernel.current_thread is not self:
            raise RuntimeError(f"thread {self.name!r} is not the running thread")

    def _ensure_started(self) -> None:
        if self._host is None and self._func is not None:
            self._host = threading.Thread(
                target=self._bootstrap, name=f"cooperos:{self.name}", daemon=True
            )
            self._host.start()

    def _await_cpu(self) -> None:
        """Wait, holding the world's condition, until this thread may run again."""
        world = self._world

        def may_continue() -> bool:
            if world.running is self or world.stopped:
                return True
            return self._destroyed and not self._is_root

        world.cond.wait_for(may_continue)
        if world.stopped:
            if self._is_root and world.error is not None:
                raise world.error
            raise _ThreadExit()
        if self._destroyed:
            raise _ThreadExit()

    def _bootstrap(self) -> None:
        try:
            with self._world.cond:
                self._await_cpu()
            self.begin()
            assert self._func is not None
            self._func(self._arg)
            self.finish()
        except _ThreadExit:
            return
        except BaseException as exc:  # handed to the kernel's own thread
            self._world.stop(exc)