import random
from types import SimpleNamespace

import pytest

from cooperos.alarm import TIMER_TICKS, Alarm, Process, WaitQueue
from cooperos.interrupt import Halted, Interrupt, IntStatus
from cooperos.scheduler import Scheduler


class FakeThread:
    def __init__(self, name):
        self.name = name
        self.state = "new"
        self.sleeps = []

    def mark_ready(self):
        self.state = "ready"

    def mark_running(self):
        self.state = "running"

    def check_overflow(self):
        pass

    def switch_to(self, other):
        pass

    def destroy(self):
        pass

    def sleep(self, finishing):
        self.sleeps.append(finishing)
        self.state = "blocked"


def make_kernel(on_yield=None):
    k = SimpleNamespace(interrupt=Interrupt(on_yield=on_yield), current_thread=FakeThread("main"))
    k.scheduler = Scheduler(k)
    return k


def test_add_thread_sleeps_thread():
    kernel = make_kernel()
    queue = WaitQueue(kernel)
    t = FakeThread("t")
    queue.add_thread(t, 3)
    assert t.sleeps == [False]
    assert not queue.is_empty()
    assert len(queue) == 1


def test_add_thread_requires_interrupts_off():
    kernel = make_kernel()
    kernel.interrupt.enable()
    with pytest.raises(RuntimeError):
        WaitQueue(kernel).add_thread(FakeThread("t"), 1)


def test_dispatch_wakes_when_due(capsys):
    kernel = make_kernel()
    queue = WaitQueue(kernel)
    t = FakeThread("t")
    queue.add_thread(t, 2)
    assert queue.dispatch() is False
    assert queue.dispatch() is True
    assert queue.is_empty()
    assert kernel.scheduler.find_next_to_run() is t
    assert t.state == "ready"
    assert capsys.readouterr().out == "Thread continue...\n"


def test_dispatch_keeps_order_of_simultaneous_wakeups():
    kernel = make_kernel()
    queue = WaitQueue(kernel)
    a, b, c = FakeThread("a"), FakeThread("b"), FakeThread("c")
    queue.add_thread(a, 1)
    queue.add_thread(b, 5)
    queue.add_thread(c, 1)
    assert queue.dispatch() is True
    woken = [kernel.scheduler.find_next_to_run(), kernel.scheduler.find_next_to_run()]
    assert woken == [a, c]
    assert len(queue) == 1


def test_process_records_wakeup_time():
    t = FakeThread("t")
    process = Process(t, 7)
    assert process.thread is t
    assert process.wakeup_time == 7


def test_wait_until_restores_level(capsys):
    kernel = make_kernel()
    alarm = Alarm(kernel)
    alarm.wait_until(4)
    assert kernel.interrupt.level is IntStatus.OFF
    assert kernel.current_thread.sleeps == [False]
    assert not alarm.wait_queue.is_empty()
    assert capsys.readouterr().out == "Sleeping\n"


def test_timer_turns_itself_off_when_idle():
    kernel = make_kernel()
    alarm = Alarm(kernel)
    assert kernel.interrupt.any_future_interrupts()
    kernel.interrupt.idle()
    assert kernel.interrupt.ticks == TIMER_TICKS
    assert alarm.timer_enabled is False
    assert not kernel.interrupt.any_future_interrupts()
    with pytest.raises(Halted):
        kernel.interrupt.idle()


def test_timer_preempts_running_thread():
    yields = []
    kernel = make_kernel(on_yield=lambda: yields.append(kernel.interrupt.ticks))
    alarm = Alarm(kernel)
    kernel.interrupt.level = IntStatus.ON
    while not yields:
        kernel.interrupt.one_tick()
    assert yields == [TIMER_TICKS]
    assert alarm.timer_enabled is True
    assert alarm.wait_queue.current_time == 1


def test_idle_timer_wakes_sleeper_then_stops(capsys):
    kernel = make_kernel()
    alarm = Alarm(kernel)
    sleeper = FakeThread("sleeper")
    kernel.current_thread = sleeper
    alarm.wait_until(2)
    kernel.interrupt.idle()
    assert kernel.scheduler.find_next_to_run() is None
    kernel.interrupt.idle()
    assert kernel.scheduler.find_next_to_run() is sleeper
    assert alarm.timer_enabled is True
    kernel.interrupt.idle()
    assert alarm.timer_enabled is False
    assert "Thread continue..." in capsys.readouterr().out


def test_random_timer_interval_within_bounds():
    kernel = make_kernel()
    Alarm(kernel, do_random=True, rng=random.Random(3))
    kernel.interrupt.idle()
    assert 1 <= kernel.interrupt.ticks <= 2 * TIMER_TICKS