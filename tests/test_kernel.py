import pytest

from cooperos.kernel import Kernel
from cooperos.interrupt import IntStatus
from cooperos.thread import Thread, ThreadStatus


def make_kernel(argv=()):
    kernel = Kernel(list(argv))
    kernel.initialize()
    return kernel


def test_initialize_creates_running_main_thread():
    kernel = make_kernel()
    assert kernel.current_thread.name == "main"
    assert kernel.current_thread.status is ThreadStatus.RUNNING
    assert kernel.interrupt.level is IntStatus.ON


def test_random_seed_flag():
    assert Kernel(["-rs", "5"]).random_slice is True
    assert Kernel([]).random_slice is False


def test_random_seed_flag_needs_value():
    with pytest.raises(ValueError):
        Kernel(["-rs"])


def test_usage_flag_prints_usage(capsys):
    Kernel(["-u"])
    assert "Partial usage: cooperos [-rs randomSeed]" in capsys.readouterr().out


def test_run_before_initialize_fails():
    with pytest.raises(RuntimeError):
        Kernel([]).run()


def test_run_halts_and_reports_ticks():
    kernel = make_kernel()
    ticks = kernel.run()
    assert ticks == kernel.interrupt.ticks
    assert kernel.alarm.timer_enabled is False


def test_self_test_runs_both_threads(capsys):
    kernel = make_kernel()
    kernel.self_test()
    kernel.run()
    out = capsys.readouterr().out
    for which in (0, 1):
        for num in range(5):
            assert f"*** thread {which} looped {num} times" in out


def test_self_test_with_random_slices(capsys):
    kernel = make_kernel(["-rs", "7"])
    kernel.self_test()
    kernel.run()
    out = capsys.readouterr().out
    assert "*** thread 1 looped 4 times" in out
    assert "*** thread 0 looped 4 times" in out


def test_sleeping_thread_wakes_after_alarm(capsys):
    kernel = make_kernel()
    events = []

    def sleeper(delay):
        events.append(("before", kernel.alarm.wait_queue.current_time))
        kernel.alarm.wait_until(delay)
        events.append(("after", kernel.alarm.wait_queue.current_time))

    Thread(kernel, "sleeper").fork(sleeper, 2)
    kernel.run()
    out = capsys.readouterr().out
    assert [name for name, _ in events] == ["before", "after"]
    assert events[1][1] - events[0][1] >= 2
    assert "Sleeping" in out
    assert "Thread continue..." in out
    assert kernel.alarm.wait_queue.is_empty()