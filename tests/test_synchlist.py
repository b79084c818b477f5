import pytest

from cooperos.kernel import Kernel
from cooperos.synchlist import SynchList
from cooperos.thread import Thread


@pytest.fixture
def kernel():
    k = Kernel([])
    k.initialize()
    return k


def test_items_come_out_in_order(kernel):
    sl = SynchList(kernel)
    for item in ("a", "b", "c"):
        sl.append(item)
    assert len(sl) == 3
    assert [sl.remove_front() for _ in range(3)] == ["a", "b", "c"]
    assert len(sl) == 0


def test_apply_visits_every_item_without_removing(kernel):
    sl = SynchList(kernel)
    sl.append(1)
    sl.append(2)
    seen = []
    sl.apply(seen.append)
    assert seen == [1, 2]
    assert len(sl) == 2


def test_lock_is_free_after_operations(kernel):
    sl = SynchList(kernel)
    sl.append(5)
    assert sl.remove_front() == 5
    sl.append(6)
    assert sl.remove_front() == 6


def test_self_test_leaves_list_empty(kernel):
    sl = SynchList(kernel)
    sl.self_test(9)
    assert len(sl) == 0
    assert kernel.current_thread.name == "main"


def test_self_test_requires_empty_list(kernel):
    sl = SynchList(kernel)
    sl.append(1)
    with pytest.raises(RuntimeError):
        sl.self_test(9)


def test_consumer_waits_for_producer(kernel):
    sl = SynchList(kernel)
    got = []

    def consumer(count):
        for _ in range(count):
            got.append(sl.remove_front())

    Thread(kernel, "consumer").fork(consumer, 3)
    kernel.current_thread.yield_cpu()
    assert got == []
    for item in (1, 2, 3):
        sl.append(item)
    kernel.run()
    assert got == [1, 2, 3]
    assert len(sl) == 0