import itertools
import random
import threading
import time

import pytest

from iotdrive.waitable_queue import WaitableQueue


@pytest.mark.parametrize("priority", [False, True])
def test_many_readers_and_writers(priority):
    thread_count = 10
    queue = WaitableQueue(priority=priority)
    counter = itertools.count()
    counter_lock = threading.Lock()
    read = []
    read_lock = threading.Lock()

    def writer():
        for _ in range(10):
            with counter_lock:
                value = next(counter)
            queue.push(value)

    def reader():
        got = 0
        while got < 10:
            if random.random() < 0.5:
                value = queue.pop()
            else:
                try:
                    value = queue.pop(0.1)
                except TimeoutError:
                    continue
            with read_lock:
                read.append(value)
            got += 1

    threads = []
    for _ in range(thread_count):
        threads.append(threading.Thread(target=reader))
        threads.append(threading.Thread(target=writer))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(read) == list(range(100))
    assert queue.is_empty() is True


def test_fifo_order():
    queue = WaitableQueue()
    for value in (3, 1, 2):
        queue.push(value)
    assert [queue.pop() for _ in range(3)] == [3, 1, 2]


def test_priority_pops_greatest_first():
    queue = WaitableQueue(priority=True)
    for value in (3, 7, 1, 5):
        queue.push(value)
    assert [queue.pop() for _ in range(4)] == [7, 5, 3, 1]


def test_pop_times_out_on_empty_queue():
    queue = WaitableQueue()
    start = time.monotonic()
    with pytest.raises(TimeoutError):
        queue.pop(0.05)
    assert time.monotonic() - start >= 0.04


def test_blocking_pop_wakes_on_push():
    queue = WaitableQueue()
    result = []
    consumer = threading.Thread(target=lambda: result.append(queue.pop()))
    consumer.start()
    time.sleep(0.05)
    queue.push("hello")
    consumer.join(timeout=5)
    assert result == ["hello"]
    assert queue.is_empty() is True


def test_len_and_is_empty():
    queue = WaitableQueue()
    assert queue.is_empty() is True
    queue.push(1)
    queue.push(2)
    assert len(queue) == 2
    assert queue.is_empty() is False