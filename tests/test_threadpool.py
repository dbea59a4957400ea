import threading

import pytest

from iotdrive.threadpool import (
    FunctionTask,
    FutureTask,
    Priority,
    ThreadPool,
    ThreadPoolTask,
)


def future_task_func(flag):
    return 3 if flag else 8


@pytest.fixture
def pool():
    p = ThreadPool(4)
    yield p
    p.shutdown()


def test_future_task_reused_returns_value(pool):
    task = FutureTask(future_task_func, False)
    results = []
    for _ in range(10):
        pool.add_task(task, Priority.HIGH)
        results.append(task.get())
    assert results == [8] * 10


def test_future_task_true_branch(pool):
    task = FutureTask(future_task_func, True)
    pool.add_task(task)
    assert task.get() == 3


def test_future_task_reraises_error(pool):
    def boom():
        raise ValueError("bad")

    task = FutureTask(boom)
    pool.add_task(task)
    with pytest.raises(ValueError):
        task.get()


def test_function_task_passes_arguments():
    seen = []
    FunctionTask(lambda i, c: seen.append((i, c)), 4, "c").run()
    assert seen == [(4, "c")]


def test_tasks_run_by_priority_then_arrival():
    order = []
    gate = threading.Event()
    started = threading.Event()

    def blocker():
        started.set()
        gate.wait(5)

    p = ThreadPool(1)
    p.add_task(FunctionTask(blocker), Priority.HIGH)
    assert started.wait(5)
    for name, prio in [
        ("low1", Priority.LOW),
        ("high", Priority.HIGH),
        ("medium", Priority.MEDIUM),
        ("low2", Priority.LOW),
    ]:
        p.add_task(FunctionTask(order.append, name), prio)
    gate.set()
    p.shutdown()
    assert order == ["high", "medium", "low1", "low2"]


def test_plain_callable_is_accepted(pool):
    done = threading.Event()
    pool.add_task(done.set, Priority.MEDIUM)
    assert done.wait(2)


def test_resize_up_and_down(pool):
    pool.set_num_threads(8)
    assert pool.num_threads == 8
    pool.set_num_threads(3)
    assert pool.num_threads == 3
    task = FutureTask(future_task_func, False)
    pool.add_task(task)
    assert task.get() == 8


def test_pause_holds_tasks_until_resume(pool):
    pool.pause()
    pool.pause()
    ran = threading.Event()
    pool.add_task(ran.set)
    assert not ran.wait(0.2)
    pool.resume()
    assert ran.wait(2)


def test_resize_while_paused():
    p = ThreadPool(4)
    p.pause()
    p.set_num_threads(6)
    assert p.num_threads == 6
    p.set_num_threads(2)
    assert p.num_threads == 2
    ran = threading.Event()
    p.add_task(ran.set)
    assert not ran.wait(0.2)
    p.resume()
    assert ran.wait(2)
    p.shutdown()
    assert p.num_threads == 0


def test_shutdown_runs_queued_tasks_first():
    count = []
    p = ThreadPool(2)
    for i in range(20):
        p.add_task(FunctionTask(count.append, i))
    p.shutdown()
    assert sorted(count) == list(range(20))


def test_failing_task_does_not_kill_worker():
    class Failing(ThreadPoolTask):
        def run(self):
            raise RuntimeError("fail")

    with ThreadPool(1) as p:
        p.add_task(Failing())
        task = FutureTask(future_task_func, True)
        p.add_task(task)
        assert task.get() == 3


def test_add_after_shutdown_raises():
    p = ThreadPool(1)
    p.shutdown()
    with pytest.raises(RuntimeError):
        p.add_task(lambda: None)


def test_negative_thread_count_rejected(pool):
    with pytest.raises(ValueError):
        pool.set_num_threads(-1)