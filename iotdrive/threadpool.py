"""Prioritised worker thread pool with pause, resume and resizing."""

from __future__ import annotations

import itertools
import logging
import os
import threading
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from iotdrive.waitable_queue import WaitableQueue

_log = logging.getLogger(__name__)

R = TypeVar("R")

# Internal priorities around the public ones: stopping for shutdown comes
# after all queued work, pausing and removing threads come before it.
_KILL = 0
_PAUSE = 4
_REMOVE = 5


class Priority(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3


class ThreadPoolTask(ABC):
    """A unit of work the pool runs on one of its threads."""

    @abstractmethod
    def run(self) -> None:
        """Do the work."""


class FunctionTask(ThreadPoolTask):
    """Calls a function with fixed arguments."""

    def __init__(self, func: Callable[..., Any], *args: Any) -> None:
        self._func = func
        self._args = args

    def run(self) -> None:
        self._func(*self._args)


class FutureTask(ThreadPoolTask, Generic[R]):
    """Calls a function with fixed arguments and hands its result to ``get``."""

    def __init__(self, func: Callable[..., R], *args: Any) -> None:
        self._func = func
        self._args = args
        self._done = threading.Semaphore(0)
        self._result: Optional[R] = None
        self._error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            self._result = self._func(*self._args)
            self._error = None
        except Exception as exc:
            self._error = exc
        finally:
            self._done.release()

    def get(self) -> R:
        """Wait for a run to finish and return its result (or raise its error)."""
        self._done.acquire()
        if self._error is not None:
            raise self._error
        return self._result  # type: ignore[return-value]


class _StopWorker(ThreadPoolTask):
    def run(self) -> None:  # never run; workers recognise it by identity
        pass


_STOP = _StopWorker()


class _PauseTask(ThreadPoolTask):
    """Parks the thread that runs it until it is released."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._arrived = threading.Semaphore(0)
        self._generation = 0
        self._waiting = 0
        self._wake_tokens = 0

    def run(self) -> None:
        with self._cond:
            self._arrived.release()
            generation = self._generation
            self._waiting += 1
            try:
                self._cond.wait_for(
                    lambda: self._generation != generation or self._wake_tokens > 0
                )
                if self._generation == generation:
                    self._wake_tokens -= 1
            finally:
                self._waiting -= 1

    def wait_arrival(self) -> None:
        self._arrived.acquire()

    def release_all(self) -> None:
        with self._cond:
            self._generation += 1
            self._wake_tokens = 0
            self._cond.notify_all()

    def release_one(self) -> None:
        with self._cond:
            if self._wake_tokens < self._waiting:
                self._wake_tokens += 1
                self._cond.notify_all()


class _Entry:
    __slots__ = ("task", "priority", "seq")

    def __init__(self, task: ThreadPoolTask, priority: int, seq: int) -> None:
        self.task = task
        self.priority = priority
        self.seq = seq

    def __lt__(self, other: "_Entry") -> bool:
        # Higher priority first; within a priority, earlier arrivals first.
        if self.priority == other.priority:
            return self.seq > other.seq
        return self.priority < other.priority


def _default_thread_count() -> int:
    cpus = os.cpu_count() or 1
    return cpus - 1 if cpus > 1 else 1


class ThreadPool:
    """Runs tasks on worker threads, highest priority first."""

    def __init__(self, num_threads: Optional[int] = None) -> None:
        if num_threads is None:
            num_threads = _default_thread_count()
        if num_threads < 0:
            raise ValueError("number of threads must not be negative")
        self._queue: WaitableQueue[_Entry] = WaitableQueue(priority=True)
        self._removed: WaitableQueue[int] = WaitableQueue()
        self._threads: dict[int, threading.Thread] = {}
        self._pause_task = _PauseTask()
        self._seq = itertools.count()
        self._lock = threading.RLock()
        self._running = True
        self._closed = False
        for _ in range(num_threads):
            self._spawn()

    @property
    def num_threads(self) -> int:
        return len(self._threads)

    def add_task(
        self,
        task: Union[ThreadPoolTask, Callable[[], Any]],
        priority: Priority = Priority.LOW,
    ) -> None:
        """Queue ``task``; a plain callable is wrapped in a FunctionTask."""
        if self._closed:
            raise RuntimeError("add_task on a shut down thread pool")
        if not isinstance(task, ThreadPoolTask):
            if not callable(task):
                raise TypeError("task must be a ThreadPoolTask or a callable")
            task = FunctionTask(task)
        self._push(task, int(Priority(priority)))

    def set_num_threads(self, num_threads: int) -> None:
        if num_threads < 0:
            raise ValueError("number of threads must not be negative")
        with self._lock:
            current = len(self._threads)
            if num_threads > current:
                for _ in range(num_threads - current):
                    self._spawn()
                    if not self._running:
                        self._push(self._pause_task, _PAUSE)
                        self._pause_task.wait_arrival()
            else:
                surplus = current - num_threads
                for _ in range(surplus):
                    self._push(_STOP, _REMOVE)
                    self._pause_task.release_one()
                for _ in range(surplus):
                    ident = self._removed.pop()
                    self._threads.pop(ident).join()

    def pause(self) -> None:
        """Park every thread once its current task is done."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            count = len(self._threads)
            for _ in range(count):
                self._push(self._pause_task, _PAUSE)
            for _ in range(count):
                self._pause_task.wait_arrival()

    def resume(self) -> None:
        with self._lock:
            self._running = True
            self._pause_task.release_all()

    def shutdown(self) -> None:
        """Run everything already queued, then stop and join the threads."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self.resume()
            for _ in range(len(self._threads)):
                self._push(_STOP, _KILL)
            for thread in self._threads.values():
                thread.join()
            self._threads.clear()

    def __enter__(self) -> "ThreadPool":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def _push(self, task: ThreadPoolTask, priority: int) -> None:
        self._queue.push(_Entry(task, priority, next(self._seq)))

    def _spawn(self) -> None:
        thread = threading.Thread(target=self._work, name="threadpool", daemon=True)
        thread.start()
        assert thread.ident is not None
        self._threads[thread.ident] = thread

    def _work(self) -> None:
        while True:
            entry = self._queue.pop()
            if entry.task is _STOP:
                break
            try:
                entry.task.run()
            except Exception:
                _log.exception("thread pool task failed")
        self._removed.push(threading.get_ident())