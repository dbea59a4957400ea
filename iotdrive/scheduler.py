"""Runs tasks at a delay from now, in order of their due time."""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from typing import Any, Callable, Optional, Union

from iotdrive.interfaces import SchedulerTask

_log = logging.getLogger(__name__)

Task = Union[SchedulerTask, Callable[[], Any]]


class Timer:
    """One-shot timer calling ``callback`` at an absolute time.

    Times are ``time.monotonic()`` values; setting a new time replaces the
    pending one.
    """

    def __init__(self, callback: Callable[[], Any]) -> None:
        self._callback = callback
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

    def set_time(self, when: float) -> None:
        delay = max(0.0, when - time.monotonic())
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(delay, self._callback)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class Scheduler:
    """Keeps tasks ordered by due time and runs each once when it is due."""

    def __init__(self) -> None:
        self._heap: list[tuple[float, int, Task]] = []
        self._seq = itertools.count()
        self._cond = threading.Condition()
        self._running = 0
        self._timer = Timer(self._handle_due)

    def add_task(self, task: Task, delay: float) -> None:
        """Run ``task`` ``delay`` seconds from now."""
        with self._cond:
            due = time.monotonic() + delay
            heapq.heappush(self._heap, (due, next(self._seq), task))
            self._timer.set_time(self._heap[0][0])

    def close(self) -> None:
        """Wait until every scheduled task has run, then stop the timer."""
        with self._cond:
            self._cond.wait_for(lambda: not self._heap and self._running == 0)
        self._timer.cancel()

    def __enter__(self) -> "Scheduler":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _handle_due(self) -> None:
        while True:
            with self._cond:
                if not self._heap or self._heap[0][0] > time.monotonic():
                    if self._heap:
                        self._timer.set_time(self._heap[0][0])
                    else:
                        self._cond.notify_all()
                    return
                _, _, task = heapq.heappop(self._heap)
                self._running += 1
            try:
                if isinstance(task, SchedulerTask):
                    task.run()
                else:
                    task()
            except Exception:
                _log.exception("scheduled task failed")
            finally:
                with self._cond:
                    self._running -= 1
                    self._cond.notify_all()