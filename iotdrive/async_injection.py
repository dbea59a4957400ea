"""Repeats a check on the scheduler until it reports completion."""

from __future__ import annotations

from typing import Callable, Optional

from iotdrive.interfaces import SchedulerTask
from iotdrive.registry import get_instance
from iotdrive.scheduler import Scheduler


class _InjectionTask(SchedulerTask):
    def __init__(self, owner: "AsyncInjection") -> None:
        self._owner = owner

    def run(self) -> None:
        self._owner._perform()


class AsyncInjection:
    """Runs ``func`` every ``interval`` seconds until it returns True.

    The first run happens one interval after construction.  Without an
    explicit scheduler the shared Scheduler instance is used.
    """

    def __init__(
        self,
        func: Callable[[], bool],
        interval: float,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._func = func
        self._interval = interval
        self._scheduler = scheduler if scheduler is not None else get_instance(Scheduler)
        self._task = _InjectionTask(self)
        self._scheduler.add_task(self._task, self._interval)

    def _perform(self) -> None:
        if not self._func():
            self._scheduler.add_task(self._task, self._interval)