"""Abstract roles shared by the framework and its concrete parts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Callable, Optional

# A follow-up check: a predicate that returns True when finished, and the
# interval in seconds between its runs.
FollowUp = tuple[Callable[[], bool], float]


class FdMode(IntEnum):
    READ = 0
    WRITE = 1


class TaskArgs(ABC):
    """Arguments for a unit of work; the key selects the command."""

    @abstractmethod
    def key(self) -> int:
        """Return the key the command factory is looked up by."""


class Command(ABC):
    """Work executed on task arguments."""

    @abstractmethod
    def run(self, task_args: TaskArgs) -> Optional[FollowUp]:
        """Do the work; optionally return a follow-up check to schedule."""


class InputProxy(ABC):
    """Turns readiness on a file descriptor into task arguments."""

    @abstractmethod
    def get_task_args(self, fd: int, mode: FdMode) -> Optional[TaskArgs]:
        """Read input from ``fd``; return None when there is nothing to do."""


class SchedulerTask(ABC):
    """A task the scheduler runs at its due time."""

    @abstractmethod
    def run(self) -> None:
        """Run the task."""