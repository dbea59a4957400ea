"""Commands the master runs for block-device reads and writes."""

from __future__ import annotations

from typing import Any, Callable, Optional

from iotdrive.interfaces import Command
from iotdrive.minion_manager import MinionManager
from iotdrive.registry import get_instance
from iotdrive.response_manager import ResponseManager
from iotdrive.uid import UID

POLL_INTERVAL = 0.1
MAX_POLLS = 10

FollowUp = tuple[Callable[[], bool], float]


def _completion_check(uid: UID, response_manager: Any) -> Callable[[], bool]:
    """Return a check that is done once ``uid`` has no open ticket.

    After ten checks that still find the ticket open, the ticket is
    dropped so the next check reports completion.
    """
    polls = 0

    def check() -> bool:
        nonlocal polls
        if response_manager.contains(uid):
            polls += 1
            if polls == MAX_POLLS:
                response_manager.remove(uid)
            return False
        return True

    return check


class _MasterCommand(Command):
    def __init__(
        self, minion_manager: Optional[Any] = None, response_manager: Optional[Any] = None
    ) -> None:
        self._minion_manager = minion_manager
        self._response_manager = response_manager

    def _minions(self) -> Any:
        if self._minion_manager is None:
            return get_instance(MinionManager)
        return self._minion_manager

    def _responses(self) -> Any:
        if self._response_manager is None:
            return get_instance(ResponseManager)
        return self._response_manager


class MasterReadCommand(_MasterCommand):
    """Sends a read to the minions and follows it until it is answered."""

    def run(self, task_args: Any) -> Optional[FollowUp]:
        self._minions().add_read_task(task_args.offset, task_args.length, task_args.uid)
        return _completion_check(task_args.uid, self._responses()), POLL_INTERVAL


class MasterWriteCommand(_MasterCommand):
    """Sends a write to the minions and follows it until it is answered."""

    def run(self, task_args: Any) -> Optional[FollowUp]:
        self._minions().add_write_task(
            task_args.offset, task_args.length, task_args.uid, task_args.data
        )
        return _completion_check(task_args.uid, self._responses()), POLL_INTERVAL