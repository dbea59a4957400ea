"""Tracking of a request sent to a minion and its backup, and response roles."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from iotdrive.dispatcher import Callback, Dispatcher
from iotdrive.logger import Logger, Severity
from iotdrive.messages import Result
from iotdrive.registry import get_instance
from iotdrive.uid import UID

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskResult:
    """What a minion answered; ``data`` is None for writes."""

    uid: UID
    result: Result
    data: Optional[bytes] = None

    @property
    def length(self) -> int:
        return 0 if self.data is None else len(self.data)


class Ticket:
    """Collects the answers of the two minions a request went to.

    The result is delivered once: at the first successful answer that
    carries data, or otherwise at the second answer.
    """

    def __init__(self, uid: UID, logger: Optional[Any] = None) -> None:
        self.uid = uid
        self._logger = logger
        self._done = 0
        self._sent = False
        self._lock = threading.Lock()
        self._dispatcher: Dispatcher[TaskResult] = Dispatcher()

    @property
    def result_sent(self) -> bool:
        return self._sent

    def on_proxy_done(self, result: TaskResult) -> None:
        with self._lock:
            if self._sent:
                return
            logger = self._logger if self._logger is not None else get_instance(Logger)
            logger.log(f"Ticket:: Proxy done with uid : {result.uid.value}", Severity.DEBUG)
            self._done += 1
            deliver = (
                result.data is not None and result.result == Result.SUCCESS
            ) or self._done >= 2
            if deliver:
                self._sent = True
        if deliver:
            self._dispatcher.notify(result)

    def register_for_result(self, callback: Callback[TaskResult]) -> None:
        self._dispatcher.register(callback)


class Response(ABC):
    """Reaction to the outcome of a request."""

    @abstractmethod
    def on_success(self, result: TaskResult) -> None:
        """Handle a successful result."""

    @abstractmethod
    def on_failure(self, result: TaskResult) -> None:
        """Handle a failed result."""


class ReadResponse(Response):
    def on_success(self, result: TaskResult) -> None:
        _log.debug("ReadResponse.on_success")

    def on_failure(self, result: TaskResult) -> None:
        _log.debug("ReadResponse.on_failure")


class WriteResponse(Response):
    def on_success(self, result: TaskResult) -> None:
        _log.debug("WriteResponse.on_success")

    def on_failure(self, result: TaskResult) -> None:
        _log.debug("WriteResponse.on_failure")