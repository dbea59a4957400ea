"""The master's link to one minion over UDP."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Union

from iotdrive.messages import (
    ReadMessageResponse,
    ReadMessageSend,
    WriteMessageResponse,
    WriteMessageSend,
    decode_message,
)
from iotdrive.sockets import UDPSocket
from iotdrive.ticket import TaskResult
from iotdrive.uid import UID

_log = logging.getLogger(__name__)

OnDone = Callable[[TaskResult], object]


class BaseMinionProxy(ABC):
    """Sends reads and writes to a minion and reports its answers."""

    @abstractmethod
    def add_read_task(self, offset: int, length: int, on_done: OnDone, uid: UID) -> None:
        """Ask the minion for ``length`` bytes at ``offset``."""

    @abstractmethod
    def add_write_task(
        self, offset: int, length: int, data: bytes, on_done: OnDone, uid: UID
    ) -> None:
        """Ask the minion to store ``length`` bytes of ``data`` at ``offset``."""

    @abstractmethod
    def fileno(self) -> int:
        """Return the descriptor the minion's answers arrive on."""

    @abstractmethod
    def on_minion_wakeup(self) -> None:
        """Read one answer and hand it to the waiting callback."""


@dataclass
class _Pending:
    on_done: OnDone
    outstanding: int = 1


class MinionProxy(BaseMinionProxy):
    """Talks to the minion listening on ``to_ip``:``send_port``."""

    def __init__(self, send_port: Union[str, int], to_ip: str) -> None:
        self._socket = UDPSocket(send_port, to_ip)
        self._pending: dict[UID, _Pending] = {}
        self._lock = threading.Lock()

    def add_read_task(self, offset: int, length: int, on_done: OnDone, uid: UID) -> None:
        _log.debug("add_read_task: offset: %d length: %d", offset, length)
        message = ReadMessageSend(uid, offset, length)
        self._expect(uid, on_done)
        self._socket.send(message.to_bytes())

    def add_write_task(
        self, offset: int, length: int, data: bytes, on_done: OnDone, uid: UID
    ) -> None:
        if data is None or len(data) < length:
            raise ValueError("write data is shorter than its length")
        message = WriteMessageSend(uid, offset, bytes(data[:length]))
        self._expect(uid, on_done)
        self._socket.send(message.to_bytes())
        _log.debug("add_write_task: offset: %d length: %d", offset, length)

    def fileno(self) -> int:
        return self._socket.fileno()

    def on_minion_wakeup(self) -> None:
        message = decode_message(self._socket.recv())
        if isinstance(message, ReadMessageResponse):
            result = TaskResult(message.uid, message.result, message.data)
        elif isinstance(message, WriteMessageResponse):
            result = TaskResult(message.uid, message.result)
        else:
            return
        with self._lock:
            pending = self._pending.get(result.uid)
            if pending is None:
                raise KeyError(f"no task waiting for {result.uid!r}")
            pending.outstanding -= 1
            if pending.outstanding == 0:
                del self._pending[result.uid]
        pending.on_done(result)

    def close(self) -> None:
        self._socket.close()

    def __enter__(self) -> "MinionProxy":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _expect(self, uid: UID, on_done: OnDone) -> None:
        with self._lock:
            pending = self._pending.get(uid)
            if pending is None:
                self._pending[uid] = _Pending(on_done)
            else:
                pending.outstanding += 1