"""A minion's link to the master over UDP."""

from __future__ import annotations

import logging
from typing import Optional, Union

from iotdrive.interfaces import FdMode, InputProxy, TaskArgs
from iotdrive.messages import (
    ReadMessageResponse,
    ReadMessageSend,
    Result,
    WriteMessageResponse,
    WriteMessageSend,
    decode_message,
)
from iotdrive.sockets import UDPSocket
from iotdrive.task_args import MinionReadArgs, MinionWriteArgs
from iotdrive.uid import UID

_log = logging.getLogger(__name__)


class MasterProxy(InputProxy):
    """Receives the master's requests and sends the answers back to it."""

    def __init__(self) -> None:
        self._socket: Optional[UDPSocket] = None

    def open(self, port: Union[str, int]) -> None:
        """Listen for the master on ``port``."""
        if self._socket is not None:
            self._socket.close()
        self._socket = UDPSocket(port)

    def get_task_args(self, fd: int, mode: FdMode) -> Optional[TaskArgs]:
        """Read one request; return None for a datagram that is not a request."""
        try:
            message = decode_message(self._connected().recv())
        except ValueError:
            _log.warning("discarding malformed message from master")
            return None
        if isinstance(message, ReadMessageSend):
            return MinionReadArgs(
                message.offset, message.length, bytearray(message.length), message.uid
            )
        if isinstance(message, WriteMessageSend):
            return MinionWriteArgs(message.offset, message.length, message.data, message.uid)
        _log.warning("discarding unexpected %s from master", type(message).__name__)
        return None

    def send_read_response(self, status: bool, data: bytes, uid: UID) -> None:
        result = Result.SUCCESS if status else Result.FAILURE
        self._connected().send(ReadMessageResponse(uid, bytes(data), result).to_bytes())

    def send_write_response(self, status: bool, uid: UID) -> None:
        result = Result.SUCCESS if status else Result.FAILURE
        self._connected().send(WriteMessageResponse(uid, result).to_bytes())

    def fileno(self) -> int:
        return self._connected().fileno()

    def close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    def __enter__(self) -> "MasterProxy":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _connected(self) -> UDPSocket:
        if self._socket is None:
            raise RuntimeError("master proxy is not open")
        return self._socket