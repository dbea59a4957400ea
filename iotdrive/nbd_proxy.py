"""Turns block-device requests into task arguments and sends the replies."""

from __future__ import annotations

import threading
from typing import Optional

from iotdrive.dispatcher import Callback, Dispatcher
from iotdrive.factory import Factory
from iotdrive.interfaces import FdMode, InputProxy, TaskArgs
from iotdrive.nbd import (
    NBD_CMD_READ,
    NBD_CMD_WRITE,
    REQUEST_SIZE,
    NbdReply,
    parse_request,
)
from iotdrive.registry import get_instance
from iotdrive.sockets import TCPConnection
from iotdrive.task_args import ArgType, NBDArgs, NBDReadArgs, NBDWriteArgs
from iotdrive.ticket import TaskResult
from iotdrive.uid import UID


class NBDProxy(InputProxy):
    """Reads requests from the block device's connection.

    Every new read or write becomes task arguments that subscribers are
    told about; the matching reply is kept until ``send_response``.
    """

    def __init__(self, connection: TCPConnection, factory: Optional[Factory] = None) -> None:
        self._connection = connection
        self._factory = (
            factory if factory is not None else get_instance(Factory[ArgType, TaskArgs])
        )
        self._factory.register(ArgType.AREAD, NBDReadArgs)
        self._factory.register(ArgType.AWRITE, NBDWriteArgs)
        self._dispatcher: Dispatcher[TaskArgs] = Dispatcher()
        self._replies: dict[UID, NbdReply] = {}
        self._lock = threading.Lock()

    def get_task_args(self, fd: int, mode: FdMode) -> TaskArgs:
        with self._lock:
            raw = self._connection.recv(REQUEST_SIZE)
        request = parse_request(raw)

        if request.command == NBD_CMD_READ:
            task = self._factory.create(
                ArgType.AREAD, NBDArgs(request.offset, request.length)
            )
        elif request.command == NBD_CMD_WRITE:
            with self._lock:
                data = self._connection.recv(request.length)
            task = self._factory.create(
                ArgType.AWRITE, NBDArgs(request.offset, request.length, data)
            )
        else:
            raise ValueError("NBD request type not supported")

        with self._lock:
            self._replies[task.uid] = NbdReply(request.handle)

        self._dispatcher.notify(task)
        return task

    def register_for_new_task_args(self, callback: Callback[TaskArgs]) -> None:
        self._dispatcher.register(callback)

    def send_response(self, result: TaskResult) -> None:
        """Send the reply for ``result``'s request, followed by any data."""
        with self._lock:
            try:
                reply = self._replies.pop(result.uid)
            except KeyError:
                raise KeyError(f"no pending request for {result.uid!r}") from None
            self._connection.send(reply.to_bytes())
            if result.data is not None:
                self._connection.send(result.data)