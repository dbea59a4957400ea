"""Matches block-device requests with their tickets and sends the replies."""

from __future__ import annotations

import threading
from typing import Any, Optional

from iotdrive.dispatcher import Callback
from iotdrive.factory import Factory
from iotdrive.interfaces import FdMode, TaskArgs
from iotdrive.logger import Logger, Severity
from iotdrive.minion_manager import MinionManager
from iotdrive.nbd_proxy import NBDProxy
from iotdrive.registry import get_instance
from iotdrive.ticket import ReadResponse, Response, TaskResult, Ticket, WriteResponse
from iotdrive.uid import UID


class ResponseManager:
    """Keeps the open tickets and answers the block device when one completes.

    New task arguments from the NBD proxy get a Response object chosen by
    their key; new tickets from the minion manager are watched until they
    deliver a result, which is then sent back through the NBD proxy.
    """

    def __init__(
        self,
        minion_manager: Optional[Any] = None,
        response_factory: Optional[Factory] = None,
        logger: Optional[Any] = None,
    ) -> None:
        self._minion_manager = minion_manager
        self._response_factory = response_factory
        self._logger = logger
        self._responses: dict[UID, Response] = {}
        self._tickets: dict[UID, Ticket] = {}
        self._nbd_proxy: Optional[NBDProxy] = None
        self._lock = threading.Lock()
        self._task_created = Callback(self._on_new_task)
        self._ticket_created = Callback(self._on_ticket_create)
        self._ticket_done = Callback(self._on_ticket_done)

    def attach(self, nbd_proxy: NBDProxy) -> None:
        """Subscribe to ``nbd_proxy`` and the minion manager and start answering."""
        if self._minion_manager is None:
            self._minion_manager = get_instance(MinionManager)
        if self._response_factory is None:
            self._response_factory = get_instance(Factory[int, Response])
        nbd_proxy.register_for_new_task_args(self._task_created)
        self._minion_manager.register_for_new_tickets(self._ticket_created)
        self._log("ResponseManager Initialized")
        self._response_factory.register(FdMode.READ, ReadResponse)
        self._response_factory.register(FdMode.WRITE, WriteResponse)
        self._nbd_proxy = nbd_proxy

    def contains(self, uid: UID) -> bool:
        """Tell whether a ticket for ``uid`` is still waiting for its result."""
        with self._lock:
            return uid in self._tickets

    def remove(self, uid: UID) -> None:
        """Forget the ticket and response for ``uid``."""
        with self._lock:
            self._responses.pop(uid, None)
            self._tickets.pop(uid, None)

    def _log(self, message: str) -> None:
        logger = self._logger if self._logger is not None else get_instance(Logger)
        logger.log(message, Severity.DEBUG)

    def _on_new_task(self, args: TaskArgs) -> None:
        uid = args.uid  # type: ignore[attr-defined]
        self._log(f"ResponseManager:: New task with uid : {uid.value}")
        assert self._response_factory is not None
        response = self._response_factory.create(args.key())
        with self._lock:
            self._responses[uid] = response

    def _on_ticket_create(self, ticket: Ticket) -> None:
        self._log(f"ResponseManager:: New ticket with uid : {ticket.uid.value}")
        with self._lock:
            self._tickets[ticket.uid] = ticket
        ticket.register_for_result(self._ticket_done)

    def _on_ticket_done(self, result: TaskResult) -> None:
        if self._nbd_proxy is None:
            raise RuntimeError("response manager is not attached to an NBD proxy")
        with self._lock:
            self._tickets.pop(result.uid, None)
            self._nbd_proxy.send_response(result)
            self._responses.pop(result.uid, None)