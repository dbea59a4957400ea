"""Spreads requests over the minions, each one mirrored on a backup."""

from __future__ import annotations

import threading
from typing import Any, Iterable, Optional

from iotdrive.dispatcher import Callback, Dispatcher
from iotdrive.interfaces import FdMode
from iotdrive.minion_proxy import BaseMinionProxy
from iotdrive.reactor import Reactor
from iotdrive.ticket import Ticket
from iotdrive.uid import UID


class MinionManager:
    """Sends every request to its minion and to the next one as a backup.

    Each request gets a Ticket that subscribers hear about before the
    minions are asked.  Answers are read on a background reactor thread.
    """

    def __init__(self, reactor: Optional[Reactor] = None, logger: Optional[Any] = None) -> None:
        self._device_size = 0
        self._minions: list[BaseMinionProxy] = []
        self._dispatcher: Dispatcher[Ticket] = Dispatcher()
        self._reactor = reactor if reactor is not None else Reactor()
        self._logger = logger
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def configure(self, device_size: int, minions: Iterable[BaseMinionProxy]) -> None:
        """Set the size each minion holds and start listening to the minions."""
        minions = list(minions)
        if device_size <= 0:
            raise ValueError("device size must be positive")
        if not minions:
            raise ValueError("at least one minion is required")
        with self._lock:
            if self._thread is not None:
                raise RuntimeError("minion manager is already configured")
            self._device_size = device_size
            self._minions.extend(minions)
            for minion in minions:
                self._reactor.register(
                    minion.fileno(),
                    FdMode.READ,
                    lambda fd, mode, minion=minion: minion.on_minion_wakeup(),
                )
            self._thread = threading.Thread(
                target=self._reactor.run, name="minion-manager", daemon=True
            )
            self._thread.start()

    def add_write_task(
        self, offset: int, length: int, uid: UID, data: Optional[bytes] = None
    ) -> None:
        ticket = self._new_ticket(uid)
        with self._lock:
            (primary, primary_offset), (backup, backup_offset) = self._route(offset)
            primary.add_write_task(primary_offset, length, data, ticket.on_proxy_done, uid)
            backup.add_write_task(backup_offset, length, data, ticket.on_proxy_done, uid)

    def add_read_task(self, offset: int, length: int, uid: UID) -> None:
        ticket = self._new_ticket(uid)
        with self._lock:
            (primary, primary_offset), (backup, backup_offset) = self._route(offset)
            primary.add_read_task(primary_offset, length, ticket.on_proxy_done, uid)
            backup.add_read_task(backup_offset, length, ticket.on_proxy_done, uid)

    def register_for_new_tickets(self, callback: Callback[Ticket]) -> None:
        self._dispatcher.register(callback)

    def stop(self) -> None:
        """Stop listening to the minions."""
        self._reactor.stop()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def __enter__(self) -> "MinionManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _new_ticket(self, uid: UID) -> Ticket:
        if self._device_size == 0:
            raise RuntimeError("minion manager is not configured")
        ticket = Ticket(uid, self._logger)
        self._dispatcher.notify(ticket)
        return ticket

    def _route(
        self, offset: int
    ) -> tuple[tuple[BaseMinionProxy, int], tuple[BaseMinionProxy, int]]:
        index, relative = divmod(offset, self._device_size)
        backup_offset = offset + self._device_size // 2
        backup_index = (index + 1) % len(self._minions)
        return (self._minions[index], relative), (self._minions[backup_index], backup_offset)