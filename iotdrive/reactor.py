"""Event loop that calls handlers when file descriptors become ready."""

from __future__ import annotations

import select
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional

from iotdrive.interfaces import FdMode

Handler = Callable[[int, FdMode], object]
FdKey = tuple[int, FdMode]


class Listener(ABC):
    """Waits until some of the watched descriptors are ready."""

    @abstractmethod
    def listen(self, fds: Iterable[FdKey]) -> list[FdKey]:
        """Return the (fd, mode) pairs from ``fds`` that are ready."""


class SelectListener(Listener):
    """Listener based on ``select``; waits at most ``timeout`` seconds."""

    def __init__(self, timeout: Optional[float] = 0.1) -> None:
        self._timeout = timeout

    def listen(self, fds: Iterable[FdKey]) -> list[FdKey]:
        fds = list(fds)
        if not fds:
            time.sleep(self._timeout if self._timeout is not None else 0.1)
            return []
        reads = [fd for fd, mode in fds if mode == FdMode.READ]
        writes = [fd for fd, mode in fds if mode == FdMode.WRITE]
        readable, writable, _ = select.select(reads, writes, [], self._timeout)
        ready_read, ready_write = set(readable), set(writable)
        return [
            (fd, mode)
            for fd, mode in fds
            if fd in (ready_read if mode == FdMode.READ else ready_write)
        ]


class Reactor:
    """Dispatches readiness of registered descriptors to their handlers."""

    def __init__(self, listener: Optional[Listener] = None) -> None:
        self._listener = listener if listener is not None else SelectListener()
        self._handlers: dict[FdKey, Handler] = {}
        self._lock = threading.Lock()
        self._running = False

    def register(self, fd: int, mode: FdMode, handler: Handler) -> None:
        """Call ``handler(fd, mode)`` whenever ``fd`` is ready for ``mode``."""
        with self._lock:
            self._handlers[(fd, FdMode(mode))] = handler

    def unregister(self, fd: int, mode: FdMode) -> None:
        with self._lock:
            self._handlers.pop((fd, FdMode(mode)), None)

    def run(self) -> None:
        """Loop until ``stop`` is called; blocks the calling thread."""
        self._running = True
        while self._running:
            with self._lock:
                keys = sorted(self._handlers)
            for key in self._listener.listen(keys):
                with self._lock:
                    handler = self._handlers.get(key)
                if handler is not None:
                    handler(*key)

    def stop(self) -> None:
        self._running = False