"""Asynchronous file logger with a background writer thread."""

from __future__ import annotations

import atexit
import threading
import time
from enum import IntEnum
from pathlib import Path
from typing import Union

from iotdrive.waitable_queue import WaitableQueue

DEFAULT_LOG_PATH = "Log.txt"
_SHUTDOWN_MESSAGE = "Logger Is Shutting Down."
_STOP = object()


class Severity(IntEnum):
    DEBUG = 0
    WARNING = 1
    ERROR = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()


class Logger:
    """Appends timestamped lines to a file from a background thread."""

    def __init__(self, path: Union[str, Path] = DEFAULT_LOG_PATH) -> None:
        self._file = open(path, "a", encoding="utf-8")
        self._queue: WaitableQueue = WaitableQueue()
        self._lock = threading.Lock()
        self._closed = False
        self._thread = threading.Thread(target=self._drain, name="logger", daemon=True)
        self._thread.start()
        atexit.register(self.close)

    def log(self, message: str, severity: Severity = Severity.DEBUG) -> None:
        with self._lock:
            if self._closed:
                raise ValueError("log on a closed logger")
            self._queue.push((time.time(), Severity(severity), message))

    def close(self) -> None:
        """Write the shutdown line, flush everything and stop the writer."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.push((time.time(), Severity.WARNING, _SHUTDOWN_MESSAGE))
            self._queue.push(_STOP)
        self._thread.join()
        atexit.unregister(self.close)

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _drain(self) -> None:
        with self._file:
            while True:
                entry = self._queue.pop()
                if entry is _STOP:
                    break
                self._file.write(self._format(entry) + "\n")
                self._file.flush()

    @staticmethod
    def _format(entry: tuple[float, Severity, str]) -> str:
        stamp, severity, message = entry
        when = time.strftime("%d-%m-%Y %H:%M:%S", time.localtime(stamp))
        return f"{when} Severity: {severity.label} , {message}"