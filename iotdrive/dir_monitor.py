"""Watches a directory and reports files written into it or deleted from it."""

from __future__ import annotations

import os
import threading
from typing import Optional, Union

from iotdrive.dispatcher import Callback, Dispatcher

_Snapshot = dict[str, tuple[int, int]]


class DirMonitor:
    """Polls a directory from a background thread.

    A file that appears or changes is reported to the modify subscribers,
    a file that disappears to the delete subscribers, each as
    ``"<directory>/<name>"``.  Changes are measured against the directory's
    state when the monitor was created.
    """

    def __init__(
        self, path: Union[str, "os.PathLike[str]"] = "./plugins", interval: float = 0.1
    ) -> None:
        self._path = os.fspath(path)
        if not os.path.isdir(self._path):
            raise FileNotFoundError(f"cannot watch {self._path!r}: not a directory")
        self._interval = interval
        self._delete_dispatcher: Dispatcher[str] = Dispatcher()
        self._modify_dispatcher: Dispatcher[str] = Dispatcher()
        self._snapshot = self._scan()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def register_for_delete(self, callback: Callback[str]) -> None:
        self._delete_dispatcher.register(callback)

    def register_for_modify(self, callback: Callback[str]) -> None:
        self._modify_dispatcher.register(callback)

    def unregister_for_delete(self, callback: Callback[str]) -> None:
        self._delete_dispatcher.unregister(callback)

    def unregister_for_modify(self, callback: Callback[str]) -> None:
        self._modify_dispatcher.unregister(callback)

    def run(self) -> None:
        """Start watching in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="dir-monitor", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._thread = None

    def __enter__(self) -> "DirMonitor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            self._poll()

    def _poll(self) -> None:
        current = self._scan()
        previous = self._snapshot
        self._snapshot = current
        for name in sorted(current):
            if previous.get(name) != current[name]:
                self._modify_dispatcher.notify(self._full_path(name))
        for name in sorted(previous.keys() - current.keys()):
            self._delete_dispatcher.notify(self._full_path(name))

    def _full_path(self, name: str) -> str:
        return f"{self._path}/{name}"

    def _scan(self) -> _Snapshot:
        snapshot: _Snapshot = {}
        try:
            entries = list(os.scandir(self._path))
        except OSError:
            return snapshot
        for entry in entries:
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                info = entry.stat(follow_symlinks=False)
            except OSError:
                continue
            snapshot[entry.name] = (info.st_mtime_ns, info.st_size)
        return snapshot