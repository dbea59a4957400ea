"""Commands a minion runs for the master's reads and writes."""

from __future__ import annotations

import logging
from typing import Any, Optional

from iotdrive.file_manager import FileManager
from iotdrive.interfaces import Command
from iotdrive.master_proxy import MasterProxy
from iotdrive.registry import get_instance

_log = logging.getLogger(__name__)


class _MinionCommand(Command):
    def __init__(
        self, file_manager: Optional[Any] = None, master_proxy: Optional[Any] = None
    ) -> None:
        self._file_manager = file_manager
        self._master_proxy = master_proxy

    def _files(self) -> Any:
        if self._file_manager is None:
            return get_instance(FileManager)
        return self._file_manager

    def _master(self) -> Any:
        if self._master_proxy is None:
            return get_instance(MasterProxy)
        return self._master_proxy


class MinionReadCommand(_MinionCommand):
    """Reads the requested range and sends it to the master."""

    def run(self, task_args: Any) -> None:
        _log.debug("MinionReadCommand: reading from offset %d", task_args.offset)
        try:
            data = self._files().read(task_args.offset, task_args.length)
        except Exception:
            _log.exception("read at offset %d failed", task_args.offset)
            status = False
        else:
            task_args.data[:] = data
            status = True
        self._master().send_read_response(status, bytes(task_args.data), task_args.uid)
        return None


class MinionWriteCommand(_MinionCommand):
    """Writes the requested range and tells the master whether it worked."""

    def run(self, task_args: Any) -> None:
        _log.debug("MinionWriteCommand: writing to offset %d", task_args.offset)
        try:
            self._files().write(task_args.offset, bytes(task_args.data[:task_args.length]))
        except Exception:
            _log.exception("write at offset %d failed", task_args.offset)
            status = False
        else:
            status = True
        self._master().send_write_response(status, task_args.uid)
        return None