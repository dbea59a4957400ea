"""Storage of a minion's share of the drive in one file."""

from __future__ import annotations

import os
import threading
from abc import ABC, abstractmethod
from typing import Union


class BaseFileManager(ABC):
    """Reads and writes byte ranges of a minion's storage."""

    @abstractmethod
    def read(self, offset: int, length: int) -> bytes:
        """Return ``length`` bytes at ``offset``."""

    @abstractmethod
    def write(self, offset: int, data: bytes) -> None:
        """Store ``data`` at ``offset``."""


class FileManager(BaseFileManager):
    """Keeps the storage in an existing file opened for reading and writing."""

    def __init__(self, path: Union[str, "os.PathLike[str]"] = "./a.dat") -> None:
        self._file = open(path, "r+b")
        self._lock = threading.Lock()

    def read(self, offset: int, length: int) -> bytes:
        """Return ``length`` bytes at ``offset``; raise EOFError if the file is shorter."""
        if offset < 0 or length < 0:
            raise ValueError("offset and length must not be negative")
        with self._lock:
            self._file.seek(offset)
            data = self._file.read(length)
        if len(data) != length:
            raise EOFError(f"only {len(data)} of {length} bytes available at {offset}")
        return data

    def write(self, offset: int, data: bytes) -> None:
        """Store ``data`` at ``offset`` and flush it to the file."""
        if offset < 0:
            raise ValueError("offset must not be negative")
        with self._lock:
            self._file.seek(offset)
            self._file.write(bytes(data))
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            self._file.close()

    def __enter__(self) -> "FileManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()