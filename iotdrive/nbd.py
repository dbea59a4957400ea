"""Network block device requests and replies, and the link to the kernel device."""

from __future__ import annotations

import fcntl
import logging
import os
import signal
import socket
import struct
import threading
from dataclasses import dataclass
from typing import Any, Optional, Union

from iotdrive.logger import Logger, Severity
from iotdrive.registry import get_instance
from iotdrive.sockets import TCPConnection

_log = logging.getLogger(__name__)

NBD_REQUEST_MAGIC = 0x25609513
NBD_REPLY_MAGIC = 0x67446698

NBD_CMD_READ = 0
NBD_CMD_WRITE = 1
NBD_CMD_DISC = 2

SIZE_DRIVE = 4 * 1024 * 1024

_REQUEST = struct.Struct(">II8sQI")
_REPLY = struct.Struct(">II8s")
REQUEST_SIZE = _REQUEST.size
REPLY_SIZE = _REPLY.size
HANDLE_SIZE = 8


def _io(number: int) -> int:
    return (0xAB << 8) | number


NBD_SET_SOCK = _io(0)
NBD_SET_SIZE = _io(2)
NBD_DO_IT = _io(3)
NBD_CLEAR_SOCK = _io(4)
NBD_CLEAR_QUE = _io(5)
NBD_DISCONNECT = _io(8)


def ntohll(value: int) -> int:
    """Swap the byte order of a 64-bit value."""
    if not 0 <= value < 2**64:
        raise ValueError(f"value does not fit in 64 bits: {value}")
    return int.from_bytes(value.to_bytes(8, "little"), "big")


@dataclass(frozen=True)
class NbdRequest:
    """One request the kernel sends for the block device."""

    command: int
    handle: bytes
    offset: int
    length: int


@dataclass(frozen=True)
class NbdReply:
    """The reply header sent back for a request, identified by its handle."""

    handle: bytes
    error: int = 0

    def __post_init__(self) -> None:
        if len(self.handle) != HANDLE_SIZE:
            raise ValueError(f"handle must be {HANDLE_SIZE} bytes")

    def to_bytes(self) -> bytes:
        return _REPLY.pack(NBD_REPLY_MAGIC, self.error, bytes(self.handle))


def parse_request(data: bytes) -> NbdRequest:
    """Decode a request header; raise ValueError on bad size or magic."""
    if len(data) != REQUEST_SIZE:
        raise ValueError(f"NBD request must be {REQUEST_SIZE} bytes, got {len(data)}")
    magic, command, handle, offset, length = _REQUEST.unpack(bytes(data))
    if magic != NBD_REQUEST_MAGIC:
        raise ValueError("NBD request magic mismatch")
    return NbdRequest(command, handle, offset, length)


class NbdDevice:
    """Attaches a kernel NBD device to a socket pair served by this process.

    ``connection`` is the end requests arrive on and replies go out of.
    The kernel side runs in a background thread until the device is
    disconnected.  SIGINT and SIGTERM disconnect the device when
    ``handle_signals`` is true and the device is created on the main thread.
    """

    def __init__(
        self,
        device: Union[str, "os.PathLike[str]"],
        size: int = SIZE_DRIVE,
        *,
        handle_signals: bool = True,
    ) -> None:
        self._device = os.open(device, os.O_RDWR)
        self._disconnected = False
        self._previous_handlers: dict[int, Any] = {}
        try:
            server, self._client = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
        except OSError:
            os.close(self._device)
            raise
        self.connection = TCPConnection(server)
        try:
            fcntl.ioctl(self._device, NBD_SET_SIZE, size)
            fcntl.ioctl(self._device, NBD_CLEAR_SOCK)
        except OSError:
            self._close_descriptors()
            raise
        self._thread = threading.Thread(target=self._serve, name="nbd-client", daemon=True)
        self._thread.start()
        if handle_signals and threading.current_thread() is threading.main_thread():
            for signum in (signal.SIGINT, signal.SIGTERM):
                self._previous_handlers[signum] = signal.signal(signum, self._on_signal)

    def close(self) -> None:
        """Disconnect the device and release its descriptors."""
        self._disconnect()
        self._thread.join(timeout=5)
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()
        self._close_descriptors()

    def __enter__(self) -> "NbdDevice":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _serve(self) -> None:
        try:
            fcntl.ioctl(self._device, NBD_SET_SOCK, self._client.fileno())
            fcntl.ioctl(self._device, NBD_DO_IT)
            fcntl.ioctl(self._device, NBD_CLEAR_QUE)
            fcntl.ioctl(self._device, NBD_CLEAR_SOCK)
        except OSError:
            _log.exception("NBD device client failed")

    def _on_signal(self, signum: int, frame: object) -> None:
        self._disconnect()

    def _disconnect(self) -> None:
        if self._disconnected:
            return
        try:
            fcntl.ioctl(self._device, NBD_DISCONNECT)
        except OSError:
            get_instance(Logger).log(
                "Failed to request disconnect on nbd device", Severity.WARNING
            )
        else:
            self._disconnected = True
            get_instance(Logger).log(
                "Successfully requested disconnect on nbd device", Severity.WARNING
            )

    def _close_descriptors(self) -> None:
        self.connection.close()
        self._client.close()
        try:
            os.close(self._device)
        except OSError:
            pass