"""Task arguments created by the master's and the minions' input proxies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

from iotdrive.interfaces import FdMode, TaskArgs
from iotdrive.uid import UID, next_uid


class ArgType(IntEnum):
    AREAD = 0
    AWRITE = 1


@dataclass
class NBDArgs:
    """What a block-device request carries: where, how much and what to write."""

    offset: int
    length: int
    buffer: Optional[bytes] = None


class NBDReadArgs(TaskArgs):
    """A read request from the block device, with a fresh UID."""

    def __init__(self, args: NBDArgs) -> None:
        self.uid: UID = next_uid()
        self.offset = args.offset
        self.length = args.length

    def key(self) -> int:
        return FdMode.READ

    def __repr__(self) -> str:
        return f"NBDReadArgs(uid={self.uid!r}, offset={self.offset}, length={self.length})"


class NBDWriteArgs(TaskArgs):
    """A write request from the block device, with a fresh UID."""

    def __init__(self, args: NBDArgs) -> None:
        self.uid: UID = next_uid()
        self.offset = args.offset
        self.length = args.length
        self.data: Optional[bytes] = args.buffer

    def key(self) -> int:
        return FdMode.WRITE

    def __repr__(self) -> str:
        return (
            f"NBDWriteArgs(uid={self.uid!r}, offset={self.offset}, "
            f"length={self.length}, data={self.data!r})"
        )


@dataclass
class MinionReadArgs(TaskArgs):
    """A read a minion was asked to do; ``data`` receives what is read."""

    offset: int
    length: int
    data: Optional[bytearray] = None
    uid: UID = field(default_factory=UID)

    def __post_init__(self) -> None:
        if self.data is None:
            self.data = bytearray(self.length)

    def key(self) -> int:
        return FdMode.READ


@dataclass
class MinionWriteArgs(TaskArgs):
    """A write a minion was asked to do."""

    offset: int
    length: int
    data: bytes = b""
    uid: UID = field(default_factory=UID)

    def key(self) -> int:
        return FdMode.WRITE