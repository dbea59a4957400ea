"""Wire messages exchanged between the master and its minions.

Every message starts with a 16-byte little-endian header: the total size
(uint32), the class type (uint32) and the UID (uint64).  The body that
follows depends on the class type.
"""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar

from iotdrive.uid import UID

_HEADER = struct.Struct("<IIQ")
HEADER_SIZE = _HEADER.size
_U32 = struct.Struct("<I")
_PAIR = struct.Struct("<II")
_U32_LIMIT = 2**32


class Result(IntEnum):
    SUCCESS = 0
    FAILURE = 1


class ClassType(IntEnum):
    WRITE_SEND = 0
    READ_SEND = 1
    WRITE_RESPONSE = 2
    READ_RESPONSE = 3


def _check_u32(name: str, value: int) -> None:
    if not 0 <= value < _U32_LIMIT:
        raise ValueError(f"{name} does not fit in 32 bits: {value}")


class Message(ABC):
    """Base of all wire messages."""

    class_type: ClassVar[ClassType]
    uid: UID

    def to_bytes(self) -> bytes:
        """Encode the header followed by the body."""
        body = self.payload()
        return _HEADER.pack(HEADER_SIZE + len(body), self.class_type, self.uid.value) + body

    @abstractmethod
    def payload(self) -> bytes:
        """Encode the body that follows the header."""

    @classmethod
    @abstractmethod
    def _from_payload(cls, uid: UID, body: bytes) -> "Message":
        """Build the message from its decoded UID and body."""


@dataclass(frozen=True)
class ReadMessageSend(Message):
    """Asks a minion for ``length`` bytes at ``offset``."""

    class_type: ClassVar[ClassType] = ClassType.READ_SEND

    uid: UID = UID()
    offset: int = 0
    length: int = 0

    def __post_init__(self) -> None:
        _check_u32("offset", self.offset)
        _check_u32("length", self.length)

    def payload(self) -> bytes:
        return _PAIR.pack(self.offset, self.length)

    @classmethod
    def _from_payload(cls, uid: UID, body: bytes) -> "ReadMessageSend":
        if len(body) != _PAIR.size:
            raise ValueError("malformed read request body")
        offset, length = _PAIR.unpack(body)
        return cls(uid, offset, length)


@dataclass(frozen=True)
class WriteMessageSend(Message):
    """Asks a minion to store ``data`` at ``offset``."""

    class_type: ClassVar[ClassType] = ClassType.WRITE_SEND

    uid: UID = UID()
    offset: int = 0
    data: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))
        _check_u32("offset", self.offset)
        _check_u32("length", len(self.data))

    @property
    def length(self) -> int:
        return len(self.data)

    def payload(self) -> bytes:
        return _PAIR.pack(self.offset, self.length) + self.data

    @classmethod
    def _from_payload(cls, uid: UID, body: bytes) -> "WriteMessageSend":
        if len(body) < _PAIR.size:
            raise ValueError("malformed write request body")
        offset, length = _PAIR.unpack_from(body)
        data = body[_PAIR.size:]
        if len(data) != length:
            raise ValueError("write request data does not match its length")
        return cls(uid, offset, data)


@dataclass(frozen=True)
class ReadMessageResponse(Message):
    """A minion's answer to a read: the data read and whether it worked."""

    class_type: ClassVar[ClassType] = ClassType.READ_RESPONSE

    uid: UID = UID()
    data: bytes = b""
    result: Result = Result.SUCCESS

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))
        object.__setattr__(self, "result", Result(self.result))
        _check_u32("length", len(self.data))

    @property
    def length(self) -> int:
        return len(self.data)

    def payload(self) -> bytes:
        return _U32.pack(self.length) + self.data + _U32.pack(self.result)

    @classmethod
    def _from_payload(cls, uid: UID, body: bytes) -> "ReadMessageResponse":
        if len(body) < 2 * _U32.size:
            raise ValueError("malformed read response body")
        (length,) = _U32.unpack_from(body)
        if len(body) != 2 * _U32.size + length:
            raise ValueError("read response data does not match its length")
        data = body[_U32.size:_U32.size + length]
        (result,) = _U32.unpack_from(body, _U32.size + length)
        return cls(uid, data, Result(result))


@dataclass(frozen=True)
class WriteMessageResponse(Message):
    """A minion's answer to a write: whether it worked."""

    class_type: ClassVar[ClassType] = ClassType.WRITE_RESPONSE

    uid: UID = UID()
    result: Result = Result.SUCCESS

    def __post_init__(self) -> None:
        object.__setattr__(self, "result", Result(self.result))

    def payload(self) -> bytes:
        return _U32.pack(self.result)

    @classmethod
    def _from_payload(cls, uid: UID, body: bytes) -> "WriteMessageResponse":
        if len(body) != _U32.size:
            raise ValueError("malformed write response body")
        (result,) = _U32.unpack(body)
        return cls(uid, Result(result))


_MESSAGE_TYPES: dict[ClassType, type[Message]] = {
    ClassType.WRITE_SEND: WriteMessageSend,
    ClassType.READ_SEND: ReadMessageSend,
    ClassType.WRITE_RESPONSE: WriteMessageResponse,
    ClassType.READ_RESPONSE: ReadMessageResponse,
}


def decode_message(data: bytes) -> Message:
    """Decode one message from the start of ``data``.

    Bytes past the size given in the header are ignored.  Raises
    ValueError for truncated or malformed input and unknown types.
    """
    raw = bytes(data)
    if len(raw) < HEADER_SIZE:
        raise ValueError("message shorter than its header")
    size, class_type, uid_value = _HEADER.unpack_from(raw)
    if size < HEADER_SIZE or size > len(raw):
        raise ValueError(f"message size {size} does not match {len(raw)} bytes received")
    try:
        kind = ClassType(class_type)
    except ValueError:
        raise ValueError(f"unknown message type {class_type}") from None
    return _MESSAGE_TYPES[kind]._from_payload(UID(uid_value), raw[HEADER_SIZE:size])