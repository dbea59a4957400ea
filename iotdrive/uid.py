"""Process-unique identifiers for requests travelling through the system."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass

_counter = itertools.count(1)
_counter_lock = threading.Lock()


@dataclass(frozen=True, order=True)
class UID:
    """An identifier ordered and compared by its numeric value.

    ``UID()`` is the null identifier 0; fresh identifiers come from
    ``next_uid``.
    """

    value: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.value < 2**64:
            raise ValueError(f"UID value out of range: {self.value}")

    def __int__(self) -> int:
        return self.value


def next_uid() -> UID:
    """Return a new identifier, greater than every one handed out before."""
    with _counter_lock:
        return UID(next(_counter))