"""A thread-safe queue whose consumers wait for items."""

from __future__ import annotations

import heapq
import threading
from collections import deque
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class _Descending:
    """Heap entry that puts the greatest item first."""

    __slots__ = ("item",)

    def __init__(self, item: Any) -> None:
        self.item = item

    def __lt__(self, other: "_Descending") -> bool:
        return other.item < self.item


class WaitableQueue(Generic[T]):
    """FIFO queue, or a max-priority queue when ``priority`` is true."""

    def __init__(self, priority: bool = False) -> None:
        self._priority = priority
        self._fifo: deque[T] = deque()
        self._heap: list[_Descending] = []
        self._cond = threading.Condition()

    def push(self, item: T) -> None:
        with self._cond:
            if self._priority:
                heapq.heappush(self._heap, _Descending(item))
            else:
                self._fifo.append(item)
            self._cond.notify()

    def pop(self, timeout: Optional[float] = None) -> T:
        """Remove and return the next item, waiting up to ``timeout`` seconds.

        Without a timeout it waits indefinitely; on timeout it raises
        TimeoutError.
        """
        with self._cond:
            if not self._cond.wait_for(self._has_items, timeout):
                raise TimeoutError("no item arrived before the timeout")
            if self._priority:
                return heapq.heappop(self._heap).item
            return self._fifo.popleft()

    def is_empty(self) -> bool:
        with self._cond:
            return not self._has_items()

    def __len__(self) -> int:
        with self._cond:
            return len(self._heap) if self._priority else len(self._fifo)

    def _has_items(self) -> bool:
        return bool(self._heap if self._priority else self._fifo)