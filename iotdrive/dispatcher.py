"""Observer-style event dispatch with deferred (un)registration."""

from __future__ import annotations

import threading
from collections import deque
from typing import Callable, Generic, Optional, TypeVar

E = TypeVar("E")


class Callback(Generic[E]):
    """A subscriber that forwards events to a handler.

    The optional death handler runs when the dispatcher it is registered
    with is closed.
    """

    def __init__(
        self,
        on_notify: Callable[[E], object],
        on_death: Optional[Callable[[], object]] = None,
    ) -> None:
        self._on_notify = on_notify
        self._on_death = on_death
        self.dispatcher: Optional[Dispatcher[E]] = None

    def notify(self, event: E) -> None:
        self._on_notify(event)

    def notify_death(self) -> None:
        if self._on_death is not None:
            self._on_death()


class Dispatcher(Generic[E]):
    """Delivers events to registered callbacks.

    Registrations and unregistrations are queued and take effect at the
    next notification, so callbacks may change subscriptions while an
    event is being delivered.
    """

    def __init__(self) -> None:
        self._callbacks: dict[Callback[E], None] = {}
        self._pending: deque[tuple[Callback[E], bool]] = deque()
        self._lock = threading.Lock()

    def register(self, callback: Callback[E]) -> None:
        with self._lock:
            self._pending.append((callback, True))
        callback.dispatcher = self

    def unregister(self, callback: Callback[E]) -> None:
        with self._lock:
            self._pending.append((callback, False))
        callback.dispatcher = None

    def notify(self, event: E) -> None:
        for callback in self._current_callbacks():
            callback.notify(event)

    def close(self) -> None:
        """Tell every registered callback that the dispatcher is gone."""
        callbacks = self._current_callbacks()
        with self._lock:
            self._callbacks.clear()
        for callback in callbacks:
            try:
                callback.notify_death()
            except Exception:  # a failing subscriber must not stop the others
                pass

    def _current_callbacks(self) -> list[Callback[E]]:
        with self._lock:
            while self._pending:
                callback, add = self._pending.popleft()
                if add:
                    self._callbacks[callback] = None
                else:
                    self._callbacks.pop(callback, None)
            return list(self._callbacks)

    def __enter__(self) -> "Dispatcher[E]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()