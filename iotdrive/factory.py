"""A keyed registry of object creators."""

from __future__ import annotations

from typing import Any, Callable, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class Factory(Generic[K, T]):
    """Maps keys to creator callables and builds objects on demand."""

    def __init__(self) -> None:
        self._creators: dict[K, Callable[..., T]] = {}

    def register(self, key: K, creator: Callable[..., T]) -> None:
        """Register ``creator`` for ``key``, replacing any earlier one."""
        self._creators[key] = creator

    def create(self, key: K, *args: Any) -> T:
        """Build an object with the creator for ``key``.

        Raises KeyError when nothing is registered for the key.
        """
        try:
            creator = self._creators[key]
        except KeyError:
            raise KeyError(key) from None
        return creator(*args)