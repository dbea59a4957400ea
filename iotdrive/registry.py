"""Process-wide shared instances.

``get_instance`` keeps one lazily built instance per key; the key is any
hashable zero-argument callable, such as a class or a parametrised generic
like ``Factory[int, Command]``.  ``get_singleton`` does the same but refuses
to hand out an instance once the singletons have been destroyed.
"""

from __future__ import annotations

import atexit
import threading
from typing import Any, Callable, Hashable

_instances: dict[Hashable, Any] = {}
_instances_lock = threading.RLock()

_singletons: dict[Hashable, Any] = {}
_destroyed: set[Hashable] = set()
_singletons_lock = threading.RLock()
_atexit_registered = False


class SingletonDestroyedError(RuntimeError):
    """Raised when a singleton is requested after it was destroyed."""


def get_instance(cls: Callable[[], Any]) -> Any:
    """Return the shared instance for ``cls``, creating it on first use."""
    with _instances_lock:
        try:
            return _instances[cls]
        except KeyError:
            instance = cls()
            _instances[cls] = instance
            return instance


def reset_instances() -> None:
    """Forget every shared instance."""
    with _instances_lock:
        _instances.clear()


def get_singleton(cls: Callable[[], Any]) -> Any:
    """Return the singleton for ``cls``; raise if it was already destroyed."""
    global _atexit_registered
    with _singletons_lock:
        if cls in _destroyed:
            raise SingletonDestroyedError("Single instance is already destroyed")
        try:
            return _singletons[cls]
        except KeyError:
            instance = cls()
            _singletons[cls] = instance
            if not _atexit_registered:
                atexit.register(destroy_singletons)
                _atexit_registered = True
            return instance


def destroy_singletons() -> None:
    """Destroy every live singleton; later requests for them raise."""
    with _singletons_lock:
        _destroyed.update(_singletons)
        _singletons.clear()