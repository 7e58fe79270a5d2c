"""
Process-wide handle registry.

Every entity is identified by an opaque integer handle. Handles are issued
from a monotonically increasing counter and are never reused for the lifetime
of the process, so a stale handle can always be told apart from a live one.

The registry stores weak references only; it never keeps an entity alive.
"""

from __future__ import annotations

import itertools
import logging
import threading
import weakref
from typing import Dict, Optional

from ..domain._errors import InvalidHandleError

logger = logging.getLogger(__name__)

# Handles start well above small integers so they are never mistaken for
# counts or indices, and stay within a signed 64-bit range.
_HANDLE_BASE = 0x1000
_HANDLE_STEP = 0x10
_HANDLE_MAX = (1 << 63) - 1


class HandleRegistry:
    """
    Thread-safe mapping from handles to live entities.

    Notes
    -----
    - `register` issues a fresh handle; the same value is never issued twice.
    - `release` removes a handle; later lookups raise `InvalidHandleError`.
    - A handle whose entity was garbage-collected without being released also
      resolves to `InvalidHandleError`.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counter = itertools.count(_HANDLE_BASE, _HANDLE_STEP)
        self._live: Dict[int, weakref.ReferenceType] = {}

    def register(self, entity: object) -> int:
        """Issue a new handle for `entity`."""
        with self._lock:
            handle = next(self._counter)
            if handle > _HANDLE_MAX:
                raise OverflowError("handle space exhausted")
            self._live[handle] = weakref.ref(entity)
        logger.debug("Issued handle %#x for %s", handle, type(entity).__name__)
        return handle

    def release(self, handle: int) -> None:
        """Invalidate `handle`. Releasing an unknown handle is a no-op."""
        with self._lock:
            removed = self._live.pop(handle, None)
        if removed is not None:
            logger.debug("Released handle %#x", handle)

    def lookup(self, handle: int) -> object:
        """
        Resolve `handle` to its entity.

        Raises
        ------
        InvalidHandleError
            If the handle was never issued, has been released, or its entity
            no longer exists.
        """
        with self._lock:
            ref = self._live.get(handle)
        entity: Optional[object] = ref() if ref is not None else None
        if entity is None:
            raise InvalidHandleError(handle)
        return entity

    def is_live(self, handle: int) -> bool:
        try:
            self.lookup(handle)
        except InvalidHandleError:
            return False
        return True

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for ref in self._live.values() if ref() is not None)


_registry = HandleRegistry()


def get_registry() -> HandleRegistry:
    """Return the process-wide handle registry."""
    return _registry


def lookup(handle: int) -> object:
    """Resolve a handle through the process-wide registry."""
    return _registry.lookup(handle)
