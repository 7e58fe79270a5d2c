"""
Entity memory lifecycles.

An entity's memory is released in exactly one of two ways, decided when the
entity is constructed:

- `_OwnedStorage`: the memory was obtained from a resource allocator and is
  returned to that same resource, with the same size and alignment, when the
  entity is torn down.
- `_WrapCleanup`: the memory belongs to the caller. Teardown only invokes the
  optional cleanup callback, passing the descriptor snapshot taken when the
  memory was wrapped.

Both objects are released at most once. The release is guarded by a lock so
that an explicit `close()` racing with the garbage-collection finalizer still
frees memory exactly once.

Neither object holds a reference to the entity it belongs to; they are what
the entity's `weakref.finalize` captures, and capturing the entity itself
would keep it alive forever.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import threading
from typing import Any, Callable, Optional, Union

from ..domain._allocator import IResourceAllocator, MemoryKind
from ..domain._errors import FatalCleanupError
from ._config import fatal_error

logger = logging.getLogger(__name__)

CleanupCallback = Callable[[Any], None]


@dataclass
class _OwnedStorage:
    """
    One allocation obtained from a resource allocator.

    Attributes
    ----------
    resource : IResourceAllocator
        Resource the block came from and is returned to.
    ptr : int
        Block address; 0 once released.
    nbytes : int
        Requested size, passed back verbatim on deallocation.
    alignment : int
        Requested alignment, passed back verbatim on deallocation.
    """

    resource: IResourceAllocator
    ptr: int
    nbytes: int
    alignment: int

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def kind(self) -> MemoryKind:
        return self.resource.kind

    @property
    def released(self) -> bool:
        return self.ptr == 0

    def release(self, handle: int) -> None:
        """Return the block to its resource. Subsequent calls do nothing."""
        with self._lock:
            ptr, self.ptr = self.ptr, 0
        if ptr == 0:
            return
        logger.debug(
            "Handle %#x: deallocating %d bytes of %s memory at %#x",
            handle,
            self.nbytes,
            self.resource.kind.value,
            ptr,
        )
        self.resource.deallocate(ptr, self.nbytes, self.alignment)


@dataclass
class _WrapCleanup:
    """
    Cleanup hook of an entity wrapping caller-owned memory.

    Attributes
    ----------
    callback : Callable[[descriptor], None] | None
        Invoked once on teardown with `snapshot`. None means "nothing to do".
    snapshot : object
        Immutable descriptor captured at wrap time.
    """

    callback: Optional[CleanupCallback]
    snapshot: Any

    _fired: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def released(self) -> bool:
        return self._fired

    def release(self, handle: int) -> None:
        """
        Invoke the callback if it has not fired yet.

        An exception raised by the callback cannot be propagated from a
        teardown path, so it is reported to the fatal-error handler.
        """
        with self._lock:
            if self._fired:
                return
            self._fired = True
            callback, self.callback = self.callback, None
        if callback is None:
            return
        logger.debug("Handle %#x: invoking wrap cleanup callback", handle)
        try:
            callback(self.snapshot)
        except Exception as e:
            fatal_error(FatalCleanupError(handle, e))


Lifecycle = Union[_OwnedStorage, _WrapCleanup]
