"""
Common base for handle-bearing entities.

`_Entity` wires an entity to the process-wide handle registry and to its
memory lifecycle (`_OwnedStorage` or `_WrapCleanup`). Teardown happens
exactly once, either through an explicit `close()` (also used by the context
manager protocol) or through a `weakref.finalize` fallback when the entity
is garbage-collected while still open.

Entities are handles to memory, not values: copying or pickling one raises
`TypeError`.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Optional, Type, TypeVar

from typing_extensions import Self

from ..domain._allocator import MemoryKind
from ..domain._errors import InvalidHandleError
from ..domain._tensor import EntityMode
from ._handles import get_registry
from ._storage import Lifecycle, _OwnedStorage

logger = logging.getLogger(__name__)

D = TypeVar("D")


def _teardown(lifecycle: Lifecycle, handle: int, name: str, explicit: bool = False) -> None:
    get_registry().release(handle)
    if not explicit:
        logger.debug("%s %#x finalized without close()", name, handle)
    lifecycle.release(handle)


class _Entity:
    """
    Handle registration, teardown and descriptor export shared by all entities.

    Subclasses pass their lifecycle object to `__init__` and implement
    `_export()` returning the current buffer descriptor.
    """

    def __init__(self, lifecycle: Lifecycle, memory: MemoryKind) -> None:
        self._lifecycle = lifecycle
        self._memory = memory
        self._handle = get_registry().register(self)
        # Captures only the lifecycle and plain values, never `self`.
        self._finalizer = weakref.finalize(
            self, _teardown, lifecycle, self._handle, type(self).__name__
        )

    @property
    def handle(self) -> int:
        return self._handle

    @property
    def mode(self) -> EntityMode:
        if isinstance(self._lifecycle, _OwnedStorage):
            return EntityMode.OWNING
        return EntityMode.WRAPPING

    @property
    def memory(self) -> MemoryKind:
        """Kind of memory the entity's buffer lives in."""
        return self._memory

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def _check_open(self) -> None:
        if not self._finalizer.alive:
            raise InvalidHandleError(self._handle, f"{type(self).__name__} is closed")

    def _export(self) -> Any:
        raise NotImplementedError

    def export_data(self, view_cls: Optional[Type[D]] = None) -> Optional[D]:
        """
        Export the buffer descriptor.

        Parameters
        ----------
        view_cls : type, optional
            Descriptor class the caller can handle. None accepts any.

        Returns
        -------
        Optional[D]
            The descriptor, or None if it is not an instance of `view_cls`.

        Raises
        ------
        InvalidHandleError
            If the entity has been closed.
        """
        self._check_open()
        data = self._export()
        if view_cls is None or isinstance(data, view_cls):
            return data
        return None

    def close(self) -> None:
        """
        Tear the entity down and invalidate its handle.

        Owned memory is returned to its allocator; for wrapped memory the
        cleanup callback (if any) is invoked. Calling `close()` again does
        nothing.
        """
        info = self._finalizer.detach()
        if info is None:
            return
        _, func, args, _ = info
        func(*args, explicit=True)

    def __enter__(self) -> Self:
        self._check_open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __copy__(self):
        raise TypeError(f"{type(self).__name__} cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError(f"{type(self).__name__} cannot be copied")

    def __reduce_ex__(self, protocol):
        raise TypeError(f"{type(self).__name__} cannot be pickled")
