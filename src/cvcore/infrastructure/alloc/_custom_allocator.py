"""
Adapter turning a pair of user functions into a memory resource.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple, Union

from ...domain._allocator import MemoryKind
from ...domain._errors import ConfigurationError, ResourceExhaustedError
from ._block_table import check_request

logger = logging.getLogger(__name__)

AllocFn = Callable[[int, int], Union[None, int, Tuple[int, int]]]
FreeFn = Callable[[int, int, int], None]


class CustomMemAllocator:
    """
    Resource delegating to caller-supplied functions.

    Parameters
    ----------
    kind : MemoryKind
        Kind of memory the functions serve.
    alloc_fn : Callable[[int, int], tuple[int, int] | int | None]
        ``alloc_fn(size, alignment)`` returning ``(ptr, actual_size)`` or just
        a block address, in which case the actual size is `size`. None, a null
        address or a raised `MemoryError` signal exhaustion.
    free_fn : Callable[[int, int, int], None]
        ``free_fn(ptr, size, alignment)``, called with exactly the values of
        the matching allocation.

    Notes
    -----
    Thread safety is the responsibility of the supplied functions.
    """

    def __init__(self, kind: MemoryKind, alloc_fn: AllocFn, free_fn: FreeFn) -> None:
        if not isinstance(kind, MemoryKind):
            raise ConfigurationError("kind", f"expected MemoryKind, got {kind!r}")
        if not callable(alloc_fn) or not callable(free_fn):
            raise ConfigurationError("allocator", "alloc_fn and free_fn must be callable")
        self._kind = kind
        self._alloc_fn = alloc_fn
        self._free_fn = free_fn

    @property
    def kind(self) -> MemoryKind:
        return self._kind

    def allocate(self, size: int, alignment: int) -> Tuple[int, int]:
        check_request(size, alignment)
        try:
            result = self._alloc_fn(size, alignment)
        except MemoryError as e:
            raise ResourceExhaustedError(self._kind.value, size, alignment, str(e) or None) from e
        if isinstance(result, (tuple, list)):
            if len(result) != 2:
                raise ConfigurationError(
                    "allocator", f"expected (ptr, actual_size), got {result!r}"
                )
            ptr, actual = result
        else:
            ptr, actual = result, size
        if not ptr:
            raise ResourceExhaustedError(self._kind.value, size, alignment, "allocator returned null")
        ptr, actual = int(ptr), int(actual)
        if ptr % alignment or actual < size:
            self._free_fn(ptr, size, alignment)
            if actual < size:
                raise ConfigurationError(
                    "allocator", f"returned {actual} bytes at {ptr:#x}, {size} were requested"
                )
            raise ConfigurationError(
                "allocator", f"returned address {ptr:#x} is not aligned to {alignment}"
            )
        logger.debug("custom %s: allocated %d bytes at %#x", self._kind.value, actual, ptr)
        return ptr, actual

    def deallocate(self, ptr: int, size: int, alignment: int) -> None:
        self._free_fn(ptr, size, alignment)
        logger.debug("custom %s: deallocated %d bytes at %#x", self._kind.value, size, ptr)

    def __repr__(self) -> str:
        return f"CustomMemAllocator(kind={self._kind.value})"
