"""
Allocator contracts.

Memory for owning entities comes from *resource allocators*, one per kind of
memory. A composite allocator bundles one resource of each kind and is what
entity constructors accept, so an application can substitute any resource
(e.g. an arena or a pool) without touching entity code.

Contract
--------
- ``allocate(size, alignment)`` returns ``(ptr, actual_size)``: the integer
  address of a block whose address is a multiple of `alignment`, and the
  number of usable bytes at that address (at least `size`). It raises
  `ResourceExhaustedError` when the request cannot be served.
- ``deallocate(ptr, size, alignment)`` releases a block previously returned by
  ``allocate`` with the very same `size` and `alignment` that were
  requested, not the reported actual size.
- Each successful ``allocate`` is matched by exactly one ``deallocate``.

Thread safety of a resource is the resource's own responsibility; cvcore adds
no locking around allocator calls.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol, Tuple, runtime_checkable


class MemoryKind(Enum):
    """
    Kinds of memory a resource allocator can serve.

    Attributes
    ----------
    HOST : MemoryKind
        Pageable host memory.
    HOST_PINNED : MemoryKind
        Page-locked host memory, directly accessible by the device.
    CUDA : MemoryKind
        CUDA device memory.
    """

    HOST = "host"
    HOST_PINNED = "host_pinned"
    CUDA = "cuda"

    @property
    def is_host_accessible(self) -> bool:
        """True if the CPU may dereference addresses of this kind."""
        return self is not MemoryKind.CUDA


@runtime_checkable
class IResourceAllocator(Protocol):
    """
    Duck-typed contract for a single-kind memory resource.
    """

    @property
    def kind(self) -> MemoryKind: ...

    def allocate(self, size: int, alignment: int) -> Tuple[int, int]: ...

    def deallocate(self, ptr: int, size: int, alignment: int) -> None: ...


@runtime_checkable
class IAllocator(Protocol):
    """
    Duck-typed contract for a composite allocator exposing one resource per
    memory kind.
    """

    def get(self, kind: MemoryKind) -> IResourceAllocator: ...
