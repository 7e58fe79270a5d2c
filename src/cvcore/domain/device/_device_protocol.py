"""
Structural device contract for CUDA resource allocators.

`CudaMemAllocator` only needs a GPU ordinal and a way to confirm the object
names a CUDA device, so callers may pass an adapter around another
framework's device object instead of a `Device`.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class DeviceLike(Protocol):
    """Anything exposing a CUDA ordinal and `is_cuda()`."""

    index: Optional[int]

    def is_cuda(self) -> bool: ...
