"""
Raw memory operations dispatched on memory kind.

Host-accessible memory is touched directly through ctypes; CUDA memory goes
through the CUDA runtime binding. These helpers are used for zero-filling
new images, writing image-batch descriptor entries and copying entity
contents back to numpy.
"""

from __future__ import annotations

import ctypes
from typing import Sequence

import numpy as np

from ..domain._allocator import MemoryKind
from .native_cuda.python.cudart_ctypes import get_cuda_runtime


def fill_zero(kind: MemoryKind, ptr: int, nbytes: int) -> None:
    """Set `nbytes` bytes at `ptr` to zero."""
    if kind.is_host_accessible:
        ctypes.memset(ptr, 0, nbytes)
    else:
        get_cuda_runtime("memset").memset(ptr, 0, nbytes)


def copy_from_host(kind: MemoryKind, dst: int, src_host: int, nbytes: int) -> None:
    """Copy `nbytes` from host address `src_host` into memory of `kind`."""
    if kind.is_host_accessible:
        ctypes.memmove(dst, src_host, nbytes)
    else:
        get_cuda_runtime("memcpy").memcpy_h2d(dst, src_host, nbytes)


def copy_to_host(kind: MemoryKind, dst_host: int, src: int, nbytes: int) -> None:
    """Copy `nbytes` from memory of `kind` at `src` into host address `dst_host`."""
    if kind.is_host_accessible:
        ctypes.memmove(dst_host, src, nbytes)
    else:
        get_cuda_runtime("memcpy").memcpy_d2h(dst_host, src, nbytes)


def strided_span(shape: Sequence[int], strides: Sequence[int], itemsize: int) -> int:
    """Number of bytes between the first element and the end of the last one."""
    if any(e == 0 for e in shape):
        return 0
    return sum((e - 1) * s for e, s in zip(shape, strides)) + itemsize


def read_strided(
    kind: MemoryKind,
    ptr: int,
    shape: Sequence[int],
    strides: Sequence[int],
    dtype: np.dtype,
) -> np.ndarray:
    """
    Copy a strided region into a new C-contiguous numpy array.

    Parameters
    ----------
    kind : MemoryKind
        Memory the region lives in.
    ptr : int
        Address of the first element.
    shape, strides : Sequence[int]
        Extents and byte strides of the region.
    dtype : np.dtype
        Element type of the result.
    """
    dtype = np.dtype(dtype)
    span = strided_span(shape, strides, dtype.itemsize)
    if span == 0:
        return np.empty(tuple(shape), dtype=dtype)
    staging = np.empty(span, dtype=np.uint8)
    copy_to_host(kind, int(staging.ctypes.data), ptr, span)
    view = np.ndarray(
        shape=tuple(shape), dtype=dtype, buffer=staging, offset=0, strides=tuple(strides)
    )
    return np.ascontiguousarray(view)
