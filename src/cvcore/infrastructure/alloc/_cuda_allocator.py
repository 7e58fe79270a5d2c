"""
CUDA-runtime-backed memory resources.

`CudaMemAllocator` serves device memory (``cudaMalloc``) and
`HostPinnedMemAllocator` serves page-locked host memory (``cudaHostAlloc``).
Both return blocks aligned to at least 256 bytes natively; larger alignments
are satisfied by over-allocating and returning an aligned address inside the
raw block.

The CUDA runtime is loaded lazily on the first allocation, so constructing
these resources never fails on machines without CUDA. Allocating does, with
`DeviceNotSupportedError`.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple, Union

from ...domain._alignment import align_up
from ...domain._allocator import MemoryKind
from ...domain._errors import ConfigurationError, ResourceExhaustedError
from ...domain.device._device import Device
from ...domain.device._device_protocol import DeviceLike
from ..native_cuda.python.cudart_ctypes import CudaRuntime, get_cuda_runtime
from ._block_table import BlockTable, check_request

logger = logging.getLogger(__name__)

# cudaMalloc / cudaHostAlloc return addresses aligned to at least this.
NATIVE_ALIGNMENT = 256


class _CudaRuntimeResource:
    """Allocation bookkeeping shared by the two CUDA runtime resources."""

    _kind: MemoryKind

    def __init__(self) -> None:
        self._blocks = BlockTable()

    @property
    def kind(self) -> MemoryKind:
        return self._kind

    @property
    def num_live_blocks(self) -> int:
        return len(self._blocks)

    def _raw_alloc(self, rt: CudaRuntime, nbytes: int) -> int:
        raise NotImplementedError

    def _raw_free(self, rt: CudaRuntime, raw: int) -> None:
        raise NotImplementedError

    def allocate(self, size: int, alignment: int) -> Tuple[int, int]:
        check_request(size, alignment)
        rt = get_cuda_runtime(f"allocate {self._kind.value}")
        extra = alignment - 1 if alignment > NATIVE_ALIGNMENT else 0
        try:
            raw = self._raw_alloc(rt, size + extra)
        except ResourceExhaustedError as e:
            raise ResourceExhaustedError(self._kind.value, size, alignment, str(e)) from e
        if raw == 0:
            raise ResourceExhaustedError(self._kind.value, size, alignment, "null pointer returned")
        ptr = align_up(raw, alignment)
        self._blocks.add(ptr, raw, size, alignment)
        logger.debug(
            "%s: allocated %d bytes (align %d) at %#x", self._kind.value, size, alignment, ptr
        )
        return ptr, raw + size + extra - ptr

    def deallocate(self, ptr: int, size: int, alignment: int) -> None:
        raw = self._blocks.pop(ptr, size, alignment)
        self._raw_free(get_cuda_runtime(f"deallocate {self._kind.value}"), raw)
        logger.debug("%s: deallocated %d bytes at %#x", self._kind.value, size, ptr)


class CudaMemAllocator(_CudaRuntimeResource):
    """
    CUDA device memory resource bound to one device.

    Parameters
    ----------
    device : DeviceLike | str, optional
        Target CUDA device ("cuda" or "cuda:<index>"). Defaults to "cuda:0".

    Raises
    ------
    ConfigurationError
        If `device` is not a CUDA device.
    """

    _kind = MemoryKind.CUDA

    def __init__(self, device: Optional[Union[DeviceLike, str]] = None) -> None:
        super().__init__()
        if device is None:
            device = Device.for_memory(MemoryKind.CUDA)
        elif isinstance(device, str):
            device = Device(device)
        if not isinstance(device, DeviceLike) or not device.is_cuda():
            raise ConfigurationError("device", f"CudaMemAllocator needs a CUDA device, got {device}")
        self._device = device

    @property
    def device(self) -> DeviceLike:
        return self._device

    def _raw_alloc(self, rt: CudaRuntime, nbytes: int) -> int:
        rt.set_device(self._device.index or 0)
        return rt.malloc(nbytes)

    def _raw_free(self, rt: CudaRuntime, raw: int) -> None:
        rt.set_device(self._device.index or 0)
        rt.free(raw)

    def __repr__(self) -> str:
        return f"CudaMemAllocator(device={self._device})"


class HostPinnedMemAllocator(_CudaRuntimeResource):
    """Page-locked host memory resource."""

    _kind = MemoryKind.HOST_PINNED

    @property
    def device(self) -> Device:
        return Device.for_memory(self._kind)

    def _raw_alloc(self, rt: CudaRuntime, nbytes: int) -> int:
        return rt.malloc_host(nbytes)

    def _raw_free(self, rt: CudaRuntime, raw: int) -> None:
        rt.free_host(raw)

    def __repr__(self) -> str:
        return "HostPinnedMemAllocator()"
