"""
ctypes bindings for the subset of the CUDA runtime used by cvcore.

This module binds the CUDA runtime entry points required by the memory
resources and interop helpers:

- cudaMalloc / cudaFree
- cudaHostAlloc / cudaFreeHost
- cudaMemset / cudaMemcpy
- cudaSetDevice / cudaGetDevice
- cudaGetErrorString

Device pointers are represented as Python ints. Every call checks the
returned status; allocation failures raise `ResourceExhaustedError`, all
other failures raise `RuntimeError` carrying the CUDA error string.

Design notes
------------
- `argtypes`/`restype` are bound once per library handle.
- No implicit caching of device memory: the caller owns every pointer it
  allocates and frees it explicitly.
"""

from __future__ import annotations

import ctypes
from ctypes import c_char_p, c_int, c_size_t, c_uint, c_void_p
from functools import lru_cache

from ....domain._errors import DeviceNotSupportedError, ResourceExhaustedError
from ._native_loader import load_cudart

DevPtr = int

CUDA_SUCCESS = 0
CUDA_ERROR_MEMORY_ALLOCATION = 2

MEMCPY_HOST_TO_DEVICE = 1
MEMCPY_DEVICE_TO_HOST = 2

HOST_ALLOC_DEFAULT = 0


class CudaRuntime:
    """
    Thin binding layer around a loaded CUDA runtime library.

    Parameters
    ----------
    lib : ctypes.CDLL
        Loaded CUDA runtime handle (see `load_cudart`).
    """

    def __init__(self, lib: ctypes.CDLL) -> None:
        self.lib = lib
        self._bind()

    def _bind(self) -> None:
        lib = self.lib
        lib.cudaMalloc.argtypes = [ctypes.POINTER(c_void_p), c_size_t]
        lib.cudaMalloc.restype = c_int
        lib.cudaFree.argtypes = [c_void_p]
        lib.cudaFree.restype = c_int

        lib.cudaHostAlloc.argtypes = [ctypes.POINTER(c_void_p), c_size_t, c_uint]
        lib.cudaHostAlloc.restype = c_int
        lib.cudaFreeHost.argtypes = [c_void_p]
        lib.cudaFreeHost.restype = c_int

        lib.cudaMemset.argtypes = [c_void_p, c_int, c_size_t]
        lib.cudaMemset.restype = c_int
        lib.cudaMemcpy.argtypes = [c_void_p, c_void_p, c_size_t, c_int]
        lib.cudaMemcpy.restype = c_int

        lib.cudaSetDevice.argtypes = [c_int]
        lib.cudaSetDevice.restype = c_int
        lib.cudaGetDevice.argtypes = [ctypes.POINTER(c_int)]
        lib.cudaGetDevice.restype = c_int

        lib.cudaGetErrorString.argtypes = [c_int]
        lib.cudaGetErrorString.restype = c_char_p

    def error_string(self, status: int) -> str:
        msg = self.lib.cudaGetErrorString(int(status))
        return msg.decode("utf-8", "replace") if msg else f"cudaError {status}"

    def _check(self, status: int, what: str) -> None:
        if status != CUDA_SUCCESS:
            raise RuntimeError(f"{what} failed: {self.error_string(status)} (status={status})")

    # ------------------------------------------------------------------
    # Device management
    # ------------------------------------------------------------------
    def set_device(self, index: int) -> None:
        self._check(self.lib.cudaSetDevice(int(index)), "cudaSetDevice")

    def get_device(self) -> int:
        out = c_int(0)
        self._check(self.lib.cudaGetDevice(ctypes.byref(out)), "cudaGetDevice")
        return int(out.value)

    # ------------------------------------------------------------------
    # Memory
    # ------------------------------------------------------------------
    def malloc(self, nbytes: int) -> DevPtr:
        """
        Allocate `nbytes` of device memory.

        Raises
        ------
        ResourceExhaustedError
            If the device is out of memory.
        """
        out = c_void_p()
        st = self.lib.cudaMalloc(ctypes.byref(out), c_size_t(int(nbytes)))
        if st == CUDA_ERROR_MEMORY_ALLOCATION:
            raise ResourceExhaustedError("cuda", nbytes, 0, self.error_string(st))
        self._check(st, "cudaMalloc")
        return int(out.value or 0)

    def free(self, dev_ptr: DevPtr) -> None:
        self._check(self.lib.cudaFree(c_void_p(int(dev_ptr))), "cudaFree")

    def malloc_host(self, nbytes: int) -> int:
        """Allocate `nbytes` of page-locked host memory."""
        out = c_void_p()
        st = self.lib.cudaHostAlloc(
            ctypes.byref(out), c_size_t(int(nbytes)), c_uint(HOST_ALLOC_DEFAULT)
        )
        if st == CUDA_ERROR_MEMORY_ALLOCATION:
            raise ResourceExhaustedError("host_pinned", nbytes, 0, self.error_string(st))
        self._check(st, "cudaHostAlloc")
        return int(out.value or 0)

    def free_host(self, ptr: int) -> None:
        self._check(self.lib.cudaFreeHost(c_void_p(int(ptr))), "cudaFreeHost")

    def memset(self, dev_ptr: DevPtr, value: int, nbytes: int) -> None:
        self._check(
            self.lib.cudaMemset(c_void_p(int(dev_ptr)), int(value), c_size_t(int(nbytes))),
            "cudaMemset",
        )

    def memcpy(self, dst: int, src: int, nbytes: int, kind: int) -> None:
        self._check(
            self.lib.cudaMemcpy(
                c_void_p(int(dst)), c_void_p(int(src)), c_size_t(int(nbytes)), int(kind)
            ),
            "cudaMemcpy",
        )

    def memcpy_h2d(self, dst_dev: DevPtr, src_host: int, nbytes: int) -> None:
        self.memcpy(dst_dev, src_host, nbytes, MEMCPY_HOST_TO_DEVICE)

    def memcpy_d2h(self, dst_host: int, src_dev: DevPtr, nbytes: int) -> None:
        self.memcpy(dst_host, src_dev, nbytes, MEMCPY_DEVICE_TO_HOST)


@lru_cache(maxsize=1)
def _runtime() -> CudaRuntime:
    return CudaRuntime(load_cudart())


def get_cuda_runtime(op: str = "cuda") -> CudaRuntime:
    """
    Return the process-wide CUDA runtime binding.

    Parameters
    ----------
    op : str
        Name of the operation requesting the runtime, used in error messages.

    Raises
    ------
    DeviceNotSupportedError
        If the CUDA runtime library cannot be loaded.
    """
    try:
        return _runtime()
    except OSError as e:
        raise DeviceNotSupportedError(op, "cuda", str(e)) from e


def cuda_available() -> bool:
    """Return True if the CUDA runtime can be loaded and reports a device."""
    try:
        rt = get_cuda_runtime()
        rt.get_device()
    except (DeviceNotSupportedError, RuntimeError, AttributeError):
        return False
    return True
