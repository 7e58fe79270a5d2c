"""
Tensor entities.

Three concrete tensors share one read-only surface (`shape`, `dtype`,
`layout`, `rank`, `export_data`, `cpu`) and differ only in where their memory
comes from:

- `Tensor`: owns memory obtained from an allocator according to a
  `TensorRequirements`.
- `TensorWrapData`: wraps a caller-supplied `TensorDataStrided` descriptor,
  optionally invoking a cleanup callback on teardown.
- `TensorWrapImage`: a 4D view (``NHWC`` or ``NCHW``, N=1) over the memory of
  an existing image. It owns nothing and must not outlive the image.

`TensorWrapHandle` is not a fourth entity: it is a non-owning reference that
resolves an existing tensor through its handle on every access.

The descriptor class returned by `export_data` tells the memory kind:
`TensorDataStridedHost` for host and pinned memory, `TensorDataStridedCuda`
for device memory.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type, TypeVar, Union

import numpy as np
from typing_extensions import Self

from ...domain._alignment import MemAlignment
from ...domain._allocator import IAllocator, MemoryKind
from ...domain._data import (
    ImageDataStrided,
    TensorDataStrided,
    TensorDataStridedCuda,
    TensorDataStridedHost,
)
from ...domain._data_type import DataType
from ...domain._errors import ConfigurationError, InvalidHandleError
from ...domain._image_format import ImageFormat, Size2D
from ...domain._requirements import TensorRequirements
from ...domain._tensor_layout import TensorLayout
from ...domain._tensor import EntityMode
from ...domain._tensor_shape import TensorShape
from .._entity import _Entity
from .._handles import get_registry
from .._memops import read_strided
from .._requirements_calc import (
    ShapeLike,
    calc_tensor_requirements,
    calc_tensor_requirements_for_images,
)
from .._storage import CleanupCallback, _OwnedStorage, _WrapCleanup
from ..alloc._allocator import default_allocator
from ..interop._dtypes import to_numpy_dtype

logger = logging.getLogger(__name__)

D = TypeVar("D")


def _check_memory(memory: MemoryKind) -> MemoryKind:
    if not isinstance(memory, MemoryKind):
        raise ConfigurationError("memory", f"expected MemoryKind, got {memory!r}")
    return memory


def tensor_data_cls(memory: MemoryKind) -> type:
    """Descriptor class describing a tensor in memory of `memory` kind."""
    return TensorDataStridedHost if memory.is_host_accessible else TensorDataStridedCuda


class _TensorEntity(_Entity):
    """Read-only tensor surface shared by the owning and wrapping variants."""

    _data: TensorDataStrided

    @property
    def shape(self) -> TensorShape:
        return self._data.shape

    @property
    def dtype(self) -> DataType:
        return self._data.dtype

    @property
    def layout(self) -> TensorLayout:
        return self._data.layout

    @property
    def rank(self) -> int:
        return self._data.rank

    def _export(self) -> TensorDataStrided:
        return self._data

    def _numpy_geometry(self) -> tuple[tuple[int, ...], tuple[int, ...], np.dtype]:
        d = self._data
        np_dtype = to_numpy_dtype(d.dtype)
        shape = tuple(d.shape.shape)
        strides = tuple(d.strides)
        if d.dtype.num_channels > 1:
            shape += (d.dtype.num_channels,)
            strides += (np_dtype.itemsize,)
        return shape, strides, np_dtype

    def cpu(self) -> np.ndarray:
        """
        Copy the tensor contents into a new numpy array.

        Elements with several channels gain a trailing channel axis. CUDA
        memory is copied to the host through the CUDA runtime.

        Raises
        ------
        InvalidHandleError
            If the tensor has been closed.
        """
        self._check_open()
        shape, strides, np_dtype = self._numpy_geometry()
        return read_strided(self.memory, self._data.base_ptr, shape, strides, np_dtype)

    @property
    def __cuda_array_interface__(self) -> Dict[str, Any]:
        """
        CUDA Array Interface (version 3) of a device-memory tensor.

        Raises
        ------
        AttributeError
            If the tensor does not live in CUDA memory, so that
            ``hasattr(t, "__cuda_array_interface__")`` is False.
        """
        if self.memory is not MemoryKind.CUDA or self.closed:
            raise AttributeError("__cuda_array_interface__")
        shape, strides, np_dtype = self._numpy_geometry()
        return {
            "shape": shape,
            "typestr": np_dtype.str,
            "data": (self._data.base_ptr, False),
            "strides": strides,
            "version": 3,
        }

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"handle={self.handle:#x}"
        return (
            f"{type(self).__name__}(shape={self.shape.shape}, layout='{self.layout}', "
            f"dtype={self.dtype}, memory={self.memory.value}, {state})"
        )


class Tensor(_TensorEntity):
    """
    Tensor owning its memory.

    Parameters
    ----------
    shape_or_reqs : TensorRequirements | TensorShape | tuple[int, ...]
        Either precomputed requirements or the tensor shape.
    dtype : DataType, optional
        Element type; required (and only allowed) when a shape is given.
    layout : TensorLayout | str, optional
        Axis labels for a plain tuple shape.
    alignment : MemAlignment, optional
        Alignment used to compute requirements from a shape.
    allocator : IAllocator, optional
        Allocator providing the memory; defaults to `default_allocator()`.
    memory : MemoryKind, optional
        Kind of memory to allocate. Defaults to CUDA.

    Raises
    ------
    ConfigurationError
        If the shape, dtype or alignment is invalid.
    ResourceExhaustedError
        If the allocator cannot provide the memory.
    DeviceNotSupportedError
        If the memory kind needs a CUDA runtime that cannot be loaded.
    """

    def __init__(
        self,
        shape_or_reqs: Union[TensorRequirements, ShapeLike],
        dtype: Optional[DataType] = None,
        *,
        layout=None,
        alignment: Optional[MemAlignment] = None,
        allocator: Optional[IAllocator] = None,
        memory: MemoryKind = MemoryKind.CUDA,
    ) -> None:
        if isinstance(shape_or_reqs, TensorRequirements):
            if dtype is not None or layout is not None or alignment is not None:
                raise ConfigurationError(
                    "requirements", "dtype/layout/alignment cannot be combined with requirements"
                )
            reqs = shape_or_reqs
        else:
            if dtype is None:
                raise ConfigurationError("dtype", "required when constructing from a shape")
            reqs = calc_tensor_requirements(shape_or_reqs, dtype, alignment, layout=layout)

        memory = _check_memory(memory)
        resource = (allocator if allocator is not None else default_allocator()).get(memory)
        ptr, _ = resource.allocate(reqs.total_bytes, reqs.alignment)
        storage = _OwnedStorage(resource, ptr, reqs.total_bytes, reqs.alignment)
        try:
            self._data = tensor_data_cls(memory)(ptr, reqs.shape, reqs.dtype, reqs.strides)
            super().__init__(storage, memory)
        except Exception:
            storage.release(0)
            raise
        self._requirements = reqs

    @property
    def requirements(self) -> TensorRequirements:
        return self._requirements

    @classmethod
    def from_images(
        cls,
        num_images: int,
        size: Size2D,
        fmt: ImageFormat,
        *,
        alignment: Optional[MemAlignment] = None,
        allocator: Optional[IAllocator] = None,
        memory: MemoryKind = MemoryKind.CUDA,
    ) -> Self:
        """
        Create a tensor able to hold `num_images` images of `size` in `fmt`.

        Packed formats give an ``NHWC`` tensor, planar formats an ``NCHW``
        one.
        """
        reqs = calc_tensor_requirements_for_images(num_images, size, fmt, alignment)
        return cls(reqs, allocator=allocator, memory=memory)

    @staticmethod
    def calc_requirements(*args, **kwargs) -> TensorRequirements:
        """
        Compute tensor requirements.

        Two call forms are accepted::

            Tensor.calc_requirements(shape, dtype, alignment=None, *, layout=None)
            Tensor.calc_requirements(num_images, size, fmt, alignment=None)
        """
        if args and isinstance(args[0], int) and not isinstance(args[0], bool):
            return calc_tensor_requirements_for_images(*args, **kwargs)
        return calc_tensor_requirements(*args, **kwargs)


class TensorWrapData(_TensorEntity):
    """
    Tensor over caller-owned memory.

    Parameters
    ----------
    data : TensorDataStridedHost | TensorDataStridedCuda
        Descriptor of the memory to wrap.
    cleanup : Callable[[TensorDataStrided], None], optional
        Called exactly once on teardown with `data`.

    Raises
    ------
    ConfigurationError
        If `data` is not a host or CUDA strided tensor descriptor.
    """

    def __init__(self, data: TensorDataStrided, cleanup: Optional[CleanupCallback] = None) -> None:
        if not isinstance(data, (TensorDataStridedHost, TensorDataStridedCuda)):
            raise ConfigurationError(
                "tensor data",
                f"expected TensorDataStridedHost or TensorDataStridedCuda, got {type(data).__name__}",
            )
        if cleanup is not None and not callable(cleanup):
            raise ConfigurationError("cleanup", f"{cleanup!r} is not callable")
        memory = MemoryKind.CUDA if isinstance(data, TensorDataStridedCuda) else MemoryKind.HOST
        self._data = data
        super().__init__(_WrapCleanup(cleanup, data), memory)


def image_tensor_data(data: ImageDataStrided, memory: MemoryKind) -> TensorDataStrided:
    """Describe image `data` as one N=1 ``NHWC`` (packed) or ``NCHW`` (planar) tensor."""
    fmt = data.format
    if fmt.is_subsampled:
        raise ConfigurationError("format", f"subsampled format {fmt} cannot be viewed as a tensor")
    ctype = fmt.tensor_dtype
    if ctype is None:
        raise ConfigurationError("format", f"planes of {fmt} have different channel types")
    cbytes = ctype.stride_bytes
    w, h = data.size
    first = data.planes[0]
    cls = tensor_data_cls(memory)

    if fmt.num_planes == 1:
        c = fmt.num_channels
        shape = TensorShape((1, h, w, c), TensorLayout.NHWC)
        strides = (h * first.row_stride, first.row_stride, c * cbytes, cbytes)
        return cls(first.base_ptr, shape, ctype, strides)

    if any(p.dtype.num_channels != 1 for p in fmt.planes):
        raise ConfigurationError("format", f"planar format {fmt} must have single-channel planes")
    planes = data.planes
    if any(p.row_stride != first.row_stride for p in planes):
        raise ConfigurationError("image data", "planes have different row strides")
    spacing = planes[1].base_ptr - planes[0].base_ptr
    for a, b in zip(planes, planes[1:]):
        if b.base_ptr - a.base_ptr != spacing:
            raise ConfigurationError("image data", "planes are not evenly spaced in memory")
    if spacing < h * first.row_stride:
        raise ConfigurationError("image data", "planes overlap or are not in ascending order")
    n = fmt.num_planes
    shape = TensorShape((1, n, h, w), TensorLayout.NCHW)
    strides = (n * spacing, spacing, first.row_stride, cbytes)
    return cls(first.base_ptr, shape, ctype, strides)


class TensorWrapImage(_TensorEntity):
    """
    Tensor view over the memory of an image.

    Packed images map to ``NHWC`` with N=1 and C the format's channel count;
    planar images whose planes are evenly spaced and share a row stride map
    to ``NCHW``. The view holds no reference to the image and must not be
    used after the image is closed.

    Raises
    ------
    ConfigurationError
        If the image format is subsampled or its planes cannot be described
        by a single strided tensor.
    InvalidHandleError
        If the image is closed.
    """

    def __init__(self, image) -> None:
        data = image.export_data(ImageDataStrided)
        if data is None:
            raise ConfigurationError("image", f"{image!r} does not expose strided image data")
        memory = image.memory
        self._data = image_tensor_data(data, memory)
        super().__init__(_WrapCleanup(None, self._data), memory)


class TensorWrapHandle:
    """
    Non-owning reference to an existing tensor, resolved by handle.

    The wrapper reports the target's handle and never registers one of its
    own. It keeps no reference to the target, so once the target is closed or
    collected every access raises `InvalidHandleError`. Closing the wrapper
    only detaches it; the target stays open.

    Raises
    ------
    InvalidHandleError
        If `handle` does not refer to a live entity.
    ConfigurationError
        If `handle` refers to an entity that is not a tensor.
    """

    __slots__ = ("_handle", "_detached")

    def __init__(self, handle: int) -> None:
        target = get_registry().lookup(handle)
        if not isinstance(target, _TensorEntity):
            raise ConfigurationError(
                "handle", f"{handle:#x} refers to a {type(target).__name__}, not a tensor"
            )
        self._handle = handle
        self._detached = False

    def _target(self) -> _TensorEntity:
        if self._detached:
            raise InvalidHandleError(self._handle, "TensorWrapHandle is closed")
        return get_registry().lookup(self._handle)

    @property
    def handle(self) -> int:
        return self._handle

    @property
    def mode(self) -> EntityMode:
        return self._target().mode

    @property
    def memory(self) -> MemoryKind:
        return self._target().memory

    @property
    def shape(self) -> TensorShape:
        return self._target().shape

    @property
    def dtype(self) -> DataType:
        return self._target().dtype

    @property
    def layout(self) -> TensorLayout:
        return self._target().layout

    @property
    def rank(self) -> int:
        return self._target().rank

    @property
    def closed(self) -> bool:
        return self._detached or not get_registry().is_live(self._handle)

    def export_data(self, view_cls: Optional[Type[D]] = None) -> Optional[D]:
        return self._target().export_data(view_cls)

    def cpu(self) -> np.ndarray:
        return self._target().cpu()

    def close(self) -> None:
        self._detached = True

    def __enter__(self) -> Self:
        self._target()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"TensorWrapHandle(handle={self._handle:#x}, {state})"
