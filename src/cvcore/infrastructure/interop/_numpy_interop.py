"""
Zero-copy wrapping of array objects as cvcore entities.

`as_tensor` and `as_image` accept either a numpy array (host memory) or any
object exposing ``__cuda_array_interface__`` (CUDA memory, e.g. CuPy or
Numba device arrays). The returned entity wraps the object's memory without
copying and keeps the object alive until the entity is closed.
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple, Optional

import numpy as np

from ...domain._allocator import MemoryKind
from ...domain._data import (
    ImageDataStridedCuda,
    ImageDataStridedHost,
    ImagePlaneStrided,
    TensorDataStridedCuda,
    TensorDataStridedHost,
)
from ...domain._errors import ConfigurationError
from ...domain._image_format import ImageFormat
from ...domain._tensor_shape import TensorShape
from ..image._image import ImageWrapData
from ..tensor._tensor import TensorWrapData
from ._dtypes import from_numpy_dtype, infer_image_format

logger = logging.getLogger(__name__)


class _ArrayGeometry(NamedTuple):
    ptr: int
    shape: tuple[int, ...]
    strides: tuple[int, ...]
    dtype: np.dtype
    memory: MemoryKind


class _KeepAlive:
    """Cleanup callback holding a reference to the wrapped array object."""

    def __init__(self, obj: Any) -> None:
        self._obj = obj

    def __call__(self, data: Any) -> None:
        logger.debug("Releasing wrapped %s", type(self._obj).__name__)
        self._obj = None


def _contiguous_strides(shape: tuple[int, ...], itemsize: int) -> tuple[int, ...]:
    strides = []
    acc = itemsize
    for extent in reversed(shape):
        strides.append(acc)
        acc *= extent
    return tuple(reversed(strides))


def _geometry(obj: Any) -> _ArrayGeometry:
    if isinstance(obj, np.ndarray):
        return _ArrayGeometry(
            int(obj.ctypes.data),
            tuple(obj.shape),
            tuple(obj.strides),
            obj.dtype,
            MemoryKind.HOST,
        )
    iface = getattr(obj, "__cuda_array_interface__", None)
    if iface is None:
        raise ConfigurationError(
            "array",
            f"{type(obj).__name__} is neither a numpy array nor exposes __cuda_array_interface__",
        )
    shape = tuple(int(e) for e in iface["shape"])
    dtype = np.dtype(iface["typestr"])
    strides = iface.get("strides")
    strides = (
        tuple(int(s) for s in strides)
        if strides is not None
        else _contiguous_strides(shape, dtype.itemsize)
    )
    ptr = int(iface["data"][0] or 0)
    return _ArrayGeometry(ptr, shape, strides, dtype, MemoryKind.CUDA)


def _check_wrappable(geo: _ArrayGeometry) -> None:
    if not geo.shape or any(e == 0 for e in geo.shape):
        raise ConfigurationError("array", f"cannot wrap an empty array of shape {geo.shape}")
    if any(s < 0 for s in geo.strides):
        raise ConfigurationError("array", f"negative strides are not supported: {geo.strides}")


def as_tensor(obj: Any, layout=None) -> TensorWrapData:
    """
    Wrap an array object as a tensor without copying.

    Parameters
    ----------
    obj : np.ndarray | object with ``__cuda_array_interface__``
        Source array.
    layout : TensorLayout | str, optional
        Axis labels; must match the array's rank.

    Raises
    ------
    ConfigurationError
        If the array is empty, has negative strides, an unsupported dtype, or
        `layout` does not match its rank.
    """
    geo = _geometry(obj)
    _check_wrappable(geo)
    dtype = from_numpy_dtype(geo.dtype)
    cls = TensorDataStridedHost if geo.memory is MemoryKind.HOST else TensorDataStridedCuda
    data = cls(geo.ptr, TensorShape(geo.shape, layout), dtype, geo.strides)
    return TensorWrapData(data, cleanup=_KeepAlive(obj))


def as_image(obj: Any, fmt: Optional[ImageFormat] = None) -> ImageWrapData:
    """
    Wrap an ``HW`` or ``HWC`` array object as a single-plane image.

    Parameters
    ----------
    obj : np.ndarray | object with ``__cuda_array_interface__``
        Source array; pixels of a row must be densely packed.
    fmt : ImageFormat, optional
        Image format. Inferred from the dtype and channel count when omitted.

    Raises
    ------
    ConfigurationError
        If the array is not 2D/3D, its rows are not densely packed, or its
        pixel type does not match (or cannot be mapped to) a single-plane
        format.
    """
    geo = _geometry(obj)
    _check_wrappable(geo)
    if len(geo.shape) not in (2, 3):
        raise ConfigurationError("array", f"expected an HW or HWC array, got shape {geo.shape}")
    h, w = geo.shape[:2]
    channels = geo.shape[2] if len(geo.shape) == 3 else 1
    itemsize = geo.dtype.itemsize
    if geo.strides[1] != channels * itemsize or (len(geo.shape) == 3 and geo.strides[2] != itemsize):
        raise ConfigurationError("array", f"pixels are not densely packed (strides {geo.strides})")

    pixel = from_numpy_dtype(geo.dtype, channels)
    if fmt is None:
        fmt = infer_image_format(pixel)
    elif fmt.num_planes != 1 or fmt.plane_dtype(0) != pixel:
        raise ConfigurationError("format", f"{fmt} does not match pixel type {pixel}")

    plane = ImagePlaneStrided(w, h, geo.strides[0], geo.ptr)
    cls = ImageDataStridedHost if geo.memory is MemoryKind.HOST else ImageDataStridedCuda
    return ImageWrapData(cls(fmt, (plane,)), cleanup=_KeepAlive(obj))
