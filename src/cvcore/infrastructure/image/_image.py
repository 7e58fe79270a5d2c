"""
Image entities.

- `Image` owns one allocation holding all of its planes, laid out according
  to an `ImageRequirements`.
- `ImageWrapData` wraps caller-owned plane memory described by an
  `ImageDataStrided` descriptor, with an optional cleanup callback.

Both export `ImageDataStridedHost` (host and pinned memory) or
`ImageDataStridedCuda` (device memory).
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Union

import numpy as np
from typing_extensions import Self

from ...domain._alignment import MemAlignment
from ...domain._allocator import IAllocator, MemoryKind
from ...domain._data import (
    ImageDataStrided,
    ImageDataStridedCuda,
    ImageDataStridedHost,
    ImagePlaneStrided,
    TensorDataStrided,
)
from ...domain._errors import ConfigurationError
from ...domain._image_format import ImageFormat, Size2D
from ...domain._requirements import ImageRequirements
from ...domain._tensor_layout import TensorLayout
from ...domain._tensor_shape import TensorShape
from .._entity import _Entity
from .._memops import copy_from_host, fill_zero, read_strided
from .._requirements_calc import calc_image_requirements
from .._storage import CleanupCallback, _OwnedStorage, _WrapCleanup
from ..alloc._allocator import default_allocator
from ..interop._dtypes import from_numpy_dtype, infer_image_format, to_numpy_dtype
from ..tensor._tensor import TensorWrapData, image_tensor_data

logger = logging.getLogger(__name__)


def image_data_cls(memory: MemoryKind) -> type:
    """Descriptor class describing an image in memory of `memory` kind."""
    return ImageDataStridedHost if memory.is_host_accessible else ImageDataStridedCuda


class _ImageEntity(_Entity):
    """Read-only image surface shared by the owning and wrapping variants."""

    _data: ImageDataStrided

    @property
    def size(self) -> Size2D:
        return self._data.size

    @property
    def width(self) -> int:
        return self._data.size.w

    @property
    def height(self) -> int:
        return self._data.size.h

    @property
    def format(self) -> ImageFormat:
        return self._data.format

    def _export(self) -> ImageDataStrided:
        return self._data

    def _plane_to_numpy(self, idx: int) -> np.ndarray:
        fmt = self._data.format
        plane = self._data.planes[idx]
        dtype = fmt.plane_dtype(idx)
        np_dtype = to_numpy_dtype(dtype)
        shape = (plane.height, plane.width, dtype.num_channels)
        strides = (plane.row_stride, dtype.stride_bytes, np_dtype.itemsize)
        return read_strided(self.memory, plane.base_ptr, shape, strides, np_dtype)

    def _tensor_view(self, layout) -> TensorDataStrided:
        self._check_open()
        lay = str(TensorLayout(layout))
        if lay not in ("HWC", "CHW", "HW"):
            raise ConfigurationError("layout", f"expected 'HWC', 'CHW' or 'HW', got '{lay}'")
        full = image_tensor_data(self._data, self.memory)
        axes = str(full.layout)[1:]
        extents, strides = full.shape.shape[1:], full.strides[1:]
        channels = extents[axes.index("C")]
        if lay == "HW" and channels != 1:
            raise ConfigurationError(
                "layout", f"{self.format} has {channels} channels, 'HW' needs one"
            )
        order = [axes.index(axis) for axis in lay]
        return type(full)(
            full.base_ptr,
            TensorShape(tuple(extents[i] for i in order), lay),
            full.dtype,
            tuple(strides[i] for i in order),
        )

    def cpu(self, layout=None) -> Union[np.ndarray, List[np.ndarray]]:
        """
        Copy the image contents into numpy.

        Parameters
        ----------
        layout : TensorLayout | str, optional
            ``"HWC"``, ``"CHW"`` or ``"HW"`` (single channel only). Planar
            images are stacked along C. Not available for subsampled formats.

        Returns
        -------
        np.ndarray | list[np.ndarray]
            With a layout, one array in that layout. Without one, an
            ``(h, w, c)`` array for single-plane images, otherwise one such
            array per plane (at the plane's own, possibly subsampled, size).

        Raises
        ------
        ConfigurationError
            If `layout` is not supported or the format cannot be expressed in
            it.
        """
        if layout is not None:
            view = self._tensor_view(layout)
            np_dtype = to_numpy_dtype(view.dtype)
            shape, strides = view.shape.shape, view.strides
            return read_strided(self.memory, view.base_ptr, shape, strides, np_dtype)
        self._check_open()
        planes = [self._plane_to_numpy(i) for i in range(self._data.num_planes)]
        return planes[0] if len(planes) == 1 else planes

    def cuda(self, layout=None) -> TensorWrapData:
        """
        Zero-copy tensor over the device memory of the image.

        The result exposes ``__cuda_array_interface__``. `layout` defaults to
        ``"CHW"`` for planar formats and ``"HWC"`` otherwise. The tensor holds
        no reference to the image and must not be used after the image is
        closed.

        Raises
        ------
        ConfigurationError
            If the image is not in CUDA memory, or as for `cpu` with a layout.
        """
        if self.memory is not MemoryKind.CUDA:
            raise ConfigurationError(
                "memory", f"image lives in {self.memory.value} memory, not CUDA"
            )
        if layout is None:
            layout = "CHW" if self.format.is_planar else "HWC"
        return TensorWrapData(self._tensor_view(layout))

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"handle={self.handle:#x}"
        w, h = self.size
        return (
            f"{type(self).__name__}(size={w}x{h}, format={self.format}, "
            f"memory={self.memory.value}, {state})"
        )


class Image(_ImageEntity):
    """
    Image owning its memory.

    Parameters
    ----------
    size : Size2D | tuple[int, int]
        Full-resolution width and height.
    fmt : ImageFormat
        Image format.
    alignment : MemAlignment, optional
        Base/row alignment; zero entries use the configured defaults.
    allocator : IAllocator, optional
        Allocator providing the memory; defaults to `default_allocator()`.
    memory : MemoryKind, optional
        Kind of memory to allocate. Defaults to CUDA.

    Raises
    ------
    ConfigurationError
        If the size or format is invalid.
    ResourceExhaustedError
        If the allocator cannot provide the memory.
    """

    def __init__(
        self,
        size: Size2D,
        fmt: ImageFormat,
        *,
        alignment: Optional[MemAlignment] = None,
        allocator: Optional[IAllocator] = None,
        memory: MemoryKind = MemoryKind.CUDA,
    ) -> None:
        reqs = calc_image_requirements(size, fmt, alignment)
        self._init_owned(reqs, allocator, memory)

    def _init_owned(
        self, reqs: ImageRequirements, allocator: Optional[IAllocator], memory: MemoryKind
    ) -> None:
        if not isinstance(memory, MemoryKind):
            raise ConfigurationError("memory", f"expected MemoryKind, got {memory!r}")
        resource = (allocator if allocator is not None else default_allocator()).get(memory)
        ptr, _ = resource.allocate(reqs.total_bytes, reqs.alignment)
        storage = _OwnedStorage(resource, ptr, reqs.total_bytes, reqs.alignment)
        try:
            planes = []
            for i, (pitch, offset) in enumerate(zip(reqs.plane_row_strides, reqs.plane_offsets)):
                pw, ph = reqs.format.plane_size(i, reqs.size)
                planes.append(ImagePlaneStrided(pw, ph, pitch, ptr + offset))
            self._data = image_data_cls(memory)(reqs.format, tuple(planes))
            super().__init__(storage, memory)
        except Exception:
            storage.release(0)
            raise
        self._requirements = reqs

    @property
    def requirements(self) -> ImageRequirements:
        return self._requirements

    @classmethod
    def from_requirements(
        cls,
        reqs: ImageRequirements,
        *,
        allocator: Optional[IAllocator] = None,
        memory: MemoryKind = MemoryKind.CUDA,
    ) -> Self:
        """Create an image laid out exactly as described by `reqs`."""
        if not isinstance(reqs, ImageRequirements):
            raise ConfigurationError("requirements", f"expected ImageRequirements, got {reqs!r}")
        img = cls.__new__(cls)
        img._init_owned(reqs, allocator, memory)
        return img

    @classmethod
    def zeros(
        cls,
        size: Size2D,
        fmt: ImageFormat,
        *,
        alignment: Optional[MemAlignment] = None,
        allocator: Optional[IAllocator] = None,
        memory: MemoryKind = MemoryKind.CUDA,
    ) -> Self:
        """Create an image whose whole allocation is zero-filled."""
        img = cls(size, fmt, alignment=alignment, allocator=allocator, memory=memory)
        try:
            fill_zero(memory, img._data.planes[0].base_ptr, img._requirements.total_bytes)
        except Exception:
            img.close()
            raise
        return img

    @classmethod
    def from_host(
        cls,
        array,
        fmt: Optional[ImageFormat] = None,
        *,
        alignment: Optional[MemAlignment] = None,
        allocator: Optional[IAllocator] = None,
        memory: MemoryKind = MemoryKind.CUDA,
    ) -> Self:
        """
        Create an image holding a copy of one host buffer.

        `array` is ``HW`` or ``HWC`` for single-plane formats (inferred from
        the dtype and channel count when `fmt` is omitted), or ``(P, H, W)``
        for a planar `fmt` with P full-resolution planes.
        """
        arr = np.asarray(array)
        if fmt is not None and fmt.is_planar:
            if fmt.is_subsampled or arr.ndim != 3 or arr.shape[0] != fmt.num_planes:
                raise ConfigurationError(
                    "array", f"{fmt} needs a ({fmt.num_planes}, H, W) array, got shape {arr.shape}"
                )
            return cls.from_host_planes(
                list(arr), fmt, alignment=alignment, allocator=allocator, memory=memory
            )
        return cls.from_host_planes(
            [arr], fmt, alignment=alignment, allocator=allocator, memory=memory
        )

    @classmethod
    def from_host_planes(
        cls,
        arrays: Iterable,
        fmt: Optional[ImageFormat] = None,
        *,
        alignment: Optional[MemAlignment] = None,
        allocator: Optional[IAllocator] = None,
        memory: MemoryKind = MemoryKind.CUDA,
    ) -> Self:
        """
        Create an image holding a copy of one host buffer per plane.

        Each buffer is ``HW`` or ``HWC`` at its plane's (possibly subsampled)
        size. The image size is taken from the first plane. `fmt` may only be
        omitted for a single buffer.

        Raises
        ------
        ConfigurationError
            If the buffers do not match the planes of `fmt` in count, size or
            pixel type.
        """
        try:
            planes = [np.asarray(a) for a in arrays]
        except TypeError:
            raise ConfigurationError(
                "arrays", f"expected an iterable of buffers, got {arrays!r}"
            ) from None
        if not planes:
            raise ConfigurationError("arrays", "at least one plane buffer is required")
        for a in planes:
            if a.ndim not in (2, 3) or a.size == 0:
                raise ConfigurationError(
                    "array", f"expected a non-empty HW or HWC array, got shape {a.shape}"
                )

        def pixel(a: np.ndarray):
            return from_numpy_dtype(a.dtype, a.shape[2] if a.ndim == 3 else 1)

        if fmt is None:
            if len(planes) != 1:
                raise ConfigurationError("format", "required when several plane buffers are given")
            fmt = infer_image_format(pixel(planes[0]))
        if len(planes) != fmt.num_planes:
            raise ConfigurationError(
                "arrays", f"{fmt} has {fmt.num_planes} planes, got {len(planes)} buffers"
            )
        h, w = planes[0].shape[:2]
        size = Size2D(w, h)
        for i, a in enumerate(planes):
            pw, ph = fmt.plane_size(i, size)
            if a.shape[:2] != (ph, pw) or pixel(a) != fmt.plane_dtype(i):
                raise ConfigurationError(
                    "array",
                    f"plane {i} of {fmt} at {w}x{h} needs {pw}x{ph} pixels of "
                    f"{fmt.plane_dtype(i)}, got shape {a.shape} of {a.dtype}",
                )

        img = cls(size, fmt, alignment=alignment, allocator=allocator, memory=memory)
        try:
            for a, plane in zip(planes, img._data.planes):
                rows = np.ascontiguousarray(a).reshape(plane.height, -1).view(np.uint8)
                # Stage at the destination pitch so each plane is one copy.
                staged = np.zeros((plane.height, plane.row_stride), dtype=np.uint8)
                staged[:, : rows.shape[1]] = rows
                copy_from_host(img.memory, plane.base_ptr, staged.ctypes.data, staged.nbytes)
        except Exception:
            img.close()
            raise
        return img

    @staticmethod
    def calc_requirements(
        size: Size2D, fmt: ImageFormat, alignment: Optional[MemAlignment] = None
    ) -> ImageRequirements:
        return calc_image_requirements(size, fmt, alignment)


class ImageWrapData(_ImageEntity):
    """
    Image over caller-owned plane memory.

    Parameters
    ----------
    data : ImageDataStridedHost | ImageDataStridedCuda
        Descriptor of the planes to wrap.
    cleanup : Callable[[ImageDataStrided], None], optional
        Called exactly once on teardown with `data`.

    Raises
    ------
    ConfigurationError
        If `data` is not a host or CUDA strided image descriptor.
    """

    def __init__(self, data: ImageDataStrided, cleanup: Optional[CleanupCallback] = None) -> None:
        if not isinstance(data, (ImageDataStridedHost, ImageDataStridedCuda)):
            raise ConfigurationError(
                "image data",
                f"expected ImageDataStridedHost or ImageDataStridedCuda, got {type(data).__name__}",
            )
        if cleanup is not None and not callable(cleanup):
            raise ConfigurationError("cleanup", f"{cleanup!r} is not callable")
        memory = MemoryKind.CUDA if isinstance(data, ImageDataStridedCuda) else MemoryKind.HOST
        self._data = data
        super().__init__(_WrapCleanup(cleanup, data), memory)
