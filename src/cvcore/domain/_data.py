"""
Buffer descriptors for tensors, images and image batches.

A descriptor is an immutable record of *where* an entity's bytes live and
*how* they are laid out: base pointer(s), extents, strides and element type.
Descriptors never own memory. They are what `export_data` hands out and what
wrap cleanup callbacks receive, so immutability guarantees the callback sees
exactly the description that was supplied at wrap time.

The concrete subclass encodes the memory the pointers refer to:

- ``...Host`` : addresses are dereferenceable by the CPU.
- ``...Cuda`` : addresses are CUDA device pointers.

Requesting a view type the entity does not hold yields None rather than an
error (see `export_data` on the entities).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ._data_type import DataType
from ._errors import ConfigurationError
from ._image_format import ImageFormat, Size2D
from ._tensor_layout import TensorLayout
from ._tensor_shape import TensorShape


@dataclass(frozen=True)
class TensorDataStrided:
    """
    Strided tensor buffer description.

    Attributes
    ----------
    base_ptr : int
        Address of the first element.
    shape : TensorShape
        Extents and layout.
    dtype : DataType
        Element type.
    strides : tuple[int, ...]
        Byte stride of every dimension, outermost first.

    Raises
    ------
    ConfigurationError
        If the pointer is null, or the stride count does not match the rank.
    """

    base_ptr: int
    shape: TensorShape
    dtype: DataType
    strides: tuple[int, ...]

    def __post_init__(self) -> None:
        if int(self.base_ptr) <= 0:
            raise ConfigurationError("tensor data", "base pointer must be non-null")
        if not isinstance(self.shape, TensorShape):
            raise ConfigurationError("tensor data", f"shape must be a TensorShape, got {self.shape!r}")
        if not isinstance(self.dtype, DataType):
            raise ConfigurationError("tensor data", f"dtype must be a DataType, got {self.dtype!r}")
        strides = tuple(int(s) for s in self.strides)
        if len(strides) != self.shape.rank:
            raise ConfigurationError(
                "tensor data",
                f"{len(strides)} strides given for a rank-{self.shape.rank} shape",
            )
        if any(s < 0 for s in strides):
            raise ConfigurationError("tensor data", f"strides must be non-negative, got {strides}")
        object.__setattr__(self, "strides", strides)
        object.__setattr__(self, "base_ptr", int(self.base_ptr))

    @property
    def rank(self) -> int:
        return self.shape.rank

    @property
    def layout(self) -> TensorLayout:
        return self.shape.layout


class TensorDataStridedHost(TensorDataStrided):
    """Strided tensor buffer in host-addressable memory."""


class TensorDataStridedCuda(TensorDataStrided):
    """Strided tensor buffer in CUDA device memory."""


@dataclass(frozen=True)
class ImagePlaneStrided:
    """
    One plane of a pitch-linear image buffer.

    Attributes
    ----------
    width, height : int
        Plane dimensions in pixels (already subsampled).
    row_stride : int
        Byte distance between the starts of two consecutive rows.
    base_ptr : int
        Address of the first pixel of the plane.
    """

    width: int
    height: int
    row_stride: int
    base_ptr: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(
                "image plane", f"size must be positive, got {self.width}x{self.height}"
            )
        if self.row_stride <= 0:
            raise ConfigurationError("image plane", f"row stride must be positive, got {self.row_stride}")
        if int(self.base_ptr) <= 0:
            raise ConfigurationError("image plane", "base pointer must be non-null")


@dataclass(frozen=True)
class ImageDataStrided:
    """
    Pitch-linear image buffer description.

    Attributes
    ----------
    format : ImageFormat
        Plane formats.
    planes : tuple[ImagePlaneStrided, ...]
        One entry per format plane.

    Raises
    ------
    ConfigurationError
        If the plane count differs from the format's, or a plane's row pitch
        cannot hold one row of its pixels.
    """

    format: ImageFormat
    planes: tuple[ImagePlaneStrided, ...]

    def __post_init__(self) -> None:
        planes = tuple(self.planes)
        if len(planes) != self.format.num_planes:
            raise ConfigurationError(
                "image data",
                f"format {self.format} has {self.format.num_planes} planes, got {len(planes)}",
            )
        for i, p in enumerate(planes):
            row_bytes = p.width * self.format.plane_bits_per_pixel(i) // 8
            if p.row_stride < row_bytes:
                raise ConfigurationError(
                    "image data",
                    f"plane {i} row stride {p.row_stride} < row size {row_bytes}",
                )
        object.__setattr__(self, "planes", planes)

    @property
    def num_planes(self) -> int:
        return len(self.planes)

    @property
    def size(self) -> Size2D:
        """Size of the first plane, which is the full image resolution."""
        p = self.planes[0]
        return Size2D(p.width, p.height)


class ImageDataStridedHost(ImageDataStrided):
    """Pitch-linear image buffer in host-addressable memory."""


class ImageDataStridedCuda(ImageDataStrided):
    """Pitch-linear image buffer in CUDA device memory."""


@dataclass(frozen=True)
class ImageBatchVarShapeDataStrided:
    """
    Snapshot of a variable-shape image batch.

    Attributes
    ----------
    num_images : int
        Number of images currently in the batch.
    images : tuple[ImageDataStrided, ...]
        Descriptor of every image, in batch order.
    unique_format : ImageFormat | None
        Format shared by all images, or None if formats differ (or the batch
        is empty).
    max_size : Size2D
        Largest width and largest height over all images ((0, 0) if empty).
    descriptor_ptr : int
        Address of the packed per-image descriptor list owned by the batch.
    """

    num_images: int
    images: tuple[ImageDataStrided, ...]
    unique_format: Optional[ImageFormat]
    max_size: Size2D
    descriptor_ptr: int

    def __post_init__(self) -> None:
        if self.num_images != len(self.images):
            raise ConfigurationError(
                "image batch data",
                f"num_images={self.num_images} but {len(self.images)} descriptors given",
            )


class ImageBatchVarShapeDataStridedHost(ImageBatchVarShapeDataStrided):
    """Image batch snapshot whose descriptor list lives in host memory."""


class ImageBatchVarShapeDataStridedCuda(ImageBatchVarShapeDataStrided):
    """Image batch snapshot whose descriptor list lives in CUDA memory."""
