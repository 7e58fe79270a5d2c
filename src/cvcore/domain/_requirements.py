"""
Allocator-agnostic memory requirements.

Requirements are pure value objects describing the byte layout an entity
will need *before* any memory is allocated: total size, base alignment and
the strides (or per-plane pitches and offsets) that the allocation must
honour. They are produced by the requirement calculators in
`cvcore.infrastructure._requirements_calc` and consumed by entity
constructors.

Two calculations over identical inputs always yield equal requirements.
"""

from __future__ import annotations

from dataclasses import dataclass

from ._data_type import DataType
from ._image_format import ImageFormat, Size2D
from ._tensor_layout import TensorLayout
from ._tensor_shape import TensorShape


@dataclass(frozen=True)
class TensorRequirements:
    """
    Memory layout needed by a strided tensor.

    Attributes
    ----------
    shape : TensorShape
        Extents and layout of the tensor.
    dtype : DataType
        Element type.
    strides : tuple[int, ...]
        Byte stride of every dimension, outermost first.
    alignment : int
        Base address alignment in bytes.
    row_alignment : int
        Alignment applied to the row pitch in bytes.
    total_bytes : int
        Number of bytes the backing allocation must provide.
    """

    shape: TensorShape
    dtype: DataType
    strides: tuple[int, ...]
    alignment: int
    row_alignment: int
    total_bytes: int

    @property
    def layout(self) -> TensorLayout:
        return self.shape.layout

    @property
    def rank(self) -> int:
        return self.shape.rank


@dataclass(frozen=True)
class ImageRequirements:
    """
    Memory layout needed by a (possibly multi-plane) image.

    Attributes
    ----------
    size : Size2D
        Full-resolution image size.
    format : ImageFormat
        Plane description.
    plane_row_strides : tuple[int, ...]
        Row pitch of every plane in bytes.
    plane_offsets : tuple[int, ...]
        Offset of every plane from the allocation base, in bytes.
    alignment : int
        Base alignment, applied to the allocation and to every plane offset.
    row_alignment : int
        Alignment applied to every plane's row pitch.
    total_bytes : int
        Number of bytes the backing allocation must provide.
    """

    size: Size2D
    format: ImageFormat
    plane_row_strides: tuple[int, ...]
    plane_offsets: tuple[int, ...]
    alignment: int
    row_alignment: int
    total_bytes: int


@dataclass(frozen=True)
class ImageBatchVarShapeRequirements:
    """
    Memory needed by an `ImageBatchVarShape` for its per-image descriptor
    list.

    Attributes
    ----------
    capacity : int
        Maximum number of images the batch can hold.
    descriptor_bytes : int
        Bytes required for `capacity` image descriptors.
    alignment : int
        Base alignment of the descriptor list.
    """

    capacity: int
    descriptor_bytes: int
    alignment: int
