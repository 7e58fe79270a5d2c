"""
Requirement calculators.

Pure functions that compute the memory layout an entity will need from its
shape/type (or size/format) and a `MemAlignment`. They never allocate, hold
no state and can be called concurrently.

Tensor stride rule
------------------
Strides are row-major: the innermost dimension's stride is the element size
and every outer stride is the inner extent times the inner stride. The one
exception is the *row axis*, whose stride (the row pitch) is rounded up to
the row alignment before the outer strides are derived from it.

The row axis is the ``H`` axis when the layout tags one. Without ``H`` it is
the axis directly enclosing ``W`` (none when ``W`` leads). With neither tag
the second-to-last axis is used, and a rank-1 tensor has no row axis at all.

Image rule
----------
Each plane's pitch is its row size rounded up to the row alignment. Planes
are placed one after another, each starting at an offset aligned to the base
alignment.
"""

from __future__ import annotations

import ctypes
from typing import Optional, Union

from ..domain._alignment import MemAlignment, align_up
from ..domain._data_type import DataType
from ..domain._errors import ConfigurationError
from ..domain._image_format import ImageFormat, Size2D
from ..domain._requirements import (
    ImageBatchVarShapeRequirements,
    ImageRequirements,
    TensorRequirements,
)
from ..domain._tensor_layout import TensorLayout
from ..domain._tensor_shape import TensorShape
from ._config import get_config
from .c_abi._structs import CImageBufferStrided, MAX_TENSOR_RANK

ShapeLike = Union[TensorShape, tuple, list]


def resolve_alignment(alignment: Optional[MemAlignment]) -> MemAlignment:
    """Replace zero alignment entries with the configured defaults."""
    cfg = get_config()
    if alignment is None:
        alignment = MemAlignment()
    if not isinstance(alignment, MemAlignment):
        raise ConfigurationError("alignment", f"expected MemAlignment, got {alignment!r}")
    return alignment.resolved(cfg.base_alignment, cfg.row_alignment)


def row_axis(shape: TensorShape) -> int:
    """
    Return the index of the row axis of `shape`, or -1 if it has none.
    """
    h = shape.layout.find("H")
    if h >= 0:
        return h
    w = shape.layout.find("W")
    if w >= 0:
        # Rows are whatever directly encloses W; a leading W has no rows.
        return w - 1
    return shape.rank - 2 if shape.rank >= 2 else -1


def _as_shape(shape: ShapeLike, layout=None) -> TensorShape:
    if isinstance(shape, TensorShape):
        if layout is not None and TensorLayout(layout) != shape.layout:
            raise ConfigurationError(
                "layout", f"shape already has layout '{shape.layout}', got '{layout}'"
            )
        return shape
    return TensorShape(tuple(shape), layout)


def calc_tensor_requirements(
    shape: ShapeLike,
    dtype: DataType,
    alignment: Optional[MemAlignment] = None,
    *,
    layout=None,
) -> TensorRequirements:
    """
    Compute the memory requirements of a strided tensor.

    Parameters
    ----------
    shape : TensorShape | tuple[int, ...]
        Tensor extents (rank >= 1, every extent > 0).
    dtype : DataType
        Element type.
    alignment : MemAlignment, optional
        Base/row alignment; zero entries use the configured defaults.
    layout : TensorLayout | str, optional
        Axis labels, used when `shape` is a plain tuple.

    Returns
    -------
    TensorRequirements
        Strides, alignment and total size.

    Raises
    ------
    ConfigurationError
        If the shape is empty or has a non-positive extent, the rank exceeds
        the supported maximum, or `dtype` is not a DataType.
    """
    tshape = _as_shape(shape, layout)
    if not isinstance(dtype, DataType):
        raise ConfigurationError("dtype", f"expected DataType, got {dtype!r}")
    if tshape.rank < 1:
        raise ConfigurationError("shape", "rank must be at least 1")
    if tshape.rank > MAX_TENSOR_RANK:
        raise ConfigurationError("shape", f"rank {tshape.rank} exceeds {MAX_TENSOR_RANK}")
    if any(e <= 0 for e in tshape):
        raise ConfigurationError("shape", f"all extents must be > 0, got {tshape.shape}")

    align = resolve_alignment(alignment)
    row = row_axis(tshape)

    strides = [0] * tshape.rank
    strides[-1] = dtype.stride_bytes
    for i in range(tshape.rank - 2, -1, -1):
        stride = tshape[i + 1] * strides[i + 1]
        if i == row:
            stride = align_up(stride, align.row)
        strides[i] = stride

    return TensorRequirements(
        shape=tshape,
        dtype=dtype,
        strides=tuple(strides),
        alignment=align.base,
        row_alignment=align.row,
        total_bytes=tshape[0] * strides[0],
    )


def images_tensor_shape(num_images: int, size: Size2D, fmt: ImageFormat) -> tuple[TensorShape, DataType]:
    """
    Map "`num_images` images of `size` in `fmt`" onto a 4D tensor shape.

    Packed formats map to ``NHWC`` with the format's channel count; planar
    formats with full-resolution planes of a single channel type map to
    ``NCHW`` so that every plane is one contiguous strided region.

    Raises
    ------
    ConfigurationError
        If the format is subsampled or its planes have different types.
    """
    if num_images <= 0:
        raise ConfigurationError("num_images", f"must be > 0, got {num_images}")
    w, h = size
    if w <= 0 or h <= 0:
        raise ConfigurationError("size", f"must be positive, got {w}x{h}")
    if fmt.is_subsampled:
        raise ConfigurationError(
            "format", f"subsampled format {fmt} cannot be represented as a tensor"
        )
    ctype = fmt.tensor_dtype
    if ctype is None:
        raise ConfigurationError(
            "format", f"planes of {fmt} have different channel types"
        )
    if fmt.num_planes == 1:
        return TensorShape((num_images, h, w, fmt.num_channels), TensorLayout.NHWC), ctype
    if any(p.dtype.num_channels != 1 for p in fmt.planes):
        raise ConfigurationError(
            "format", f"planar format {fmt} must have single-channel planes"
        )
    return TensorShape((num_images, fmt.num_planes, h, w), TensorLayout.NCHW), ctype


def calc_tensor_requirements_for_images(
    num_images: int,
    size: Size2D,
    fmt: ImageFormat,
    alignment: Optional[MemAlignment] = None,
) -> TensorRequirements:
    """
    Compute the requirements of a tensor holding `num_images` images.

    See `images_tensor_shape` for how the format is mapped to a shape.
    """
    shape, dtype = images_tensor_shape(num_images, Size2D(*size), fmt)
    return calc_tensor_requirements(shape, dtype, alignment)


def calc_image_requirements(
    size: Size2D, fmt: ImageFormat, alignment: Optional[MemAlignment] = None
) -> ImageRequirements:
    """
    Compute the memory requirements of a pitch-linear image.

    Parameters
    ----------
    size : Size2D
        Full-resolution width and height (> 0).
    fmt : ImageFormat
        Plane description.
    alignment : MemAlignment, optional
        Base/row alignment; zero entries use the configured defaults.

    Raises
    ------
    ConfigurationError
        If the size is not positive or a plane's pixel is not byte-sized.
    """
    if not isinstance(fmt, ImageFormat):
        raise ConfigurationError("format", f"expected ImageFormat, got {fmt!r}")
    size = Size2D(*size)
    if size.w <= 0 or size.h <= 0:
        raise ConfigurationError("size", f"must be positive, got {size.w}x{size.h}")

    align = resolve_alignment(alignment)
    pitches = []
    offsets = []
    offset = 0
    for i in range(fmt.num_planes):
        bpp = fmt.plane_bits_per_pixel(i)
        if bpp % 8:
            raise ConfigurationError(
                "format", f"plane {i} of {fmt} is not byte-addressable ({bpp} bits)"
            )
        pw, ph = fmt.plane_size(i, size)
        pitch = align_up(pw * bpp // 8, align.row)
        offset = align_up(offset, align.base)
        pitches.append(pitch)
        offsets.append(offset)
        offset += pitch * ph

    return ImageRequirements(
        size=size,
        format=fmt,
        plane_row_strides=tuple(pitches),
        plane_offsets=tuple(offsets),
        alignment=align.base,
        row_alignment=align.row,
        total_bytes=offset,
    )


def calc_image_batch_requirements(
    capacity: int, alignment: Optional[MemAlignment] = None
) -> ImageBatchVarShapeRequirements:
    """
    Compute the requirements of an image batch's descriptor list.

    Raises
    ------
    ConfigurationError
        If `capacity` is not positive.
    """
    if not isinstance(capacity, int) or capacity <= 0:
        raise ConfigurationError("capacity", f"must be a positive int, got {capacity!r}")
    align = resolve_alignment(alignment)
    return ImageBatchVarShapeRequirements(
        capacity=capacity,
        descriptor_bytes=capacity * ctypes.sizeof(CImageBufferStrided),
        alignment=align.base,
    )
