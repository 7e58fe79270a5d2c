"""
Fixed-layout C ABI structures.

These `ctypes.Structure` mirrors are the binary contract shared with native
code (operators, custom allocators written in C). Field order and sizes are
part of the versioned public interface and must not change between
compatible versions; new fields may only be appended in a new major version.

Layout summary
--------------
- ``CTensorRequirements``: dtype code, layout labels, rank, shape and byte
  strides (fixed arrays of `MAX_TENSOR_RANK`), base alignment, total bytes.
- ``CImagePlaneStrided``: one pitch-linear plane.
- ``CImageBufferStrided``: up to `MAX_PLANE_COUNT` planes plus the format
  code. An image batch's descriptor list is a packed array of these.
- ``CImageRequirements``: image size, format code, per-plane pitch and
  offset, base alignment, total bytes.

`to_c` / `from_c` convert between the domain value objects and the
structures.
"""

from __future__ import annotations

import ctypes
from ctypes import c_char, c_int32, c_int64, c_uint64

from ...domain._data import ImageDataStrided
from ...domain._data_type import DataType
from ...domain._errors import ConfigurationError
from ...domain._image_format import ImageFormat, MAX_PLANE_COUNT, Size2D
from ...domain._requirements import ImageRequirements, TensorRequirements
from ...domain._tensor_shape import TensorShape

MAX_TENSOR_RANK = 15
MAX_LAYOUT_LABELS = 16


class CTensorRequirements(ctypes.Structure):
    _fields_ = [
        ("dtype", c_uint64),
        ("layout", c_char * MAX_LAYOUT_LABELS),
        ("rank", c_int32),
        ("shape", c_int64 * MAX_TENSOR_RANK),
        ("strides", c_int64 * MAX_TENSOR_RANK),
        ("alignBytes", c_int32),
        ("rowAlignBytes", c_int32),
        ("totalBytes", c_int64),
    ]


class CImagePlaneStrided(ctypes.Structure):
    _fields_ = [
        ("width", c_int32),
        ("height", c_int32),
        ("rowStride", c_int64),
        ("basePtr", c_uint64),
    ]


class CImageBufferStrided(ctypes.Structure):
    _fields_ = [
        ("format", c_uint64),
        ("numPlanes", c_int32),
        ("reserved", c_int32),
        ("planes", CImagePlaneStrided * MAX_PLANE_COUNT),
    ]


class CImageRequirements(ctypes.Structure):
    _fields_ = [
        ("width", c_int32),
        ("height", c_int32),
        ("format", c_uint64),
        ("numPlanes", c_int32),
        ("alignBytes", c_int32),
        ("planeRowStride", c_int64 * MAX_PLANE_COUNT),
        ("planeOffset", c_int64 * MAX_PLANE_COUNT),
        ("rowAlignBytes", c_int32),
        ("reserved", c_int32),
        ("totalBytes", c_int64),
    ]


def _format_code(fmt: ImageFormat) -> int:
    if fmt.code == 0:
        raise ConfigurationError(
            "format", f"format '{fmt.name}' has no stable code and cannot cross the C ABI"
        )
    return fmt.code


def tensor_requirements_to_c(reqs: TensorRequirements) -> CTensorRequirements:
    """Convert tensor requirements into their fixed binary layout."""
    if reqs.rank > MAX_TENSOR_RANK:
        raise ConfigurationError(
            "shape", f"rank {reqs.rank} exceeds the C ABI limit of {MAX_TENSOR_RANK}"
        )
    c = CTensorRequirements()
    c.dtype = reqs.dtype.code
    c.layout = str(reqs.layout).encode("ascii")
    c.rank = reqs.rank
    for i, (e, s) in enumerate(zip(reqs.shape, reqs.strides)):
        c.shape[i] = e
        c.strides[i] = s
    c.alignBytes = reqs.alignment
    c.rowAlignBytes = reqs.row_alignment
    c.totalBytes = reqs.total_bytes
    return c


def tensor_requirements_from_c(c: CTensorRequirements) -> TensorRequirements:
    """Rebuild tensor requirements from their binary layout."""
    rank = int(c.rank)
    if not (0 < rank <= MAX_TENSOR_RANK):
        raise ConfigurationError("shape", f"invalid rank {rank} in C requirements")
    layout = c.layout.decode("ascii")
    return TensorRequirements(
        shape=TensorShape(tuple(int(c.shape[i]) for i in range(rank)), layout),
        dtype=DataType.from_code(c.dtype),
        strides=tuple(int(c.strides[i]) for i in range(rank)),
        alignment=int(c.alignBytes),
        row_alignment=int(c.rowAlignBytes),
        total_bytes=int(c.totalBytes),
    )


def image_requirements_to_c(reqs: ImageRequirements) -> CImageRequirements:
    """Convert image requirements into their fixed binary layout."""
    c = CImageRequirements()
    c.width, c.height = reqs.size
    c.format = _format_code(reqs.format)
    c.numPlanes = reqs.format.num_planes
    c.alignBytes = reqs.alignment
    c.rowAlignBytes = reqs.row_alignment
    for i, (pitch, offset) in enumerate(zip(reqs.plane_row_strides, reqs.plane_offsets)):
        c.planeRowStride[i] = pitch
        c.planeOffset[i] = offset
    c.totalBytes = reqs.total_bytes
    return c


def image_requirements_from_c(c: CImageRequirements) -> ImageRequirements:
    """Rebuild image requirements from their binary layout."""
    fmt = ImageFormat.from_code(c.format)
    n = int(c.numPlanes)
    if n != fmt.num_planes:
        raise ConfigurationError(
            "format", f"format {fmt} has {fmt.num_planes} planes, C struct says {n}"
        )
    return ImageRequirements(
        size=Size2D(int(c.width), int(c.height)),
        format=fmt,
        plane_row_strides=tuple(int(c.planeRowStride[i]) for i in range(n)),
        plane_offsets=tuple(int(c.planeOffset[i]) for i in range(n)),
        alignment=int(c.alignBytes),
        row_alignment=int(c.rowAlignBytes),
        total_bytes=int(c.totalBytes),
    )


def image_buffer_to_c(data: ImageDataStrided) -> CImageBufferStrided:
    """Pack an image descriptor into one entry of a batch descriptor list."""
    c = CImageBufferStrided()
    c.format = _format_code(data.format)
    c.numPlanes = data.num_planes
    for i, p in enumerate(data.planes):
        c.planes[i].width = p.width
        c.planes[i].height = p.height
        c.planes[i].rowStride = p.row_stride
        c.planes[i].basePtr = p.base_ptr
    return c
