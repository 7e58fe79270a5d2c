"""
Image formats and 2D sizes.

An `ImageFormat` is an immutable list of planes. Each plane has its own pixel
`DataType` and a horizontal/vertical subsampling factor relative to the full
image resolution, which is how planar (``RGB8p``) and semi-planar (``NV12``)
color formats are represented.

Every named format carries a stable integer `code`; codes are what cross the
C ABI boundary (see `cvcore.infrastructure.c_abi`).
"""

from __future__ import annotations

from typing import Dict, NamedTuple, Sequence

from ._data_type import (
    DataType,
    F32,
    F64,
    S8,
    S16,
    S32,
    TYPE_2U8,
    TYPE_3F32,
    TYPE_3U8,
    TYPE_4F32,
    TYPE_4U8,
    U8,
    U16,
)
from ._errors import ConfigurationError

MAX_PLANE_COUNT = 4


class Size2D(NamedTuple):
    """Width/height pair in pixels."""

    w: int
    h: int


class PlaneFormat(NamedTuple):
    """
    Format of a single image plane.

    Attributes
    ----------
    dtype : DataType
        Pixel type of the plane (may pack several channels).
    subsample_x : int
        Horizontal subsampling factor (1 = full resolution).
    subsample_y : int
        Vertical subsampling factor (1 = full resolution).
    """

    dtype: DataType
    subsample_x: int = 1
    subsample_y: int = 1


_REGISTRY: Dict[int, "ImageFormat"] = {}


class ImageFormat:
    """
    Immutable description of the planes of an image.

    Parameters
    ----------
    name : str
        Human-readable format name (e.g. "NV12").
    planes : Sequence[PlaneFormat | DataType]
        One entry per plane; a bare `DataType` means a full-resolution plane.
    code : int, optional
        Stable identifier used across the C ABI. 0 marks an ad-hoc format
        that cannot be serialized.

    Raises
    ------
    ConfigurationError
        If the plane count is outside [1, 4] or a subsampling factor is not
        1, 2 or 4.
    """

    __slots__ = ("_name", "_planes", "_code")

    def __init__(
        self, name: str, planes: Sequence[PlaneFormat | DataType], code: int = 0
    ) -> None:
        normalized = []
        for p in planes:
            if isinstance(p, DataType):
                p = PlaneFormat(p)
            if not isinstance(p, PlaneFormat) or not isinstance(p.dtype, DataType):
                raise ConfigurationError("format", f"invalid plane {p!r}")
            if p.subsample_x not in (1, 2, 4) or p.subsample_y not in (1, 2, 4):
                raise ConfigurationError(
                    "format", f"unsupported subsampling {p.subsample_x}x{p.subsample_y}"
                )
            normalized.append(p)

        if not (1 <= len(normalized) <= MAX_PLANE_COUNT):
            raise ConfigurationError(
                "format",
                f"plane count must be in [1, {MAX_PLANE_COUNT}], got {len(normalized)}",
            )
        self._name = str(name)
        self._planes = tuple(normalized)
        self._code = int(code)

    @classmethod
    def _define(cls, code: int, name: str, *planes) -> "ImageFormat":
        fmt = cls(name, planes, code)
        if code in _REGISTRY:
            raise ConfigurationError("format", f"duplicate format code {code}")
        _REGISTRY[code] = fmt
        return fmt

    @classmethod
    def from_code(cls, code: int) -> "ImageFormat":
        """Look up a named format by its stable code."""
        try:
            return _REGISTRY[int(code)]
        except KeyError:
            raise ConfigurationError("format", f"unknown format code {code}") from None

    @property
    def name(self) -> str:
        return self._name

    @property
    def code(self) -> int:
        return self._code

    @property
    def planes(self) -> tuple[PlaneFormat, ...]:
        return self._planes

    @property
    def num_planes(self) -> int:
        return len(self._planes)

    @property
    def num_channels(self) -> int:
        """Total channel count summed over all planes."""
        return sum(p.dtype.num_channels for p in self._planes)

    def plane_dtype(self, plane: int) -> DataType:
        return self._planes[plane].dtype

    def plane_num_channels(self, plane: int) -> int:
        return self._planes[plane].dtype.num_channels

    def plane_bits_per_pixel(self, plane: int) -> int:
        return self._planes[plane].dtype.bits_per_pixel

    def plane_size(self, plane: int, size: Size2D) -> Size2D:
        """Return the pixel dimensions of `plane` for an image of `size`."""
        p = self._planes[plane]
        w, h = size
        return Size2D(-(-w // p.subsample_x), -(-h // p.subsample_y))

    @property
    def is_planar(self) -> bool:
        return len(self._planes) > 1

    @property
    def is_subsampled(self) -> bool:
        return any(p.subsample_x != 1 or p.subsample_y != 1 for p in self._planes)

    @property
    def tensor_dtype(self) -> DataType | None:
        """
        Common single-channel type of all planes, or None when planes differ.
        """
        types = {p.dtype.channel_type for p in self._planes}
        return types.pop() if len(types) == 1 else None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImageFormat):
            return NotImplemented
        return (self._name, self._planes, self._code) == (
            other._name,
            other._planes,
            other._code,
        )

    def __hash__(self) -> int:
        return hash((ImageFormat, self._name, self._planes, self._code))

    def __str__(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"ImageFormat('{self._name}')"


FMT_U8 = ImageFormat._define(1, "U8", U8)
FMT_S8 = ImageFormat._define(2, "S8", S8)
FMT_U16 = ImageFormat._define(3, "U16", U16)
FMT_S16 = ImageFormat._define(4, "S16", S16)
FMT_S32 = ImageFormat._define(5, "S32", S32)
FMT_F32 = ImageFormat._define(6, "F32", F32)
FMT_F64 = ImageFormat._define(7, "F64", F64)

# Packed (interleaved) color
FMT_RGB8 = ImageFormat._define(20, "RGB8", TYPE_3U8)
FMT_BGR8 = ImageFormat._define(21, "BGR8", TYPE_3U8)
FMT_RGBA8 = ImageFormat._define(22, "RGBA8", TYPE_4U8)
FMT_BGRA8 = ImageFormat._define(23, "BGRA8", TYPE_4U8)
FMT_RGBf32 = ImageFormat._define(24, "RGBf32", TYPE_3F32)
FMT_BGRf32 = ImageFormat._define(25, "BGRf32", TYPE_3F32)
FMT_RGBAf32 = ImageFormat._define(26, "RGBAf32", TYPE_4F32)

# Planar color
FMT_RGB8p = ImageFormat._define(40, "RGB8p", U8, U8, U8)
FMT_BGR8p = ImageFormat._define(41, "BGR8p", U8, U8, U8)
FMT_RGBf32p = ImageFormat._define(42, "RGBf32p", F32, F32, F32)

# YUV 4:2:0
FMT_NV12 = ImageFormat._define(60, "NV12", U8, PlaneFormat(TYPE_2U8, 2, 2))
FMT_NV21 = ImageFormat._define(61, "NV21", U8, PlaneFormat(TYPE_2U8, 2, 2))
FMT_I420 = ImageFormat._define(
    62, "I420", U8, PlaneFormat(U8, 2, 2), PlaneFormat(U8, 2, 2)
)
