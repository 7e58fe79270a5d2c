"""
Mapping between cvcore `DataType` and numpy dtypes.

A `DataType` may pack several channels per element; numpy has no such
notion, so only the channel type maps onto a numpy dtype and the channel
count becomes a trailing array axis.
"""

from __future__ import annotations

from typing import Dict, Tuple

import numpy as np

from ...domain._data_type import DataKind, DataType
from ...domain._errors import ConfigurationError
from ...domain._image_format import (
    FMT_F32,
    FMT_F64,
    FMT_RGB8,
    FMT_RGBA8,
    FMT_RGBAf32,
    FMT_RGBf32,
    FMT_S8,
    FMT_S16,
    FMT_S32,
    FMT_U8,
    FMT_U16,
    ImageFormat,
)

_TO_NUMPY: Dict[tuple[DataKind, int], np.dtype] = {
    (DataKind.UNSIGNED, 8): np.dtype(np.uint8),
    (DataKind.UNSIGNED, 16): np.dtype(np.uint16),
    (DataKind.UNSIGNED, 32): np.dtype(np.uint32),
    (DataKind.UNSIGNED, 64): np.dtype(np.uint64),
    (DataKind.SIGNED, 8): np.dtype(np.int8),
    (DataKind.SIGNED, 16): np.dtype(np.int16),
    (DataKind.SIGNED, 32): np.dtype(np.int32),
    (DataKind.SIGNED, 64): np.dtype(np.int64),
    (DataKind.FLOAT, 16): np.dtype(np.float16),
    (DataKind.FLOAT, 32): np.dtype(np.float32),
    (DataKind.FLOAT, 64): np.dtype(np.float64),
}

_KIND_CODES = {"u": DataKind.UNSIGNED, "i": DataKind.SIGNED, "f": DataKind.FLOAT}


def to_numpy_dtype(dtype: DataType) -> np.dtype:
    """
    Return the numpy dtype of one channel of `dtype`.

    Raises
    ------
    ConfigurationError
        If numpy has no matching scalar type.
    """
    try:
        return _TO_NUMPY[(dtype.kind, dtype.bits_per_channel)]
    except KeyError:
        raise ConfigurationError("dtype", f"{dtype} has no numpy equivalent") from None


def from_numpy_dtype(dtype, channels: int = 1) -> DataType:
    """
    Return the `DataType` for numpy `dtype` with `channels` channels.

    Raises
    ------
    ConfigurationError
        If the numpy dtype is not a supported scalar type.
    """
    np_dtype = np.dtype(dtype)
    kind = _KIND_CODES.get(np_dtype.kind)
    bits = np_dtype.itemsize * 8
    if kind is None or not np_dtype.isnative or (kind, bits) not in _TO_NUMPY:
        raise ConfigurationError("dtype", f"unsupported numpy dtype {np_dtype}")
    return DataType(kind, bits, channels)


# Single-plane formats chosen for a pixel type when no format is given.
_INFERRED_FORMATS: Tuple[ImageFormat, ...] = (
    FMT_U8,
    FMT_S8,
    FMT_U16,
    FMT_S16,
    FMT_S32,
    FMT_F32,
    FMT_F64,
    FMT_RGB8,
    FMT_RGBA8,
    FMT_RGBf32,
    FMT_RGBAf32,
)


def infer_image_format(pixel: DataType) -> ImageFormat:
    """
    Return the single-plane format whose pixel type is `pixel`.

    Raises
    ------
    ConfigurationError
        If no known format has that pixel type.
    """
    for fmt in _INFERRED_FORMATS:
        if fmt.plane_dtype(0) == pixel:
            return fmt
    raise ConfigurationError("format", f"no image format for pixel type {pixel}")
