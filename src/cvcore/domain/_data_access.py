"""
Data-access views over buffer descriptors.

Access views derive convenient quantities (sample/row/column/plane counts and
strides, addresses of samples, rows and planes) from a descriptor without
touching or copying memory. Every quantity is computed once in the
constructor; the views are immutable afterwards.

Each view class exposes a ``create(data)`` factory that returns None when the
descriptor is not compatible with the access pattern, e.g. an image access
requested for a tensor whose layout has no height/width axes. Callers are
expected to check for None.

Views hold no ownership. A view is only meaningful while the entity that
exported the descriptor is alive.
"""

from __future__ import annotations

from typing import Optional

from ._data import ImageDataStrided, ImagePlaneStrided, TensorDataStrided
from ._data_type import DataType
from ._image_format import ImageFormat, Size2D
from ._tensor_layout import TensorLayout


class TensorDataAccessStrided:
    """
    Generic sample-wise access to a strided tensor.

    Attributes
    ----------
    num_samples : int
        Extent of the ``N`` axis, or 1 when the layout has no ``N`` axis.
    sample_stride : int
        Byte stride of the ``N`` axis, or 0 when absent.
    """

    __slots__ = ("_data", "_num_samples", "_sample_stride")

    def __init__(self, data: TensorDataStrided) -> None:
        if not isinstance(data, TensorDataStrided):
            raise TypeError(f"expected TensorDataStrided, got {type(data).__name__}")
        self._data = data
        n = data.layout.find("N")
        self._num_samples = data.shape[n] if n >= 0 else 1
        self._sample_stride = data.strides[n] if n >= 0 else 0

    @classmethod
    def is_compatible(cls, data: object) -> bool:
        return isinstance(data, TensorDataStrided)

    @classmethod
    def create(cls, data: object) -> Optional["TensorDataAccessStrided"]:
        """Return an access view over `data`, or None if incompatible."""
        if not cls.is_compatible(data):
            return None
        return cls(data)

    @property
    def data(self) -> TensorDataStrided:
        return self._data

    @property
    def base_ptr(self) -> int:
        return self._data.base_ptr

    @property
    def dtype(self) -> DataType:
        return self._data.dtype

    @property
    def layout(self) -> TensorLayout:
        return self._data.layout

    @property
    def num_samples(self) -> int:
        return self._num_samples

    @property
    def sample_stride(self) -> int:
        return self._sample_stride

    def sample_ptr(self, sample: int) -> int:
        """Address of the first byte of `sample`."""
        if not (0 <= sample < self._num_samples):
            raise IndexError(f"sample {sample} out of range [0, {self._num_samples})")
        return self._data.base_ptr + sample * self._sample_stride


class TensorDataAccessStridedImage(TensorDataAccessStrided):
    """
    Image-like access to a strided tensor.

    Requires a layout with both ``H`` and ``W`` axes (``N``, ``C`` and ``D``
    are optional). When the layout has no ``C`` axis the channels are the
    ones packed into the element type.
    """

    __slots__ = (
        "_num_rows",
        "_num_cols",
        "_row_stride",
        "_col_stride",
        "_num_channels",
        "_chan_stride",
    )

    def __init__(self, data: TensorDataStrided) -> None:
        super().__init__(data)
        if not TensorDataAccessStridedImage.is_compatible(data):
            raise TypeError(f"layout '{data.layout}' has no height/width axes")

        lay = data.layout
        h, w, c = lay.find("H"), lay.find("W"), lay.find("C")
        self._num_rows = data.shape[h]
        self._num_cols = data.shape[w]
        self._row_stride = data.strides[h]
        self._col_stride = data.strides[w]
        if c >= 0:
            self._num_channels = data.shape[c]
            self._chan_stride = data.strides[c]
        else:
            self._num_channels = data.dtype.num_channels
            self._chan_stride = data.dtype.channel_type.stride_bytes

    @classmethod
    def is_compatible(cls, data: object) -> bool:
        if not isinstance(data, TensorDataStrided):
            return False
        lay = data.layout
        return lay.find("H") >= 0 and lay.find("W") >= 0

    @property
    def num_rows(self) -> int:
        return self._num_rows

    @property
    def num_cols(self) -> int:
        return self._num_cols

    @property
    def row_stride(self) -> int:
        return self._row_stride

    @property
    def col_stride(self) -> int:
        return self._col_stride

    @property
    def num_channels(self) -> int:
        return self._num_channels

    @property
    def chan_stride(self) -> int:
        return self._chan_stride

    @property
    def size(self) -> Size2D:
        return Size2D(self._num_cols, self._num_rows)

    def row_ptr(self, sample: int, row: int) -> int:
        """Address of the first byte of `row` within `sample`."""
        if not (0 <= row < self._num_rows):
            raise IndexError(f"row {row} out of range [0, {self._num_rows})")
        return self.sample_ptr(sample) + row * self._row_stride


class TensorDataAccessStridedImagePlanar(TensorDataAccessStridedImage):
    """
    Planar image access: the channel axis is outer to the rows (``CHW`` /
    ``NCHW``), so every channel is a separate pitch-linear plane.
    """

    __slots__ = ("_num_planes", "_plane_stride")

    def __init__(self, data: TensorDataStrided) -> None:
        super().__init__(data)
        if not self.is_compatible(data):
            raise TypeError(f"layout '{data.layout}' is not planar")
        c = data.layout.find("C")
        self._num_planes = data.shape[c]
        self._plane_stride = data.strides[c]

    @classmethod
    def is_compatible(cls, data: object) -> bool:
        if not super().is_compatible(data):
            return False
        lay = data.layout
        c = lay.find("C")
        return 0 <= c < lay.find("H")

    @property
    def num_planes(self) -> int:
        return self._num_planes

    @property
    def plane_stride(self) -> int:
        return self._plane_stride

    def plane_ptr(self, sample: int, plane: int) -> int:
        """Address of the first byte of `plane` within `sample`."""
        if not (0 <= plane < self._num_planes):
            raise IndexError(f"plane {plane} out of range [0, {self._num_planes})")
        return self.sample_ptr(sample) + plane * self._plane_stride


class ImageDataAccess:
    """
    Plane-wise access to a pitch-linear image descriptor.
    """

    __slots__ = ("_data",)

    def __init__(self, data: ImageDataStrided) -> None:
        if not isinstance(data, ImageDataStrided):
            raise TypeError(f"expected ImageDataStrided, got {type(data).__name__}")
        self._data = data

    @classmethod
    def create(cls, data: object) -> Optional["ImageDataAccess"]:
        if not isinstance(data, ImageDataStrided):
            return None
        return cls(data)

    @property
    def format(self) -> ImageFormat:
        return self._data.format

    @property
    def size(self) -> Size2D:
        return self._data.size

    @property
    def num_planes(self) -> int:
        return self._data.num_planes

    @property
    def base_ptr(self) -> int:
        return self._data.planes[0].base_ptr

    def plane(self, idx: int) -> ImagePlaneStrided:
        return self._data.planes[idx]

    def row_stride(self, plane: int = 0) -> int:
        return self._data.planes[plane].row_stride

    def row_ptr(self, plane: int, row: int) -> int:
        p = self._data.planes[plane]
        if not (0 <= row < p.height):
            raise IndexError(f"row {row} out of range [0, {p.height})")
        return p.base_ptr + row * p.row_stride
