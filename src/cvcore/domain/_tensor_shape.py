"""
Tensor shapes.

A `TensorShape` couples the per-dimension extents of a tensor with an optional
`TensorLayout` naming each dimension. Shapes are immutable value objects and
can be used as dictionary keys.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Union

from ._errors import ConfigurationError
from ._tensor_layout import TensorLayout

LayoutLike = Union[TensorLayout, str, None]


class TensorShape:
    """
    Immutable tensor extents plus axis layout.

    Parameters
    ----------
    shape : Iterable[int]
        Extents, outermost dimension first. Every extent must be a
        non-negative integer.
    layout : TensorLayout | str | None, optional
        Axis labels. When given (and non-empty), its rank must equal the
        number of extents.

    Raises
    ------
    ConfigurationError
        If an extent is negative or not an integer, or the layout rank does
        not match the number of extents.

    Notes
    -----
    Zero extents are representable (an empty tensor is a valid *shape*);
    requirement computation rejects them separately.
    """

    __slots__ = ("_shape", "_layout")

    def __init__(self, shape: Iterable[int], layout: LayoutLike = None) -> None:
        extents = tuple(shape)
        for e in extents:
            if not isinstance(e, int) or isinstance(e, bool):
                raise ConfigurationError(
                    "shape", f"extents must be integers, got {extents!r}"
                )
            if e < 0:
                raise ConfigurationError(
                    "shape", f"extents must be non-negative, got {extents!r}"
                )

        lay = TensorLayout(layout) if layout is not None else TensorLayout.NONE
        if lay and lay.rank != len(extents):
            raise ConfigurationError(
                "shape",
                f"layout '{lay}' has rank {lay.rank} but shape {extents} has rank {len(extents)}",
            )

        self._shape = extents
        self._layout = lay

    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def layout(self) -> TensorLayout:
        return self._layout

    @property
    def rank(self) -> int:
        return len(self._shape)

    def size(self) -> int:
        """Total number of elements described by this shape."""
        n = 1
        for e in self._shape:
            n *= e
        return n

    def extent(self, label: str, default: int | None = None) -> int | None:
        """Return the extent of the axis tagged `label`, or `default`."""
        idx = self._layout.find(label)
        return self._shape[idx] if idx >= 0 else default

    def __getitem__(self, idx: int) -> int:
        return self._shape[idx]

    def __len__(self) -> int:
        return len(self._shape)

    def __iter__(self) -> Iterator[int]:
        return iter(self._shape)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TensorShape):
            return NotImplemented
        return self._shape == other._shape and self._layout == other._layout

    def __hash__(self) -> int:
        return hash((TensorShape, self._shape, self._layout))

    def __repr__(self) -> str:
        if self._layout:
            return f"TensorShape({self._shape}, layout='{self._layout}')"
        return f"TensorShape({self._shape})"
