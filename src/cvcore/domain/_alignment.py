"""
Memory alignment descriptors.

`MemAlignment` carries the two alignment constraints that shape every buffer
layout in cvcore:

- ``base``: alignment of the first byte of a buffer (and of every plane
  inside an image buffer).
- ``row``: alignment of the row pitch, i.e. the byte stride between two
  consecutive rows of an image or image-like tensor.

A value of zero means "use the library default"; defaults are resolved by the
infrastructure layer from configuration, keeping this module free of any
environment access.
"""

from __future__ import annotations

from ._errors import ConfigurationError


def is_power_of_two(value: int) -> bool:
    """Return True if `value` is a positive power of two."""
    return value > 0 and (value & (value - 1)) == 0


def align_up(value: int, alignment: int) -> int:
    """
    Round `value` up to the next multiple of `alignment`.

    Parameters
    ----------
    value : int
        Non-negative quantity to round (bytes or an address).
    alignment : int
        Power-of-two alignment in bytes.

    Returns
    -------
    int
        Smallest multiple of `alignment` that is >= `value`.
    """
    if not is_power_of_two(alignment):
        raise ConfigurationError(
            "alignment", f"{alignment} is not a power of two"
        )
    return (value + alignment - 1) & ~(alignment - 1)


class MemAlignment:
    """
    Immutable pair of base-address and row-pitch alignment requirements.

    Parameters
    ----------
    base : int, optional
        Base address alignment in bytes. 0 selects the library default.
    row : int, optional
        Row pitch alignment in bytes. 0 selects the library default.

    Raises
    ------
    ConfigurationError
        If either value is negative, or non-zero and not a power of two.
    """

    __slots__ = ("_base", "_row")

    def __init__(self, base: int = 0, row: int = 0) -> None:
        for name, v in (("base", base), ("row", row)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise ConfigurationError(
                    "alignment", f"{name} alignment must be an int, got {v!r}"
                )
            if v != 0 and not is_power_of_two(v):
                raise ConfigurationError(
                    "alignment",
                    f"{name} alignment {v} must be 0 or a power of two",
                )
        self._base = base
        self._row = row

    @property
    def base(self) -> int:
        """Requested base alignment (0 means default)."""
        return self._base

    @property
    def row(self) -> int:
        """Requested row alignment (0 means default)."""
        return self._row

    def resolved(self, default_base: int, default_row: int) -> "MemAlignment":
        """
        Return a copy with zero entries replaced by the given defaults.

        Parameters
        ----------
        default_base : int
            Power-of-two base alignment substituted when `base` is 0.
        default_row : int
            Power-of-two row alignment substituted when `row` is 0.

        Returns
        -------
        MemAlignment
            Alignment with both fields non-zero.
        """
        return MemAlignment(self._base or default_base, self._row or default_row)

    def with_base(self, base: int) -> "MemAlignment":
        return MemAlignment(base, self._row)

    def with_row(self, row: int) -> "MemAlignment":
        return MemAlignment(self._base, row)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MemAlignment):
            return NotImplemented
        return (self._base, self._row) == (other._base, other._row)

    def __hash__(self) -> int:
        return hash((MemAlignment, self._base, self._row))

    def __repr__(self) -> str:
        return f"MemAlignment(base={self._base}, row={self._row})"
