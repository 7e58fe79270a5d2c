"""
Tensor layouts: per-axis semantic labels.

A `TensorLayout` is an ordered string of single-letter axis labels, one per
tensor dimension, outermost first. Labels give meaning to the dimensions so
that data-access helpers can locate rows, columns, channels and samples
without guessing.

Recognized labels
-----------------
- ``N`` : batch / sample index
- ``C`` : channel
- ``H`` : height (rows)
- ``W`` : width (columns)
- ``D`` : depth
- ``F`` : frames

The empty layout (`TensorLayout.NONE`) means the dimensions carry no tags.
"""

from __future__ import annotations

from ._errors import ConfigurationError

LABELS = frozenset("NCHWDF")


class TensorLayout:
    """
    Immutable ordered sequence of axis labels.

    Parameters
    ----------
    labels : str, optional
        Axis labels, outermost first (e.g. "NHWC"). The empty string means no
        layout.

    Raises
    ------
    ConfigurationError
        If a label is unknown or appears more than once.
    """

    __slots__ = ("_labels",)

    NONE: "TensorLayout"
    NC: "TensorLayout"
    NW: "TensorLayout"
    NWC: "TensorLayout"
    NCW: "TensorLayout"
    HW: "TensorLayout"
    NHW: "TensorLayout"
    HWC: "TensorLayout"
    CHW: "TensorLayout"
    NHWC: "TensorLayout"
    NCHW: "TensorLayout"

    def __init__(self, labels: str = "") -> None:
        if isinstance(labels, TensorLayout):
            labels = labels._labels
        if not isinstance(labels, str):
            raise ConfigurationError("layout", f"expected str, got {labels!r}")
        unknown = [c for c in labels if c not in LABELS]
        if unknown:
            raise ConfigurationError(
                "layout", f"unknown axis label(s) {unknown} in '{labels}'"
            )
        if len(set(labels)) != len(labels):
            raise ConfigurationError(
                "layout", f"axis labels must be unique, got '{labels}'"
            )
        self._labels = labels

    @property
    def rank(self) -> int:
        return len(self._labels)

    def find(self, label: str) -> int:
        """Return the index of `label`, or -1 when the layout lacks it."""
        return self._labels.find(label)

    def __contains__(self, label: str) -> bool:
        return self.find(label) >= 0

    def startswith(self, prefix: "TensorLayout | str") -> bool:
        return self._labels.startswith(str(prefix))

    def endswith(self, suffix: "TensorLayout | str") -> bool:
        return self._labels.endswith(str(suffix))

    def sub(self, start: int, stop: int | None = None) -> "TensorLayout":
        """Return the layout of dimensions ``start`` up to ``stop``."""
        return TensorLayout(self._labels[start:stop])

    def __len__(self) -> int:
        return len(self._labels)

    def __getitem__(self, idx: int) -> str:
        return self._labels[idx]

    def __iter__(self):
        return iter(self._labels)

    def __bool__(self) -> bool:
        return bool(self._labels)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TensorLayout):
            return NotImplemented
        return self._labels == other._labels

    def __hash__(self) -> int:
        return hash((TensorLayout, self._labels))

    def __str__(self) -> str:
        return self._labels

    def __repr__(self) -> str:
        return f"TensorLayout('{self._labels}')"


TensorLayout.NONE = TensorLayout("")
TensorLayout.NC = TensorLayout("NC")
TensorLayout.NW = TensorLayout("NW")
TensorLayout.NWC = TensorLayout("NWC")
TensorLayout.NCW = TensorLayout("NCW")
TensorLayout.HW = TensorLayout("HW")
TensorLayout.NHW = TensorLayout("NHW")
TensorLayout.HWC = TensorLayout("HWC")
TensorLayout.CHW = TensorLayout("CHW")
TensorLayout.NHWC = TensorLayout("NHWC")
TensorLayout.NCHW = TensorLayout("NCHW")
