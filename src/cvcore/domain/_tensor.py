"""
Entity interface definitions.

This module defines the domain-level interfaces of the handle-bearing
entities (tensors, images and image batches) using structural typing. The
interfaces capture the minimal surface that operators and other
collaborators are allowed to rely on: an opaque handle plus `export_data`.
Collaborators never reach into entity internals; they request a data
descriptor and derive any access view they need from it.

Notes
-----
Entities come in a small closed set of variants (owning, wrapping external
memory, wrapping another entity). The variants differ only in how their
memory is released, so the protocols below do not expose the mode beyond a
read-only `mode` property.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol, Type, TypeVar, runtime_checkable

from ._data_type import DataType
from ._image_format import ImageFormat, Size2D
from ._tensor_layout import TensorLayout
from ._tensor_shape import TensorShape

D = TypeVar("D")


class EntityMode(Enum):
    """
    Lifecycle mode of an entity, fixed at construction.

    Attributes
    ----------
    OWNING : EntityMode
        Memory was obtained from an allocator and is returned to it when the
        entity is closed.
    WRAPPING : EntityMode
        Memory is supplied by the caller; closing the entity only invokes the
        optional cleanup callback.
    """

    OWNING = "owning"
    WRAPPING = "wrapping"


@runtime_checkable
class IEntity(Protocol):
    """
    Common entity contract.

    Notes
    -----
    - `handle` is an opaque pointer-sized integer, valid exactly as long as
      the entity is open and never reused for another entity.
    - `export_data(view_cls)` returns the entity's descriptor when it is an
      instance of `view_cls`, and None otherwise. Incompatibility is not an
      error.
    """

    @property
    def handle(self) -> int:
        """
        Return the opaque handle of this entity.

        Returns
        -------
        int
            Process-unique handle value.
        """
        ...

    @property
    def mode(self) -> EntityMode:
        """
        Return whether this entity owns or wraps its memory.

        Returns
        -------
        EntityMode
            Lifecycle mode fixed at construction.
        """
        ...

    def export_data(self, view_cls: Optional[Type[D]] = None) -> Optional[D]:
        """
        Export the entity's buffer descriptor.

        Parameters
        ----------
        view_cls : type, optional
            Descriptor class the caller can handle. None accepts any
            descriptor.

        Returns
        -------
        Optional[D]
            The descriptor, or None if it is not an instance of `view_cls`.
        """
        ...

    def close(self) -> None:
        """
        Tear the entity down: release owned memory or invoke the wrap cleanup
        callback, and invalidate the handle. Idempotent.
        """
        ...


@runtime_checkable
class ITensor(IEntity, Protocol):
    """
    Tensor interface.

    An `ITensor` is an n-dimensional strided buffer with a shape, an element
    type and an optional axis layout.
    """

    @property
    def shape(self) -> TensorShape:
        """
        Return the shape (extents and layout) of the tensor.
        """
        ...

    @property
    def dtype(self) -> DataType:
        """
        Return the element type of the tensor.
        """
        ...

    @property
    def layout(self) -> TensorLayout:
        """
        Return the axis layout of the tensor.
        """
        ...

    @property
    def rank(self) -> int: ...


@runtime_checkable
class IImage(IEntity, Protocol):
    """
    Image interface: a 2D, possibly multi-plane, pitch-linear buffer.
    """

    @property
    def size(self) -> Size2D: ...

    @property
    def format(self) -> ImageFormat: ...


@runtime_checkable
class IImageBatch(IEntity, Protocol):
    """
    Image batch interface: a bounded, ordered collection of images.
    """

    @property
    def capacity(self) -> int: ...

    @property
    def num_images(self) -> int: ...
