"""
Variable-shape image batch.

An `ImageBatchVarShape` is a bounded, ordered list of images that may differ
in size and format. Besides the Python-side list, the batch owns a packed
array of `CImageBufferStrided` entries (the *descriptor list*) in the batch's
memory kind, which native operators consume directly. Entry ``i`` always
describes image ``i``.

The batch keeps a reference to every image it contains, so images stay alive
while they are part of a batch. Closing an image explicitly still releases its
memory; the batch entry then describes freed memory, and `export_data` raises
`InvalidHandleError` until the image is popped or the batch is cleared.
"""

from __future__ import annotations

import ctypes
import logging
from typing import Iterable, Iterator, List, Optional, Union

from ...domain._alignment import MemAlignment
from ...domain._allocator import IAllocator, MemoryKind
from ...domain._data import (
    ImageBatchVarShapeDataStrided,
    ImageBatchVarShapeDataStridedCuda,
    ImageBatchVarShapeDataStridedHost,
    ImageDataStrided,
)
from ...domain._errors import (
    CapacityExceededError,
    ConfigurationError,
    InvalidHandleError,
)
from ...domain._image_format import ImageFormat, Size2D
from ...domain._requirements import ImageBatchVarShapeRequirements
from .._entity import _Entity
from .._memops import copy_from_host
from .._requirements_calc import calc_image_batch_requirements
from .._storage import _OwnedStorage
from ..alloc._allocator import default_allocator
from ..c_abi._structs import CImageBufferStrided, image_buffer_to_c
from ._image import _ImageEntity

logger = logging.getLogger(__name__)

_ENTRY_BYTES = ctypes.sizeof(CImageBufferStrided)


class ImageBatchVarShape(_Entity):
    """
    Bounded batch of images of varying size and format.

    Parameters
    ----------
    capacity : int
        Maximum number of images (> 0). Fixed for the batch's lifetime.
    alignment : MemAlignment, optional
        Base alignment of the descriptor list.
    allocator : IAllocator, optional
        Allocator providing the descriptor list; defaults to
        `default_allocator()`.
    memory : MemoryKind, optional
        Kind of memory of the descriptor list. Every pushed image must live in
        memory of the same kind. Defaults to CUDA.

    Raises
    ------
    ConfigurationError
        If the capacity is not positive.
    ResourceExhaustedError
        If the allocator cannot provide the descriptor list.
    """

    def __init__(
        self,
        capacity: int,
        *,
        alignment: Optional[MemAlignment] = None,
        allocator: Optional[IAllocator] = None,
        memory: MemoryKind = MemoryKind.CUDA,
    ) -> None:
        if not isinstance(memory, MemoryKind):
            raise ConfigurationError("memory", f"expected MemoryKind, got {memory!r}")
        reqs = calc_image_batch_requirements(capacity, alignment)
        resource = (allocator if allocator is not None else default_allocator()).get(memory)
        ptr, _ = resource.allocate(reqs.descriptor_bytes, reqs.alignment)
        storage = _OwnedStorage(resource, ptr, reqs.descriptor_bytes, reqs.alignment)
        try:
            super().__init__(storage, memory)
        except Exception:
            storage.release(0)
            raise
        self._requirements = reqs
        self._descriptor_ptr = ptr
        self._images: List[_ImageEntity] = []

    @staticmethod
    def calc_requirements(
        capacity: int, alignment: Optional[MemAlignment] = None
    ) -> ImageBatchVarShapeRequirements:
        return calc_image_batch_requirements(capacity, alignment)

    @property
    def capacity(self) -> int:
        return self._requirements.capacity

    @property
    def num_images(self) -> int:
        return len(self._images)

    @property
    def unique_format(self) -> Optional[ImageFormat]:
        """Format shared by every image, or None if they differ or the batch is empty."""
        formats = {img.format for img in self._images}
        return formats.pop() if len(formats) == 1 else None

    @property
    def max_size(self) -> Size2D:
        """Largest width and largest height over all images; (0, 0) when empty."""
        if not self._images:
            return Size2D(0, 0)
        return Size2D(
            max(img.width for img in self._images),
            max(img.height for img in self._images),
        )

    def _validate(self, image: object) -> CImageBufferStrided:
        if not isinstance(image, _ImageEntity):
            raise ConfigurationError("image", f"expected an image, got {type(image).__name__}")
        if image.memory is not self.memory:
            raise ConfigurationError(
                "image",
                f"image in {image.memory.value} memory cannot join a "
                f"{self.memory.value} batch",
            )
        return image_buffer_to_c(image.export_data(ImageDataStrided))

    def push_back(self, images: Union[_ImageEntity, Iterable[_ImageEntity]]) -> None:
        """
        Append one image or every image of an iterable.

        All images are validated and the capacity is checked before anything
        is appended, so a failing call leaves the batch unchanged.

        Raises
        ------
        CapacityExceededError
            If the images do not fit in the remaining capacity.
        ConfigurationError
            If `images` is neither an image nor an iterable, or an entry is
            not an image in the batch memory kind with a stable format code.
        InvalidHandleError
            If the batch or one of the images is closed.
        """
        self._check_open()
        if isinstance(images, _ImageEntity):
            batch = [images]
        else:
            try:
                batch = list(images)
            except TypeError:
                raise ConfigurationError(
                    "images", f"expected an image or an iterable of images, got {images!r}"
                ) from None
        entries = [self._validate(img) for img in batch]
        current = len(self._images)
        if current + len(batch) > self.capacity:
            raise CapacityExceededError(self.capacity, current, len(batch))
        for i, entry in enumerate(entries):
            dst = self._descriptor_ptr + (current + i) * _ENTRY_BYTES
            copy_from_host(self.memory, dst, ctypes.addressof(entry), _ENTRY_BYTES)
        self._images.extend(batch)
        logger.debug(
            "Batch %#x: pushed %d image(s), now %d/%d",
            self.handle,
            len(batch),
            len(self._images),
            self.capacity,
        )

    def pop_back(self, count: int = 1) -> None:
        """
        Remove the last `count` images.

        Raises
        ------
        ConfigurationError
            If `count` is negative or larger than the number of images.
        """
        self._check_open()
        if not isinstance(count, int) or count < 0 or count > len(self._images):
            raise ConfigurationError(
                "count", f"cannot pop {count!r} of {len(self._images)} image(s)"
            )
        if count:
            del self._images[-count:]

    def clear(self) -> None:
        """Remove every image. The capacity is unaffected."""
        self._check_open()
        self._images.clear()

    def __len__(self) -> int:
        return len(self._images)

    def __iter__(self) -> Iterator[_ImageEntity]:
        return iter(list(self._images))

    def __getitem__(self, idx: int) -> _ImageEntity:
        return self._images[idx]

    def _export(self) -> ImageBatchVarShapeDataStrided:
        for i, img in enumerate(self._images):
            if img.closed:
                raise InvalidHandleError(
                    img.handle, f"image {i} of batch {self.handle:#x} was closed while in the batch"
                )
        cls = (
            ImageBatchVarShapeDataStridedHost
            if self.memory.is_host_accessible
            else ImageBatchVarShapeDataStridedCuda
        )
        return cls(
            num_images=len(self._images),
            images=tuple(img.export_data(ImageDataStrided) for img in self._images),
            unique_format=self.unique_format,
            max_size=self.max_size,
            descriptor_ptr=self._descriptor_ptr,
        )

    def close(self) -> None:
        super().close()
        self._images.clear()

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"handle={self.handle:#x}"
        return (
            f"ImageBatchVarShape(num_images={len(self._images)}, capacity={self.capacity}, "
            f"memory={self.memory.value}, {state})"
        )
