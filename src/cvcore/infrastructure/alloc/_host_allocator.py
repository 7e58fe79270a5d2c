"""
Pageable host memory resource backed by numpy buffers.
"""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from ...domain._alignment import align_up
from ...domain._allocator import MemoryKind
from ...domain._errors import ResourceExhaustedError
from ...domain.device._device import Device
from ._block_table import BlockTable, check_request

logger = logging.getLogger(__name__)


class HostMemAllocator:
    """
    Host memory resource.

    Each block is a `uint8` numpy buffer over-allocated by ``alignment - 1``
    bytes; the returned address is the first aligned byte inside it. The
    buffer is kept alive by the resource until the block is deallocated.

    Notes
    -----
    - Thread-safe: the block table is lock-protected.
    - Memory is not zero-initialized.
    """

    def __init__(self) -> None:
        self._blocks = BlockTable()

    @property
    def kind(self) -> MemoryKind:
        return MemoryKind.HOST

    @property
    def device(self) -> Device:
        return Device.for_memory(MemoryKind.HOST)

    @property
    def num_live_blocks(self) -> int:
        return len(self._blocks)

    def allocate(self, size: int, alignment: int) -> Tuple[int, int]:
        check_request(size, alignment)
        try:
            buf = np.empty(size + alignment - 1, dtype=np.uint8)
        except MemoryError as e:
            raise ResourceExhaustedError("host", size, alignment, str(e) or None) from e
        raw = int(buf.ctypes.data)
        ptr = align_up(raw, alignment)
        self._blocks.add(ptr, buf, size, alignment)
        logger.debug("host: allocated %d bytes (align %d) at %#x", size, alignment, ptr)
        return ptr, raw + buf.nbytes - ptr

    def deallocate(self, ptr: int, size: int, alignment: int) -> None:
        self._blocks.pop(ptr, size, alignment)
        logger.debug("host: deallocated %d bytes at %#x", size, ptr)

    def __repr__(self) -> str:
        return f"HostMemAllocator(live_blocks={len(self._blocks)})"
