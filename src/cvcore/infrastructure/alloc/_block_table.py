"""
Shared bookkeeping for the built-in memory resources.

Each built-in resource remembers every block it handed out, keyed by the
aligned address returned to the caller. The table is what lets
``deallocate`` find the underlying raw allocation and verify that the caller
passes back the same size and alignment it requested.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, NamedTuple

from ...domain._alignment import is_power_of_two
from ...domain._errors import ConfigurationError


class _Block(NamedTuple):
    raw: Any
    size: int
    alignment: int


def check_request(size: int, alignment: int) -> None:
    """
    Validate an allocation request.

    Raises
    ------
    ConfigurationError
        If `size` is not a positive int or `alignment` is not a power of two.
    """
    if not isinstance(size, int) or size <= 0:
        raise ConfigurationError("size", f"must be a positive int, got {size!r}")
    if not isinstance(alignment, int) or not is_power_of_two(alignment):
        raise ConfigurationError("alignment", f"{alignment!r} is not a power of two")


class BlockTable:
    """Thread-safe map from aligned addresses to their raw allocations."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._blocks: Dict[int, _Block] = {}

    def add(self, ptr: int, raw: Any, size: int, alignment: int) -> None:
        with self._lock:
            self._blocks[ptr] = _Block(raw, size, alignment)

    def pop(self, ptr: int, size: int, alignment: int) -> Any:
        """
        Remove and return the raw allocation behind `ptr`.

        Raises
        ------
        ValueError
            If `ptr` is unknown or `size`/`alignment` differ from the request
            that produced it. The block stays registered in that case.
        """
        with self._lock:
            block = self._blocks.get(ptr)
            if block is None:
                raise ValueError(f"Address {ptr:#x} was not allocated by this resource")
            if (block.size, block.alignment) != (size, alignment):
                raise ValueError(
                    f"Deallocation of {ptr:#x} with size={size}, alignment={alignment} "
                    f"does not match allocation (size={block.size}, "
                    f"alignment={block.alignment})"
                )
            del self._blocks[ptr]
        return block.raw

    def __len__(self) -> int:
        with self._lock:
            return len(self._blocks)

    def __contains__(self, ptr: int) -> bool:
        with self._lock:
            return ptr in self._blocks
