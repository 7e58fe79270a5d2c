"""
Processors that own memory.

A `Device` names where a buffer physically lives: the CPU for host and
pinned host memory, or one CUDA GPU for device memory. CUDA resource
allocators are bound to a device so that every allocation and free runs
with that GPU current. Devices are plain values; they hold no runtime state.
"""

from __future__ import annotations

from enum import Enum
import re
from typing import Optional, Tuple, Union

from .._allocator import MemoryKind

_CUDA_RE = re.compile(r"^cuda(?::(\d+))?$")


class DeviceType(Enum):
    CPU = "cpu"
    CUDA = "cuda"


def _parse(device: Union[str, int]) -> Tuple[DeviceType, Optional[int]]:
    # A bare integer is a CUDA ordinal, as with "cuda:<n>".
    if isinstance(device, int) and not isinstance(device, bool):
        if device < 0:
            raise ValueError(f"CUDA device ordinal must be >= 0, got {device}")
        return DeviceType.CUDA, device
    text = str(device).strip().lower()
    if text == "cpu":
        return DeviceType.CPU, None
    m = _CUDA_RE.match(text)
    if m is None:
        raise ValueError(f"Invalid device '{device}'. Expected 'cpu', 'cuda' or 'cuda:<index>'")
    return DeviceType.CUDA, int(m.group(1) or 0)


class Device:
    """
    Memory-owning processor.

    Parameters
    ----------
    device : str | int
        "cpu", "cuda" (GPU 0), "cuda:<index>", or a CUDA ordinal.

    Raises
    ------
    ValueError
        If `device` names neither the CPU nor a CUDA ordinal.
    """

    __slots__ = ("type", "index")

    def __init__(self, device: Union[str, int] = "cpu"):
        self.type, self.index = _parse(device)

    @classmethod
    def for_memory(cls, kind: MemoryKind, index: int = 0) -> "Device":
        """Device that owns memory of `kind`; `index` selects the GPU for CUDA memory."""
        return cls(int(index)) if kind is MemoryKind.CUDA else cls("cpu")

    @property
    def memory_kinds(self) -> Tuple[MemoryKind, ...]:
        if self.type is DeviceType.CUDA:
            return (MemoryKind.CUDA,)
        return (MemoryKind.HOST, MemoryKind.HOST_PINNED)

    def can_hold(self, kind: MemoryKind) -> bool:
        return kind in self.memory_kinds

    def is_cpu(self) -> bool:
        return self.type is DeviceType.CPU

    def is_cuda(self) -> bool:
        return self.type is DeviceType.CUDA

    def __str__(self) -> str:
        return self.type.value if self.is_cpu() else f"cuda:{self.index}"

    def __repr__(self) -> str:
        return f"Device({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Device):
            return self.type is other.type and self.index == other.index
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.type, self.index))
