"""
Composite allocator handed to entity constructors.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Optional

from ...domain._allocator import IResourceAllocator, MemoryKind
from ...domain._errors import ConfigurationError
from ...domain.device._device import Device
from ._cuda_allocator import CudaMemAllocator, HostPinnedMemAllocator
from ._host_allocator import HostMemAllocator


class Allocator:
    """
    One resource allocator per memory kind.

    Parameters
    ----------
    host, host_pinned, cuda : IResourceAllocator, optional
        Resources to use for each kind. Missing ones are filled with the
        built-in defaults (`HostMemAllocator`, `HostPinnedMemAllocator`,
        `CudaMemAllocator` on ``cuda:0``).

    Raises
    ------
    ConfigurationError
        If a resource does not implement the resource contract, serves a
        different kind than the slot it is given for, or is bound to a
        `Device` that cannot hold that kind.
    """

    def __init__(
        self,
        host: Optional[IResourceAllocator] = None,
        host_pinned: Optional[IResourceAllocator] = None,
        cuda: Optional[IResourceAllocator] = None,
    ) -> None:
        self._resources: Dict[MemoryKind, IResourceAllocator] = {
            MemoryKind.HOST: self._checked(MemoryKind.HOST, host, HostMemAllocator),
            MemoryKind.HOST_PINNED: self._checked(
                MemoryKind.HOST_PINNED, host_pinned, HostPinnedMemAllocator
            ),
            MemoryKind.CUDA: self._checked(MemoryKind.CUDA, cuda, CudaMemAllocator),
        }

    @staticmethod
    def _checked(kind: MemoryKind, resource, default_cls) -> IResourceAllocator:
        if resource is None:
            return default_cls()
        if not isinstance(resource, IResourceAllocator):
            raise ConfigurationError(
                "allocator", f"{resource!r} does not implement allocate/deallocate/kind"
            )
        if resource.kind is not kind:
            raise ConfigurationError(
                "allocator",
                f"resource for {kind.value} memory serves {resource.kind.value} memory",
            )
        device = getattr(resource, "device", None)
        if isinstance(device, Device) and not device.can_hold(kind):
            raise ConfigurationError(
                "allocator", f"resource for {kind.value} memory is bound to {device}"
            )
        return resource

    def get(self, kind: MemoryKind) -> IResourceAllocator:
        if not isinstance(kind, MemoryKind):
            raise ConfigurationError("memory", f"expected MemoryKind, got {kind!r}")
        return self._resources[kind]

    @property
    def host(self) -> IResourceAllocator:
        return self._resources[MemoryKind.HOST]

    @property
    def host_pinned(self) -> IResourceAllocator:
        return self._resources[MemoryKind.HOST_PINNED]

    @property
    def cuda(self) -> IResourceAllocator:
        return self._resources[MemoryKind.CUDA]

    def __repr__(self) -> str:
        return f"Allocator(host={self.host!r}, host_pinned={self.host_pinned!r}, cuda={self.cuda!r})"


@lru_cache(maxsize=1)
def default_allocator() -> Allocator:
    """Return the process-wide allocator made of the built-in resources."""
    return Allocator()
