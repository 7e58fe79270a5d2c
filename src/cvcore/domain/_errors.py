"""
Error taxonomy for cvcore.

This module defines the exceptions raised by the resource and data-descriptor
layer. Each error derives from the closest builtin exception so callers may
catch either the precise cvcore type or the generic builtin category.

Categories
----------
- Configuration errors: invalid shapes, alignments, layouts or unsupported
  dtype/format combinations. Detected before any state is created.
- Resource exhaustion: an allocator could not satisfy a request.
- Capacity errors: inserting into a full image batch.
- Handle errors: using a released handle or a closed entity.
- Device errors: a memory kind or device the current runtime cannot serve.
- Version errors: API version selection outside the supported range.
- Fatal cleanup errors: a wrap cleanup callback failed during teardown.

Incompatible data-view requests are deliberately *not* errors: `export_data`
returns None so callers can try several view types in turn.
"""

from __future__ import annotations

from typing import Optional


class ConfigurationError(ValueError):
    """
    Raised when a shape, alignment, layout, dtype or format is invalid.

    Attributes
    ----------
    what : str
        Short name of the offending parameter (e.g. "shape", "alignment").
    detail : str
        Human-readable explanation of the problem.
    """

    def __init__(self, what: str, detail: str) -> None:
        """
        Initialize the ConfigurationError.

        Parameters
        ----------
        what : str
            Name of the parameter that failed validation.
        detail : str
            Explanation of why the parameter is invalid.
        """
        super().__init__(f"Invalid {what}: {detail}")
        self.what = what
        self.detail = detail


class ResourceExhaustedError(MemoryError):
    """
    Raised when an allocator fails to provide the requested memory.

    Attributes
    ----------
    kind : str
        Memory kind that was requested ("host", "host_pinned", "cuda").
    nbytes : int
        Requested allocation size in bytes.
    alignment : int
        Requested base alignment in bytes.
    """

    def __init__(
        self, kind: str, nbytes: int, alignment: int, reason: Optional[str] = None
    ) -> None:
        msg = f"Failed to allocate {nbytes} bytes of {kind} memory (alignment={alignment})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.kind = kind
        self.nbytes = nbytes
        self.alignment = alignment


class CapacityExceededError(RuntimeError):
    """
    Raised when pushing images into an ImageBatchVarShape would exceed its
    fixed capacity. The batch is left unchanged.
    """

    def __init__(self, capacity: int, current: int, requested: int) -> None:
        super().__init__(
            f"Image batch capacity exceeded: capacity={capacity}, "
            f"current={current}, requested={requested}"
        )
        self.capacity = capacity
        self.current = current
        self.requested = requested


class InvalidHandleError(LookupError):
    """
    Raised when a handle does not refer to a live entity.

    This covers handles that were never issued, handles whose entity has
    been closed, and method calls on a closed entity.
    """

    def __init__(self, handle: int, reason: str = "no live entity") -> None:
        super().__init__(f"Invalid handle {handle:#x}: {reason}")
        self.handle = handle
        self.reason = reason


class DeviceNotSupportedError(RuntimeError):
    """
    Raised when an operation requires a memory kind or device that the
    current runtime cannot serve (for example CUDA memory on a machine where
    the CUDA runtime library cannot be loaded).

    Attributes
    ----------
    op : str
        The name of the operation that was attempted (e.g. "allocate").
    device : str
        String representation of the device or memory kind.
    """

    def __init__(self, op: str, device: str, reason: Optional[str] = None) -> None:
        msg = f"{op} is not available for device '{device}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg + ".")
        self.op = op
        self.device = device


class UnsupportedVersionError(ValueError):
    """
    Raised when the selected API version lies outside the range supported by
    this library build.
    """

    def __init__(self, requested: int, lowest: int, highest: int) -> None:
        super().__init__(
            f"Selected API version {requested} not supported "
            f"(supported range: {lowest}..{highest})"
        )
        self.requested = requested
        self.lowest = lowest
        self.highest = highest


class FatalCleanupError(RuntimeError):
    """
    Wraps an exception raised by a wrap cleanup callback during teardown.

    There is no safe point to unwind to while an entity is being destroyed,
    so this error is handed to the configured fatal-error handler instead of
    being raised to the caller.
    """

    def __init__(self, handle: int, cause: BaseException) -> None:
        super().__init__(
            f"Cleanup callback of handle {handle:#x} failed: {cause!r}"
        )
        self.handle = handle
        self.cause = cause
