"""
Process-wide configuration.

Settings are read once from the environment and cached for the lifetime of
the process:

- ``CVCORE_DEFAULT_BASE_ALIGN`` : base alignment used when a
  `MemAlignment.base` is 0 (default 256, the CUDA allocation granularity).
- ``CVCORE_DEFAULT_ROW_ALIGN`` : row pitch alignment used when a
  `MemAlignment.row` is 0 (default 32).
- ``CVCORE_CUDART_PATH`` : explicit path of the CUDA runtime shared library.
- ``CVCORE_VERSION_API`` : API version selection, as "major.minor" or an
  integer version.

The module also holds the fatal-error handler, invoked when a wrap cleanup
callback fails during teardown. The default handler logs the failure and
aborts the process.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import logging
import os
import threading
from typing import Callable, Optional

from ..domain._alignment import is_power_of_two
from ..domain._errors import ConfigurationError, FatalCleanupError
from ..domain._version import select_api_version

logger = logging.getLogger(__name__)

DEFAULT_BASE_ALIGN = 256
DEFAULT_ROW_ALIGN = 32


@dataclass(frozen=True)
class Config:
    """
    Immutable snapshot of the environment-derived settings.

    Attributes
    ----------
    base_alignment : int
        Default base alignment in bytes (power of two).
    row_alignment : int
        Default row pitch alignment in bytes (power of two).
    cudart_path : str | None
        Explicit CUDA runtime library path, if configured.
    version_api : int
        Selected API version.
    """

    base_alignment: int = DEFAULT_BASE_ALIGN
    row_alignment: int = DEFAULT_ROW_ALIGN
    cudart_path: Optional[str] = None
    version_api: int = select_api_version(None)


def _read_alignment(var: str, default: int) -> int:
    raw = os.environ.get(var, "")
    if not raw:
        return default
    try:
        value = int(raw, 0)
    except ValueError:
        raise ConfigurationError(var, f"expected an integer, got {raw!r}") from None
    if not is_power_of_two(value):
        raise ConfigurationError(var, f"{value} is not a power of two")
    return value


def load_config() -> Config:
    """
    Build a `Config` from the current environment.

    Raises
    ------
    ConfigurationError
        If an alignment variable is not a power of two.
    UnsupportedVersionError
        If ``CVCORE_VERSION_API`` selects an unsupported API version.
    """
    cfg = Config(
        base_alignment=_read_alignment("CVCORE_DEFAULT_BASE_ALIGN", DEFAULT_BASE_ALIGN),
        row_alignment=_read_alignment("CVCORE_DEFAULT_ROW_ALIGN", DEFAULT_ROW_ALIGN),
        cudart_path=os.environ.get("CVCORE_CUDART_PATH") or None,
        version_api=select_api_version(os.environ.get("CVCORE_VERSION_API") or None),
    )
    logger.debug("Loaded configuration: %r", cfg)
    return cfg


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Return the cached process-wide configuration."""
    return load_config()


def reload_config() -> Config:
    """Discard the cached configuration and read the environment again."""
    get_config.cache_clear()
    return get_config()


# ---------------------------------------------------------------------
# Fatal error handling
# ---------------------------------------------------------------------

FatalHandler = Callable[[FatalCleanupError], None]


def _abort_handler(err: FatalCleanupError) -> None:
    logging.shutdown()
    os.abort()


_fatal_lock = threading.Lock()
_fatal_handler: FatalHandler = _abort_handler


def set_fatal_error_handler(handler: Optional[FatalHandler]) -> FatalHandler:
    """
    Install the handler for unrecoverable teardown errors.

    Parameters
    ----------
    handler : Callable[[FatalCleanupError], None] | None
        New handler. None restores the default (log and abort).

    Returns
    -------
    Callable[[FatalCleanupError], None]
        The previously installed handler.
    """
    global _fatal_handler
    with _fatal_lock:
        previous = _fatal_handler
        _fatal_handler = handler if handler is not None else _abort_handler
    return previous


def fatal_error(err: FatalCleanupError) -> None:
    """Report an unrecoverable error to the installed handler."""
    logger.critical("Fatal teardown error: %s", err)
    with _fatal_lock:
        handler = _fatal_handler
    handler(err)
