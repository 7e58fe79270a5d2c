"""
infrastructure/native_cuda/python/_native_loader.py

Cached loader for the CUDA runtime shared library.

The CUDA runtime (``libcudart`` on Linux, ``cudart64_*.dll`` on Windows) backs
the pinned-host and CUDA resource allocators and the device/host copies used
by the interop helpers. It is located once per process and the resulting
`ctypes.CDLL` handle is reused everywhere.

Resolution order
----------------
1. ``CVCORE_CUDART_PATH`` (explicit path, must exist).
2. ``ctypes.util.find_library("cudart")``.
3. Well-known library names for the current platform.
4. On Windows, ``<CUDA_PATH>/bin`` is registered as a DLL directory first.
"""

from __future__ import annotations

import ctypes
import ctypes.util
from functools import lru_cache
import logging
import os
import sys

from ..._config import get_config

logger = logging.getLogger(__name__)

_LINUX_NAMES = (
    "libcudart.so",
    "libcudart.so.12",
    "libcudart.so.11.0",
)
_WINDOWS_NAMES = (
    "cudart64_12.dll",
    "cudart64_110.dll",
)


def _add_dll_dir(dir_path: str) -> None:
    """
    Register `dir_path` for DLL dependency resolution (Windows only).

    Falls back to prepending the directory to PATH when
    `os.add_dll_directory` fails with WinError 206 (path too long).
    """
    if not dir_path or not os.path.isdir(dir_path):
        return
    try:
        os.add_dll_directory(dir_path)
    except OSError as e:
        if getattr(e, "winerror", None) != 206:
            raise
        cur = os.environ.get("PATH", "")
        parts = cur.split(os.pathsep) if cur else []
        if dir_path not in parts:
            os.environ["PATH"] = dir_path + os.pathsep + cur if cur else dir_path


def _candidates() -> list[str]:
    names: list[str] = []
    found = ctypes.util.find_library("cudart")
    if found:
        names.append(found)
    names.extend(_WINDOWS_NAMES if sys.platform == "win32" else _LINUX_NAMES)
    return names


@lru_cache(maxsize=1)
def load_cudart() -> ctypes.CDLL:
    """
    Load and cache the CUDA runtime library.

    Returns
    -------
    ctypes.CDLL
        Loaded CUDA runtime handle.

    Raises
    ------
    FileNotFoundError
        If ``CVCORE_CUDART_PATH`` points to a missing file.
    OSError
        If no candidate library could be loaded.
    """
    explicit = get_config().cudart_path
    if explicit:
        if not os.path.exists(explicit):
            raise FileNotFoundError(f"CUDA runtime library not found at: {explicit}")
        logger.debug("Loading CUDA runtime from %s", explicit)
        return ctypes.CDLL(explicit)

    if sys.platform == "win32":
        cuda_path = os.environ.get("CUDA_PATH", "")
        if cuda_path:
            _add_dll_dir(os.path.join(cuda_path, "bin"))

    errors = []
    for name in _candidates():
        try:
            lib = ctypes.CDLL(name)
        except OSError as e:
            errors.append(f"{name}: {e}")
            continue
        logger.debug("Loaded CUDA runtime %s", name)
        return lib

    raise OSError("Unable to load the CUDA runtime library; tried " + "; ".join(errors))
