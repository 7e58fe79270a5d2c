"""
Library versioning.

Versions are encoded as a single comparable integer::

    major * 1000000 + minor * 10000 + patch * 100 + tweak

so that newer versions always compare greater than older ones. Callers may
select which API version they target; a selection must lie between the
first release of the current major version and the current major.minor, and
anything outside that range is rejected with `UnsupportedVersionError`.
"""

from __future__ import annotations

from typing import Optional, Union

from ._errors import ConfigurationError, UnsupportedVersionError


def make_version(major: int, minor: int = 0, patch: int = 0, tweak: int = 0) -> int:
    """
    Build a numeric version identifier from its components.

    Parameters
    ----------
    major : int
        Major version, incremented on incompatible ABI changes.
    minor : int, optional
        Minor version (0..99).
    patch : int, optional
        Patch version (0..99).
    tweak : int, optional
        Tweak version (0..99).

    Returns
    -------
    int
        Numeric version.
    """
    for name, v in (("minor", minor), ("patch", patch), ("tweak", tweak)):
        if not (0 <= v <= 99):
            raise ConfigurationError("version", f"{name} component must be in [0, 99], got {v}")
    if major < 0:
        raise ConfigurationError("version", f"major component must be >= 0, got {major}")
    return major * 1000000 + minor * 10000 + patch * 100 + tweak


def split_version(version: int) -> tuple[int, int, int, int]:
    """Return the (major, minor, patch, tweak) components of `version`."""
    return (
        version // 1000000,
        version // 10000 % 100,
        version // 100 % 100,
        version % 100,
    )


VERSION_MAJOR = 0
VERSION_MINOR = 3
VERSION_PATCH = 0
VERSION_TWEAK = 0
VERSION_SUFFIX = "beta"

VERSION = make_version(VERSION_MAJOR, VERSION_MINOR, VERSION_PATCH, VERSION_TWEAK)
VERSION_STRING = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}" + (
    f"-{VERSION_SUFFIX}" if VERSION_SUFFIX else ""
)

LOWEST_API = make_version(VERSION_MAJOR)
HIGHEST_API = make_version(VERSION_MAJOR, VERSION_MINOR)


def parse_api_version(value: Union[str, int]) -> int:
    """
    Parse an API version selection.

    Accepts a numeric version (``3000``), a numeric string (``"3000"``) or a
    dotted ``"major.minor"`` string (``"0.3"``).

    Raises
    ------
    ConfigurationError
        If the value cannot be parsed.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    parts = text.split(".")
    if len(parts) == 2 and all(p.isdigit() for p in parts):
        return make_version(int(parts[0]), int(parts[1]))
    raise ConfigurationError("version", f"cannot parse API version {value!r}")


def select_api_version(requested: Optional[Union[str, int]] = None) -> int:
    """
    Validate and return the API version to use.

    Parameters
    ----------
    requested : str | int | None
        Requested API version. None selects the highest supported API.

    Returns
    -------
    int
        The selected API version.

    Raises
    ------
    UnsupportedVersionError
        If the requested version lies outside the supported range.
    """
    if requested is None:
        return HIGHEST_API
    version = parse_api_version(requested)
    if version < LOWEST_API or version > HIGHEST_API:
        raise UnsupportedVersionError(version, LOWEST_API, HIGHEST_API)
    return version


def api_is(api: int, major: int, minor: int) -> bool:
    return make_version(major, minor) == api


def api_at_least(api: int, major: int, minor: int) -> bool:
    return make_version(major, minor) <= api


def api_at_most(api: int, major: int, minor: int) -> bool:
    return make_version(major, minor) >= api


def api_in_range(
    api: int, min_major: int, min_minor: int, max_major: int, max_minor: int
) -> bool:
    return api_at_least(api, min_major, min_minor) and api_at_most(
        api, max_major, max_minor
    )


def check_compatible(version: int) -> bool:
    """
    Return True if a component built against `version` can use this library.

    Compatibility requires the same major version and a minor version not
    newer than this library's.
    """
    major, minor, _, _ = split_version(version)
    if major != VERSION_MAJOR:
        return False
    return minor <= VERSION_MINOR


def get_version() -> int:
    """Return the version of this library build."""
    return VERSION
