"""
Pixel/element data types.

A `DataType` describes one tensor element or one image pixel of a single
plane: the numeric kind of its channels, the bit width of each channel and
the number of channels packed together. The element size derived from it
drives every stride computation in the library.

Examples
--------
- ``U8``   : one unsigned 8-bit channel (1 byte)
- ``S32``  : one signed 32-bit channel (4 bytes)
- ``TYPE_4F32`` : four packed float32 channels (16 bytes)

The domain layer does not depend on NumPy; conversion to and from NumPy
dtypes lives in the infrastructure interop module.
"""

from __future__ import annotations

from enum import Enum

from ._errors import ConfigurationError


class DataKind(Enum):
    """
    Numeric kind of the channels of a data type.

    Attributes
    ----------
    UNSIGNED : DataKind
        Unsigned integer channels.
    SIGNED : DataKind
        Signed integer channels.
    FLOAT : DataKind
        IEEE-754 floating point channels.
    """

    UNSIGNED = 0
    SIGNED = 1
    FLOAT = 2


_KIND_PREFIX = {DataKind.UNSIGNED: "U", DataKind.SIGNED: "S", DataKind.FLOAT: "F"}

_VALID_BITS = {
    DataKind.UNSIGNED: (8, 16, 32, 64),
    DataKind.SIGNED: (8, 16, 32, 64),
    DataKind.FLOAT: (16, 32, 64),
}

MAX_CHANNELS = 4


class DataType:
    """
    Immutable element type: channel kind, bits per channel and channel count.

    Parameters
    ----------
    kind : DataKind
        Numeric kind of each channel.
    bits : int
        Bit width of each channel.
    channels : int, optional
        Number of packed channels (1..4). Defaults to 1.

    Raises
    ------
    ConfigurationError
        If the kind/bit-width combination is unsupported or the channel count
        is out of range.
    """

    __slots__ = ("_kind", "_bits", "_channels")

    def __init__(self, kind: DataKind, bits: int, channels: int = 1) -> None:
        if not isinstance(kind, DataKind):
            raise ConfigurationError("dtype", f"unknown data kind {kind!r}")
        if bits not in _VALID_BITS[kind]:
            raise ConfigurationError(
                "dtype", f"{kind.name.lower()} channels cannot be {bits} bits wide"
            )
        if not (1 <= int(channels) <= MAX_CHANNELS):
            raise ConfigurationError(
                "dtype", f"channel count must be in [1, {MAX_CHANNELS}], got {channels}"
            )
        self._kind = kind
        self._bits = int(bits)
        self._channels = int(channels)

    @property
    def kind(self) -> DataKind:
        return self._kind

    @property
    def bits_per_channel(self) -> int:
        return self._bits

    @property
    def num_channels(self) -> int:
        return self._channels

    @property
    def bits_per_pixel(self) -> int:
        """Total bit width of one element (all channels)."""
        return self._bits * self._channels

    @property
    def stride_bytes(self) -> int:
        """Size of one element in bytes."""
        return self.bits_per_pixel // 8

    @property
    def channel_type(self) -> "DataType":
        """Single-channel data type with the same kind and bit width."""
        if self._channels == 1:
            return self
        return DataType(self._kind, self._bits, 1)

    def with_channels(self, channels: int) -> "DataType":
        return DataType(self._kind, self._bits, channels)

    @property
    def name(self) -> str:
        prefix = "" if self._channels == 1 else str(self._channels)
        return f"{prefix}{_KIND_PREFIX[self._kind]}{self._bits}"

    # ------------------------------------------------------------------
    # Packed integer code (C ABI)
    # ------------------------------------------------------------------
    @property
    def code(self) -> int:
        """
        Packed 64-bit identifier of this data type.

        Layout (low to high bits): channels (8 bits), bits per channel
        (8 bits), kind (8 bits). The code is stable across versions and
        reversible through `DataType.from_code`.
        """
        return (self._kind.value << 16) | (self._bits << 8) | self._channels

    @classmethod
    def from_code(cls, code: int) -> "DataType":
        """
        Decode a packed data type identifier.

        Raises
        ------
        ConfigurationError
            If the code does not describe a supported data type.
        """
        code = int(code)
        if code <= 0 or code >> 24:
            raise ConfigurationError("dtype", f"invalid data type code {code:#x}")
        try:
            kind = DataKind((code >> 16) & 0xFF)
        except ValueError as e:
            raise ConfigurationError(
                "dtype", f"invalid data kind in code {code:#x}"
            ) from e
        return cls(kind, (code >> 8) & 0xFF, code & 0xFF)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DataType):
            return NotImplemented
        return (self._kind, self._bits, self._channels) == (
            other._kind,
            other._bits,
            other._channels,
        )

    def __hash__(self) -> int:
        return hash((DataType, self._kind, self._bits, self._channels))

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"DataType('{self.name}')"


U8 = DataType(DataKind.UNSIGNED, 8)
S8 = DataType(DataKind.SIGNED, 8)
U16 = DataType(DataKind.UNSIGNED, 16)
S16 = DataType(DataKind.SIGNED, 16)
U32 = DataType(DataKind.UNSIGNED, 32)
S32 = DataType(DataKind.SIGNED, 32)
U64 = DataType(DataKind.UNSIGNED, 64)
S64 = DataType(DataKind.SIGNED, 64)
F16 = DataType(DataKind.FLOAT, 16)
F32 = DataType(DataKind.FLOAT, 32)
F64 = DataType(DataKind.FLOAT, 64)

TYPE_2U8 = U8.with_channels(2)
TYPE_3U8 = U8.with_channels(3)
TYPE_4U8 = U8.with_channels(4)
TYPE_2S16 = S16.with_channels(2)
TYPE_3U16 = U16.with_channels(3)
TYPE_2F32 = F32.with_channels(2)
TYPE_3F32 = F32.with_channels(3)
TYPE_4F32 = F32.with_channels(4)
