"""Fixed-width big-endian integer readers.

All multi-byte fields on the MKS servo bus are big-endian. Widths that have
no native representation (24 and 48 bit) are sign-extended by hand::

    value = unsigned(data[offset : offset + n])
    if value & (1 << (bits - 1)):
        value -= 1 << bits

Python integers are unbounded, so 48-bit values are exact.
"""

from __future__ import annotations

from typing import Sequence


class FieldRangeError(ValueError):
    """Raised when a field would read past the end of the payload."""

    def __init__(self, offset: int, width: int, length: int) -> None:
        super().__init__(
            f"{width * 8}-bit field at offset {offset} exceeds "
            f"payload of {length} bytes"
        )
        self.offset = offset
        self.width = width
        self.length = length


def _read_unsigned(data: Sequence[int], offset: int, width: int) -> int:
    if offset < 0 or offset + width > len(data):
        raise FieldRangeError(offset, width, len(data))
    return int.from_bytes(bytes(data[offset : offset + width]), "big")


def _sign_extend(value: int, bits: int) -> int:
    if value & (1 << (bits - 1)):
        value -= 1 << bits
    return value


def read_uint8(data: Sequence[int], offset: int) -> int:
    return _read_unsigned(data, offset, 1)


def read_uint16(data: Sequence[int], offset: int) -> int:
    return _read_unsigned(data, offset, 2)


def read_uint24(data: Sequence[int], offset: int) -> int:
    return _read_unsigned(data, offset, 3)


def read_int16(data: Sequence[int], offset: int) -> int:
    return _sign_extend(_read_unsigned(data, offset, 2), 16)


def read_int24(data: Sequence[int], offset: int) -> int:
    return _sign_extend(_read_unsigned(data, offset, 3), 24)


def read_int32(data: Sequence[int], offset: int) -> int:
    return _sign_extend(_read_unsigned(data, offset, 4), 32)


def read_int48(data: Sequence[int], offset: int) -> int:
    """Read a signed 48-bit value (cumulative and raw encoder counts)."""
    return _sign_extend(_read_unsigned(data, offset, 6), 48)


def high_nibble(value: int) -> int:
    return (value >> 4) & 0x0F


def low_nibble(value: int) -> int:
    return value & 0x0F
