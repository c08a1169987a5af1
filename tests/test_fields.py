"""Tests for big-endian field extraction."""

import random

import pytest

from mks_servo_mcp.protocol.fields import (
    FieldRangeError,
    high_nibble,
    low_nibble,
    read_int16,
    read_int24,
    read_int32,
    read_int48,
    read_uint8,
    read_uint16,
    read_uint24,
)


def test_read_uint16_big_endian():
    assert read_uint16([0x01, 0x02], 0) == 258


def test_read_uint24_at_offset():
    assert read_uint24(b"\x00\x01\x02\x03", 1) == 0x010203


def test_read_uint8():
    assert read_uint8(b"\x30\xFF", 1) == 0xFF


def test_read_int16_negative():
    assert read_int16([0xFF, 0xFF], 0) == -1
    assert read_int16([0x80, 0x00], 0) == -32768
    assert read_int16([0x7F, 0xFF], 0) == 32767


def test_read_int24_sign_extension():
    assert read_int24(b"\xFF\xFF\xFF", 0) == -1
    assert read_int24(b"\x80\x00\x00", 0) == -(1 << 23)
    assert read_int24(b"\x7F\xFF\xFF", 0) == (1 << 23) - 1
    assert read_int24(b"\xFF\xC0\x00", 0) == -16384


def test_read_int32_sign_extension():
    assert read_int32(b"\xFF\xFF\xFF\xFF", 0) == -1
    assert read_int32(b"\x80\x00\x00\x00", 0) == -(1 << 31)


def test_read_int48_no_precision_loss():
    assert read_int48([0xFF] * 6, 0) == -1
    assert read_int48(b"\x80\x00\x00\x00\x00\x00", 0) == -(1 << 47)
    assert read_int48(b"\x7F\xFF\xFF\xFF\xFF\xFF", 0) == (1 << 47) - 1
    assert read_int48(b"\x00\x00\x00\x00\x00\x01", 0) == 1


@pytest.mark.parametrize(
    "reader, width",
    [(read_int16, 2), (read_int24, 3), (read_int32, 4), (read_int48, 6)],
)
def test_signed_boundaries(reader, width):
    """Zero, max positive, min negative and -1 decode exactly."""
    bits = width * 8
    for value in (0, 1, -1, (1 << (bits - 1)) - 1, -(1 << (bits - 1))):
        data = b"\xAA" + value.to_bytes(width, "big", signed=True)
        assert reader(data, 1) == value


def test_read_past_end_raises():
    with pytest.raises(FieldRangeError):
        read_uint16(b"\x01", 0)
    with pytest.raises(FieldRangeError):
        read_int48(b"\x00" * 6, 1)


def test_negative_offset_raises():
    with pytest.raises(FieldRangeError):
        read_uint8(b"\x01\x02", -1)


def test_field_range_error_is_value_error():
    with pytest.raises(ValueError) as exc_info:
        read_int32(b"\x00\x00", 0)
    assert exc_info.value.offset == 0
    assert exc_info.value.length == 2


def test_nibbles():
    assert high_nibble(0xA5) == 0x0A
    assert low_nibble(0xA5) == 0x05


@pytest.mark.parametrize(
    "reader, data, expected",
    [
        (read_uint16, b"\x00\x00", 0),
        (read_uint16, b"\x7F\xFF", 0x7FFF),
        (read_uint16, b"\x80\x00", 32768),
        (read_uint16, b"\xFF\xFF", 65535),
        (read_uint24, b"\x00\x00\x00", 0),
        (read_uint24, b"\x7F\xFF\xFF", 0x7FFFFF),
        (read_uint24, b"\x80\x00\x00", 0x800000),
        (read_uint24, b"\xFF\xFF\xFF", 0xFFFFFF),
        (read_uint8, b"\x80", 0x80),
        (read_uint8, b"\xFF", 0xFF),
    ],
)
def test_unsigned_boundaries(reader, data, expected):
    """Unsigned readers never sign-extend, at offset 0 or later."""
    assert reader(data, 0) == expected
    assert reader(b"\x55\x55" + data, 2) == expected


@pytest.mark.parametrize(
    "reader, width, signed",
    [
        (read_uint16, 2, False),
        (read_uint24, 3, False),
        (read_int16, 2, True),
        (read_int24, 3, True),
        (read_int32, 4, True),
        (read_int48, 6, True),
    ],
)
@pytest.mark.parametrize("offset", [0, 1, 3])
def test_encoded_values_read_back(reader, width, signed, offset):
    """Values packed big-endian read back exactly across the full range."""
    bits = width * 8
    low = -(1 << (bits - 1)) if signed else 0
    high = (1 << (bits - 1)) - 1 if signed else (1 << bits) - 1
    rng = random.Random(bits * 10 + offset)
    step = (high - low) // 257
    values = list(range(low, high + 1, step)) + [high]
    values += [rng.randint(low, high) for _ in range(200)]
    prefix = bytes(range(0xA0, 0xA0 + offset))
    for value in values:
        data = prefix + value.to_bytes(width, "big", signed=signed) + b"\xEE"
        assert reader(data, offset) == value
