"""Decode MKS servo frames into one-line human-readable descriptions.

Each command byte maps to a ``CommandLayout``. Motion commands carry two
shapes under the same byte, told apart only by frame length::

    0xF5  len >= 8   command echo   F5 [speed:2] [acc:1] [coord:3] [crc]
    0xF5  len 3..7   acknowledgement F5 [status:1] [crc]

The telemetry shape is tried first; anything shorter than its minimum
falls back to the acknowledgement shape, and anything shorter than that
decodes to the bare label.

Output line::

    Motor 0x1: ENCODER - Carry: 0, Value: 16384 (0x4000), Angle: 360.00° [CRC: 0xAA]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Sequence

from ..models.status import (
    StatusTable,
    HOME_STATUS,
    CALIBRATION_STATUS,
    WORK_MODES,
    EN_LEVELS,
    MOTOR_STATUS,
    HARDWARE_VERSIONS,
    MOTION_RESPONSE,
    SPEED_RESPONSE,
)
from .commands import Command
from .fields import (
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
from .framing import RawFrame

logger = logging.getLogger(__name__)

MIN_ADDRESS = 0x01
MAX_ADDRESS = 0xFF
MIN_FRAME_LENGTH = 2  # command + checksum

# Encoder counts per revolution. Position feedback and angle error use
# different resolutions and are not interchangeable.
COUNTS_PER_REV = 16384.0
ERROR_COUNTS_PER_REV = 51200.0

DIRECTION_BIT = 0x8000
SPEED_MASK = 0x0FFF

Reader = Callable[[Sequence[int], int], int]
Formatter = Callable[[int], "str | None"]


@dataclass(frozen=True)
class FieldSpec:
    """How to pull one value out of a payload and render it.

    ``name`` of ``None`` renders the text alone (``LABEL: text``).
    A formatter returning ``None`` drops the field from the line.
    """

    name: str | None
    offset: int
    reader: Reader
    fmt: Formatter = str
    min_length: int = 0
    sep: str = ", "


@dataclass(frozen=True)
class TelemetryVariant:
    """Full-length command echo or telemetry reply."""

    min_length: int
    fields: tuple[FieldSpec, ...]


@dataclass(frozen=True)
class ResponseVariant:
    """Short acknowledgement carrying a single status code at byte 1."""

    table: StatusTable
    min_length: int = 3

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        return (FieldSpec(None, 1, read_uint8, self.table.label),)


@dataclass(frozen=True)
class CommandLayout:
    """Decoding rule for one command byte."""

    label: str
    telemetry: TelemetryVariant | None = None
    response: ResponseVariant | None = None

    def select(self, length: int) -> tuple[str, tuple[FieldSpec, ...]]:
        """Pick the label and field specs for a frame of ``length`` bytes."""
        if self.telemetry is not None and length >= self.telemetry.min_length:
            return self.label, self.telemetry.fields
        if self.response is not None and length >= self.response.min_length:
            return f"{self.label} Response", self.response.fields
        return self.label, ()


@dataclass(frozen=True)
class DecodedField:
    """A single extracted value and its rendered text."""

    name: str | None
    value: int
    text: str
    sep: str = ", "


@dataclass(frozen=True)
class DecodedFrame:
    """Result of decoding one frame."""

    address: int
    command: int
    label: str
    crc: int
    fields: tuple[DecodedField, ...] = field(default_factory=tuple)

    def describe(self) -> str:
        """Render the label and fields without the address or checksum."""
        parts = [self.label]
        for i, f in enumerate(self.fields):
            if i == 0:
                parts.append(f": {f.text}" if f.name is None else f" - {f.name}: {f.text}")
            else:
                parts.append(f.sep + (f.text if f.name is None else f"{f.name}: {f.text}"))
        return "".join(parts)

    def render(self) -> str:
        return f"Motor 0x{self.address:X}: {self.describe()} [CRC: 0x{self.crc:X}]"

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "command": f"0x{self.command:02X}",
            "label": self.label,
            "fields": [
                {"name": f.name, "value": f.value, "text": f.text}
                for f in self.fields
            ],
            "crc": f"0x{self.crc:02X}",
            "line": self.render(),
        }


# ─── FIELD HELPERS ───────────────────────────────────────────────────

def _high_nibble_at(data: Sequence[int], offset: int) -> int:
    return high_nibble(read_uint8(data, offset))


def _low_nibble_at(data: Sequence[int], offset: int) -> int:
    return low_nibble(read_uint8(data, offset))


def _flag(on: str, off: str) -> Formatter:
    return lambda v: on if v else off


def _bit(mask: int) -> Formatter:
    return lambda v: "1" if v & mask else "0"


def _fixed(x: float, places: int) -> str:
    """Fixed-point text with ties rounded away from zero."""
    return str(Decimal(x).quantize(Decimal(10) ** -places, rounding=ROUND_HALF_UP))


def _signed_rpm(v: int) -> str:
    text = f"{v} RPM"
    if v > 0:
        text += " (CCW)"
    elif v < 0:
        text += " (CW)"
    return text


def _coord(v: int) -> str:
    return f"{v} ({_fixed(v / COUNTS_PER_REV, 3)} rot)"


def _direction_word(v: int) -> str:
    return "CW" if v & DIRECTION_BIT else "CCW"


def _speed_word(v: int) -> str:
    return f"{v & SPEED_MASK} RPM"


def _status(table: StatusTable, offset: int = 1, name: str | None = None) -> FieldSpec:
    return FieldSpec(name, offset, read_uint8, table.label)


def _rpm(v: int) -> str:
    return f"{v} RPM"


# ─── LAYOUT TABLE ────────────────────────────────────────────────────

def _coord_move(label: str) -> CommandLayout:
    return CommandLayout(
        label,
        telemetry=TelemetryVariant(
            8,
            (
                FieldSpec("Speed", 1, read_uint16, _rpm),
                FieldSpec("Acc", 3, read_uint8),
                FieldSpec("Coord", 4, read_int24, _coord),
            ),
        ),
        response=ResponseVariant(MOTION_RESPONSE),
    )


COMMAND_LAYOUTS: dict[int, CommandLayout] = {
    Command.READ_ENCODER: CommandLayout(
        "ENCODER",
        TelemetryVariant(
            8,
            (
                FieldSpec("Carry", 1, read_int32),
                FieldSpec("Value", 5, read_uint16, lambda v: f"{v} (0x{v:x})"),
                FieldSpec(
                    "Angle", 5, read_uint16,
                    lambda v: f"{_fixed(v * 360.0 / COUNTS_PER_REV, 2)}°",
                ),
            ),
        ),
    ),
    Command.READ_CUMULATIVE_ENCODER: CommandLayout(
        "CUMULATIVE ENCODER",
        TelemetryVariant(
            8,
            (
                FieldSpec(None, 1, read_int48),
                FieldSpec("Rotations", 1, read_int48, lambda v: _fixed(v / COUNTS_PER_REV, 3)),
            ),
        ),
    ),
    Command.READ_SPEED: CommandLayout(
        "SPEED", TelemetryVariant(4, (FieldSpec(None, 1, read_int16, _signed_rpm),))
    ),
    Command.READ_PULSES: CommandLayout(
        "PULSE COUNT", TelemetryVariant(6, (FieldSpec(None, 1, read_int32),))
    ),
    Command.READ_IO_STATUS: CommandLayout(
        "IO STATUS",
        TelemetryVariant(
            3,
            (
                FieldSpec("IN_1", 1, read_uint8, _bit(0x01)),
                FieldSpec("IN_2", 1, read_uint8, _bit(0x02)),
                FieldSpec("OUT_1", 1, read_uint8, _bit(0x10)),
                FieldSpec("OUT_2", 1, read_uint8, _bit(0x20)),
            ),
        ),
    ),
    Command.READ_RAW_ENCODER: CommandLayout(
        "RAW ENCODER", TelemetryVariant(8, (FieldSpec(None, 1, read_int48),))
    ),
    Command.READ_ANGLE_ERROR: CommandLayout(
        "ANGLE ERROR",
        TelemetryVariant(
            6,
            (
                FieldSpec(
                    None, 1, read_int32,
                    lambda v: f"{v} ({_fixed(v * 360.0 / ERROR_COUNTS_PER_REV, 2)}°)",
                ),
            ),
        ),
    ),
    Command.READ_ENABLE_STATUS: CommandLayout(
        "ENABLE STATUS",
        TelemetryVariant(3, (FieldSpec(None, 1, read_uint8, _flag("ENABLED", "DISABLED")),)),
    ),
    Command.READ_HOME_STATUS: CommandLayout(
        "HOME STATUS",
        TelemetryVariant(
            4,
            (
                _status(HOME_STATUS, 1, "Single Turn"),
                _status(HOME_STATUS, 2, "Home"),
            ),
        ),
    ),
    Command.READ_STALL_STATUS: CommandLayout(
        "STALL STATUS",
        TelemetryVariant(3, (FieldSpec(None, 1, read_uint8, _flag("STALLED", "OK")),)),
    ),
    Command.READ_VERSION: CommandLayout(
        "VERSION",
        TelemetryVariant(
            5,
            (
                FieldSpec("HW", 1, _low_nibble_at, HARDWARE_VERSIONS.label),
                FieldSpec("FW", 2, read_uint24, lambda v: f"0x{v:x}"),
                FieldSpec("Calibrated", 1, _high_nibble_at, _flag("YES", "NO")),
            ),
        ),
    ),
    Command.CALIBRATE: CommandLayout(
        "CALIBRATION", TelemetryVariant(3, (_status(CALIBRATION_STATUS),))
    ),
    Command.SET_WORK_MODE: CommandLayout(
        "SET MODE", TelemetryVariant(3, (_status(WORK_MODES),))
    ),
    Command.SET_CURRENT: CommandLayout(
        "SET CURRENT",
        TelemetryVariant(
            4,
            (
                FieldSpec(None, 1, read_uint16, lambda v: f"{v} mA"),
                FieldSpec(
                    None, 3, read_uint8,
                    lambda v: "(not saved)" if v == 0 else None,
                    min_length=5, sep=" ",
                ),
            ),
        ),
    ),
    Command.SET_SUBDIVISIONS: CommandLayout(
        "SET SUBDIVISIONS", TelemetryVariant(3, (FieldSpec(None, 1, read_uint8),))
    ),
    Command.SET_EN_LEVEL: CommandLayout(
        "SET EN LEVEL", TelemetryVariant(3, (_status(EN_LEVELS),))
    ),
    Command.SET_DIRECTION: CommandLayout(
        "SET DIRECTION",
        TelemetryVariant(3, (FieldSpec(None, 1, read_uint8, _flag("CCW", "CW")),)),
    ),
    Command.SET_CAN_ID: CommandLayout(
        "SET CAN ID",
        TelemetryVariant(4, (FieldSpec(None, 1, read_uint16, lambda v: f"0x{v:X}"),)),
    ),
    Command.READ_MOTOR_STATUS: CommandLayout(
        "MOTOR STATUS", TelemetryVariant(3, (_status(MOTOR_STATUS),))
    ),
    Command.SET_ENABLE: CommandLayout(
        "SET ENABLE",
        TelemetryVariant(3, (FieldSpec(None, 1, read_uint8, _flag("ENABLED", "DISABLED")),)),
    ),
    Command.POSITION_RELATIVE_COORD: _coord_move("POS REL COORD"),
    Command.POSITION_ABSOLUTE_COORD: _coord_move("POS ABS COORD"),
    Command.SPEED_MODE: CommandLayout(
        "SPEED MODE",
        telemetry=TelemetryVariant(
            5,
            (
                FieldSpec("Dir", 1, read_uint16, _direction_word),
                FieldSpec("Speed", 1, read_uint16, _speed_word),
                FieldSpec("Acc", 3, read_uint8),
                FieldSpec("Runtime", 4, read_uint24, lambda v: f"{v * 10} ms", min_length=8),
            ),
        ),
        response=ResponseVariant(SPEED_RESPONSE),
    ),
    Command.EMERGENCY_STOP: CommandLayout(
        "EMERGENCY STOP",
        TelemetryVariant(3, (FieldSpec(None, 1, read_uint8, _flag("Success", "Failed")),)),
    ),
    Command.POSITION_RELATIVE_PULSE: CommandLayout(
        "POS REL PULSE",
        telemetry=TelemetryVariant(
            8,
            (
                FieldSpec("Dir", 1, read_uint16, _direction_word),
                FieldSpec("Speed", 1, read_uint16, _speed_word),
                FieldSpec("Acc", 3, read_uint8),
                FieldSpec("Pulses", 4, read_uint24),
            ),
        ),
        response=ResponseVariant(MOTION_RESPONSE),
    ),
    Command.POSITION_ABSOLUTE_PULSE: CommandLayout(
        "POS ABS PULSE",
        telemetry=TelemetryVariant(
            8,
            (
                FieldSpec("Speed", 1, read_uint16, _rpm),
                FieldSpec("Acc", 3, read_uint8),
                FieldSpec("Pulses", 4, read_int24),
            ),
        ),
        response=ResponseVariant(MOTION_RESPONSE),
    ),
}


# ─── DECODING ────────────────────────────────────────────────────────

def _extract(specs: tuple[FieldSpec, ...], data: bytes) -> tuple[DecodedField, ...]:
    fields = []
    for field_spec in specs:
        if len(data) < field_spec.min_length:
            continue
        value = field_spec.reader(data, field_spec.offset)
        text = field_spec.fmt(value)
        if text is None:
            continue
        fields.append(DecodedField(field_spec.name, value, text, field_spec.sep))
    return tuple(fields)


def decode_fields(
    address: int, command: int, payload: Sequence[int]
) -> DecodedFrame | None:
    """Decode a frame into structured fields.

    Args:
        address: Motor address (CAN identifier). Only 1-255 are servos.
        command: Command byte, normally ``payload[0]``.
        payload: Full CAN data field, checksum last.

    Returns:
        A ``DecodedFrame``, or ``None`` if the frame is filtered out
        (address outside 1-255 or fewer than 2 bytes) or the payload holds values
        that are not bytes.
    """
    if not MIN_ADDRESS <= address <= MAX_ADDRESS:
        return None

    try:
        data = bytes(payload)
    except (TypeError, ValueError) as e:
        logger.debug("Motor 0x%X command 0x%02X: bad payload: %s", address, command, e)
        return None
    if len(data) < MIN_FRAME_LENGTH:
        return None

    layout = COMMAND_LAYOUTS.get(command)
    if layout is None:
        label, specs = f"CMD 0x{command:X}", ()
    else:
        label, specs = layout.select(len(data))

    try:
        fields = _extract(specs, data)
    except FieldRangeError as e:
        logger.debug("Motor 0x%X command 0x%02X: %s", address, command, e)
        fields = ()

    return DecodedFrame(
        address=address,
        command=command,
        label=label,
        crc=data[-1],
        fields=fields,
    )


def decode(address: int, command: int, payload: Sequence[int]) -> str | None:
    """Decode a frame into a single display line, or ``None`` if filtered."""
    decoded = decode_fields(address, command, payload)
    if decoded is None:
        return None
    return decoded.render()


def decode_frame(frame: RawFrame) -> str | None:
    """Decode a ``RawFrame`` received from the bus."""
    if frame.command is None:
        return None
    return decode(frame.address, frame.command, frame.payload)


def layout_summary() -> list[dict[str, Any]]:
    """Describe every known command layout (byte, label, accepted lengths)."""
    summary = []
    for command, layout in sorted(COMMAND_LAYOUTS.items()):
        entry: dict[str, Any] = {
            "command": f"0x{command:02X}",
            "name": Command(command).name,
            "label": layout.label,
        }
        if layout.telemetry is not None:
            entry["min_length"] = layout.telemetry.min_length
        if layout.response is not None:
            entry["response_min_length"] = layout.response.min_length
            entry["response_codes"] = list(layout.response.table.labels)
        summary.append(entry)
    return summary
