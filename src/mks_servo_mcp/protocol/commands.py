"""Command byte constants and command frame builders.

The first data byte of every frame selects the command. Replies from the
servo echo the same byte, so one table serves both directions.
"""

from __future__ import annotations

from enum import IntEnum

from ..utils.checksum import checksum
from .framing import MAX_CAN_ID

MAX_SPEED_RPM = 3000
MAX_POSITION_PULSES = 0x7FFFFF  # 24-bit signed max


class Command(IntEnum):
    """Command byte identifiers."""

    READ_ENCODER = 0x30
    READ_CUMULATIVE_ENCODER = 0x31
    READ_SPEED = 0x32
    READ_PULSES = 0x33
    READ_IO_STATUS = 0x34
    READ_RAW_ENCODER = 0x35
    READ_ANGLE_ERROR = 0x39
    READ_ENABLE_STATUS = 0x3A
    READ_HOME_STATUS = 0x3B
    READ_STALL_STATUS = 0x3E
    READ_VERSION = 0x40
    CALIBRATE = 0x80
    SET_WORK_MODE = 0x82
    SET_CURRENT = 0x83
    SET_SUBDIVISIONS = 0x84
    SET_EN_LEVEL = 0x85
    SET_DIRECTION = 0x86
    SET_CAN_ID = 0x8B
    READ_MOTOR_STATUS = 0xF1
    SET_ENABLE = 0xF3
    POSITION_RELATIVE_COORD = 0xF4
    POSITION_ABSOLUTE_COORD = 0xF5
    SPEED_MODE = 0xF6
    EMERGENCY_STOP = 0xF7
    POSITION_RELATIVE_PULSE = 0xFD
    POSITION_ABSOLUTE_PULSE = 0xFE


# Queries that take no arguments and are answered with telemetry
READ_COMMANDS: frozenset[Command] = frozenset(
    {
        Command.READ_ENCODER,
        Command.READ_CUMULATIVE_ENCODER,
        Command.READ_SPEED,
        Command.READ_PULSES,
        Command.READ_IO_STATUS,
        Command.READ_RAW_ENCODER,
        Command.READ_ANGLE_ERROR,
        Command.READ_ENABLE_STATUS,
        Command.READ_HOME_STATUS,
        Command.READ_STALL_STATUS,
        Command.READ_VERSION,
        Command.READ_MOTOR_STATUS,
    }
)


def encode_int24(value: int) -> int:
    """Clamp ``value`` to +/-0x7FFFFF and return its 24-bit two's complement."""
    value = max(-MAX_POSITION_PULSES, min(MAX_POSITION_PULSES, value))
    if value < 0:
        return (1 << 24) + value
    return value


def _check_can_id(can_id: int) -> None:
    if not 0 <= can_id <= MAX_CAN_ID:
        raise ValueError(f"CAN ID must be 0-0x{MAX_CAN_ID:X}, got 0x{can_id:X}")


def _check_motion(speed: int, accel: int) -> None:
    if not 0 <= speed <= MAX_SPEED_RPM:
        raise ValueError(f"Speed must be 0-{MAX_SPEED_RPM} RPM, got {speed}")
    if not 0 <= accel <= 255:
        raise ValueError(f"Acceleration must be 0-255, got {accel}")


def build_command(can_id: int, command: int, payload: bytes = b"") -> bytes:
    """Build the CAN data field for a command, checksum included.

    Args:
        can_id: Target motor identifier (11-bit).
        command: Command byte.
        payload: Command-specific argument bytes.
    """
    _check_can_id(can_id)
    body = bytes([command]) + payload
    if len(body) + 1 > 8:
        raise ValueError(f"Frame of {len(body) + 1} bytes exceeds CAN limit of 8")
    return body + bytes([checksum(can_id, body)])


def build_read(can_id: int, command: Command) -> bytes:
    """Build a parameterless read query (0x30-0x40, 0xF1)."""
    command = Command(command)
    if command not in READ_COMMANDS:
        raise ValueError(f"{command.name} is not a read command")
    return build_command(can_id, command)


def build_position(
    can_id: int,
    speed: int,
    accel: int,
    position: int,
    absolute: bool = True,
) -> bytes:
    """Build a coordinate position command (0xF5 absolute, 0xF4 relative).

    Args:
        can_id: Target motor identifier.
        speed: Velocity in RPM (0-3000).
        accel: Acceleration scale (0-255).
        position: Target coordinate in encoder counts, clamped to 24 bits.
        absolute: ``False`` for a move relative to the current position.
    """
    _check_motion(speed, accel)
    command = (
        Command.POSITION_ABSOLUTE_COORD if absolute else Command.POSITION_RELATIVE_COORD
    )
    axis = encode_int24(position)
    payload = speed.to_bytes(2, "big") + bytes([accel]) + axis.to_bytes(3, "big")
    return build_command(can_id, command, payload)


def build_speed(can_id: int, speed: int, accel: int, reverse: bool = False) -> bytes:
    """Build a speed mode command (0xF6).

    The direction flag is bit 7 of the first argument byte, which also
    carries the high nibble of the 12-bit speed.
    """
    _check_motion(speed, accel)
    direction = 0x80 if reverse else 0x00
    payload = bytes([direction | ((speed >> 8) & 0x0F), speed & 0xFF, accel])
    return build_command(can_id, Command.SPEED_MODE, payload)


def build_set_enable(can_id: int, enabled: bool) -> bytes:
    """Build a command to enable or disable the driver output."""
    return build_command(can_id, Command.SET_ENABLE, bytes([1 if enabled else 0]))


def build_emergency_stop(can_id: int) -> bytes:
    """Build an emergency stop command (0xF7)."""
    return build_command(can_id, Command.EMERGENCY_STOP)
