"""MCP server entry point for the MKS SERVO42D/57D CAN decoder.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .monitor import FrameFilter, FrameMonitor
from .protocol.commands import (
    Command,
    build_position,
    build_read,
    build_speed,
)
from .protocol.decoder import decode_fields, layout_summary
from .protocol.framing import RawFrame, verify_checksum
from .transport.capture import CaptureReader
from .utils.checksum import checksum

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "mks-servo",
    instructions="Decode and build MKS SERVO42D/57D CAN bus frames",
)


def _parse_hex(data_hex: str) -> bytes:
    """Parse ``"F1 01 F3"``, ``"f101f3"`` or ``"F1:01:F3"`` into bytes."""
    return bytes.fromhex(data_hex.replace(":", " ").replace(",", " "))


def _frame_result(frame_bytes: bytes, can_id: int) -> dict[str, Any]:
    return {
        "can_id": f"0x{can_id:03X}",
        "data": frame_bytes.hex(" ").upper(),
        "length": len(frame_bytes),
    }


# ─── DECODING TOOLS ──────────────────────────────────────────────────

@mcp.tool()
def decode_frame(address: int, data_hex: str) -> dict[str, Any]:
    """Decode a single MKS servo frame.

    Args:
        address: CAN identifier of the motor (1-255).
        data_hex: Data bytes in hex, command byte first, checksum last.
    """
    try:
        payload = _parse_hex(data_hex)
    except ValueError as e:
        return {"error": f"Invalid hex data: {e}"}
    if not payload:
        return {"error": "No data bytes"}

    decoded = decode_fields(address, payload[0], payload)
    if decoded is None:
        return {"error": "Frame filtered: address must be 1-255 and data at least 2 bytes"}

    result = decoded.to_dict()
    result["checksum_valid"] = verify_checksum(RawFrame(address=address, payload=payload))
    return result


@mcp.tool()
def decode_capture(
    path: str,
    limit: int = 200,
    bus: int | None = None,
    can_id: int = 0,
    mask: int = 0,
) -> dict[str, Any]:
    """Decode a candump capture file.

    Args:
        path: Path to a capture produced by ``candump`` (any output format).
        limit: Maximum number of decoded lines to return.
        bus: Only decode frames from this bus index (default: any).
        can_id: Acceptance filter identifier.
        mask: Acceptance filter mask (0 accepts every identifier).
    """
    lines: list[str] = []

    def collect(line: str) -> None:
        if len(lines) < limit:
            lines.append(line)

    reader = CaptureReader(path)
    monitor = FrameMonitor(
        emit=collect,
        frame_filter=FrameFilter(can_id=can_id, mask=mask, bus=bus),
    )
    try:
        decoded = monitor.replay(reader)
    except OSError as e:
        return {"error": f"Cannot read capture: {e}"}

    return {
        "frames": reader.frames,
        "skipped_lines": reader.skipped,
        "decoded": decoded,
        "truncated": decoded > len(lines),
        "lines": lines,
    }


# ─── COMMAND BUILDING TOOLS ──────────────────────────────────────────

@mcp.tool()
def build_position_command(
    can_id: int,
    speed: int,
    accel: int,
    position: int,
    absolute: bool = True,
) -> dict[str, Any]:
    """Build a coordinate position command (0xF5 absolute / 0xF4 relative).

    Args:
        can_id: Target motor identifier.
        speed: Velocity in RPM (0-3000).
        accel: Acceleration scale (0-255).
        position: Target in encoder counts (16384 per revolution).
        absolute: Move to an absolute coordinate (default) or relative.
    """
    try:
        frame = build_position(can_id, speed, accel, position, absolute=absolute)
    except ValueError as e:
        return {"error": str(e)}
    return _frame_result(frame, can_id)


@mcp.tool()
def build_speed_command(
    can_id: int, speed: int, accel: int, reverse: bool = False
) -> dict[str, Any]:
    """Build a speed mode command (0xF6).

    Args:
        can_id: Target motor identifier.
        speed: Velocity in RPM (0-3000).
        accel: Acceleration scale (0-255).
        reverse: Run clockwise instead of counter-clockwise.
    """
    try:
        frame = build_speed(can_id, speed, accel, reverse=reverse)
    except ValueError as e:
        return {"error": str(e)}
    return _frame_result(frame, can_id)


@mcp.tool()
def build_read_command(can_id: int, command: str) -> dict[str, Any]:
    """Build a read query such as READ_ENCODER or READ_MOTOR_STATUS.

    Args:
        can_id: Target motor identifier.
        command: Command name (e.g. "READ_ENCODER") or byte (e.g. "0x30").
    """
    try:
        if command.upper() in Command.__members__:
            cmd = Command[command.upper()]
        else:
            cmd = Command(int(command, 0))
        frame = build_read(can_id, cmd)
    except (KeyError, ValueError) as e:
        return {"error": str(e)}
    return _frame_result(frame, can_id)


@mcp.tool()
def compute_checksum(can_id: int, data_hex: str) -> dict[str, Any]:
    """Compute the trailing checksum byte for a frame body.

    Args:
        can_id: CAN identifier of the motor.
        data_hex: Frame bytes before the checksum, command byte first.
    """
    try:
        body = _parse_hex(data_hex)
    except ValueError as e:
        return {"error": f"Invalid hex data: {e}"}
    value = checksum(can_id, body)
    return {"checksum": f"0x{value:02X}", "frame": (body + bytes([value])).hex(" ").upper()}


@mcp.tool()
def list_commands() -> dict[str, Any]:
    """List every command byte the decoder understands."""
    return {"commands": layout_summary()}


# ─── RESOURCES ───────────────────────────────────────────────────────

@mcp.resource("mks://commands")
def commands_resource() -> str:
    """Command byte table with labels and accepted frame lengths."""
    return json.dumps(layout_summary(), indent=2)


# ─── PROMPTS ─────────────────────────────────────────────────────────

@mcp.prompt()
def diagnose_capture(path: str) -> str:
    """Review a CAN capture for servo faults.

    Args:
        path: Capture file to analyze.
    """
    return f"""Decode the capture at {path} using the decode_capture tool.
Summarize what each motor was doing and flag anything abnormal.

Look for:
- STALL STATUS reporting STALLED
- MOTOR STATUS or motion responses reporting FAILED or LIMIT STOPPED
- Large ANGLE ERROR values (more than a few degrees)
- Status codes rendered as Unknown(n)
- Checksums that do not match (check suspicious frames with decode_frame)"""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
