"""CAN frame container and candump text parsing.

MKS servo frames ride in the data field of a standard CAN frame whose
identifier is the motor address::

    +---------+-----------------------+----------+
    | Command |       Payload         | Checksum |
    | 1 byte  |  0-6 bytes            | 1 byte   |
    +---------+-----------------------+----------+

- Command: selects the layout of the payload
- Checksum: (CAN ID low byte + all preceding bytes) & 0xFF

Captures are read in any of the three renderings produced by ``candump``::

    can0 001#3000000000400070                  (compact, ``-L``)
    (1700000000.123456) can0 001#30000070      (log file, ``-l``)
    can0  001   [8]  30 00 00 00 00 40 00 70   (default)
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..utils.checksum import checksum

MAX_DATA_LENGTH = 8
MAX_CAN_ID = 0x7FF

_COMPACT_RE = re.compile(
    r"^(?:\((?P<ts>[0-9.]+)\)\s+)?"
    r"(?P<iface>\S+)\s+"
    r"(?P<id>[0-9A-Fa-f]{1,8})#(?P<data>[0-9A-Fa-f]*)$"
)
_DEFAULT_RE = re.compile(
    r"^(?P<iface>\S+)\s+"
    r"(?P<id>[0-9A-Fa-f]{1,8})\s+"
    r"\[(?P<len>\d)\]"
    r"(?P<data>(?:\s+[0-9A-Fa-f]{2})*)$"
)
_BUS_RE = re.compile(r"(\d+)$")


@dataclass(frozen=True)
class RawFrame:
    """A single frame received from the bus."""

    address: int
    payload: bytes
    bus: int = 0

    @property
    def command(self) -> int | None:
        return self.payload[0] if self.payload else None

    @property
    def length(self) -> int:
        return len(self.payload)

    def __repr__(self) -> str:
        return (
            f"RawFrame(address=0x{self.address:03X}, bus={self.bus}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def verify_checksum(frame: RawFrame) -> bool:
    """Check the trailing checksum byte of ``frame``.

    This is a diagnostic only; decoding never depends on it.
    """
    if frame.length < 2:
        return False
    return checksum(frame.address, frame.payload[:-1]) == frame.payload[-1]


def _bus_index(iface: str) -> int:
    match = _BUS_RE.search(iface)
    return int(match.group(1)) if match else 0


def parse_candump_line(line: str) -> RawFrame | None:
    """Parse one line of ``candump`` output.

    Returns:
        A ``RawFrame``, or ``None`` for blank lines, comments, remote
        frames and anything that does not look like a classic CAN frame.
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return None

    match = _COMPACT_RE.match(text)
    if match:
        data_hex = match.group("data")
        if len(data_hex) % 2:
            return None
        payload = bytes.fromhex(data_hex)
    else:
        match = _DEFAULT_RE.match(text)
        if match is None:
            return None
        payload = bytes.fromhex(match.group("data"))
        if len(payload) != int(match.group("len")):
            return None

    if len(payload) > MAX_DATA_LENGTH:
        return None

    return RawFrame(
        address=int(match.group("id"), 16),
        payload=payload,
        bus=_bus_index(match.group("iface")),
    )
