"""MKS servo frame checksum.

The checksum is the 8-bit sum of the low byte of the CAN identifier and
every data byte preceding the checksum field::

    crc = (can_id & 0xFF) + data[0] + ... + data[n-1]  (mod 256)
"""

from __future__ import annotations


def checksum(can_id: int, data: bytes) -> int:
    """Compute the trailing checksum byte for a frame body.

    Args:
        can_id: CAN identifier of the motor. Only the low byte contributes.
        data: Frame bytes before the checksum (command byte first).

    Returns:
        The checksum value (0-255).
    """
    total = can_id & 0xFF
    for b in data:
        total += b
    return total & 0xFF
