"""Enumerated status labels reported by the servo.

Status codes are positional: the byte value indexes into a per-command
label table. Tables differ in size, and firmware may report codes that are
not documented, so lookups never fail.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StatusTable:
    """Immutable, bounds-checked label table."""

    labels: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.labels)

    def label(self, index: int) -> str:
        """Return the label for ``index``, or ``Unknown(<index>)`` if undefined."""
        if 0 <= index < len(self.labels):
            return self.labels[index]
        return f"Unknown({index})"


# 0x3B home status (single turn and home flags)
HOME_STATUS = StatusTable(("In Progress", "Success", "Failed"))

# 0x80 encoder calibration
CALIBRATION_STATUS = StatusTable(("Calibrating...", "Success", "Failed"))

# 0x82 work mode
WORK_MODES = StatusTable(
    ("CR_OPEN", "CR_CLOSE", "CR_vFOC", "SR_OPEN", "SR_CLOSE", "SR_vFOC")
)

# 0x85 EN pin level
EN_LEVELS = StatusTable(("Active Low", "Active High", "Always Active"))

# 0xF1 motor status
MOTOR_STATUS = StatusTable(
    (
        "Failed",
        "Stopped",
        "Accel",
        "Decel",
        "Full Speed",
        "Homing",
        "Calibrating",
    )
)

# 0x40 hardware revision (low nibble of the version byte)
HARDWARE_VERSIONS = StatusTable(
    (
        "?",
        "S42D_485",
        "S42D_CAN",
        "S57D_485",
        "S57D_CAN",
        "S28D_485",
        "S28D_CAN",
        "S35D_485",
        "S35D_CAN",
    )
)

# Acknowledgement of position-mode commands (0xF4, 0xF5, 0xFD, 0xFE)
MOTION_RESPONSE = StatusTable(
    ("FAILED", "STARTING", "COMPLETE", "LIMIT STOPPED", "?", "SYNC RECEIVED")
)

# Acknowledgement of speed-mode commands (0xF6). Codes 3 and 4 are unassigned.
SPEED_RESPONSE = StatusTable(
    ("FAILED", "STARTING", "COMPLETE", "?", "?", "SYNC RECEIVED")
)
