"""Data models for servo status codes."""

from .status import (
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
