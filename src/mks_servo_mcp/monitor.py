"""Glue between a frame source and the output sink.

The transport calls :meth:`FrameMonitor.on_frame` for every received frame;
each frame that survives the filter and decodes is handed to ``emit`` as a
single line. Rejected frames produce no output at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from .protocol.decoder import decode
from .protocol.framing import RawFrame

logger = logging.getLogger(__name__)

Emitter = Callable[[str], None]


@dataclass(frozen=True)
class FrameFilter:
    """Acceptance filter applied before decoding.

    A frame passes when ``(address & mask) == (can_id & mask)`` and it
    arrived on ``bus``. The defaults accept every identifier on bus 0;
    ``bus=None`` accepts any bus.
    """

    can_id: int = 0
    mask: int = 0
    bus: int | None = 0

    def accepts(self, bus_id: int, address: int) -> bool:
        if self.bus is not None and bus_id != self.bus:
            return False
        return (address & self.mask) == (self.can_id & self.mask)


class FrameMonitor:
    """Decodes frames as they arrive and forwards the lines to a sink.

    Usage::

        monitor = FrameMonitor(emit=print)
        monitor.on_frame(0, 0x01, 3, b"\\xF1\\x01\\xF3")
    """

    def __init__(
        self,
        emit: Emitter | None = None,
        frame_filter: FrameFilter | None = None,
    ) -> None:
        self._emit = emit or self._log_line
        self._filter = frame_filter or FrameFilter()
        self.received = 0
        self.emitted = 0
        logger.info(
            "Monitoring bus %s (id=0x%X mask=0x%X)",
            "any" if self._filter.bus is None else self._filter.bus,
            self._filter.can_id,
            self._filter.mask,
        )

    @staticmethod
    def _log_line(line: str) -> None:
        logger.info("%s", line)

    @property
    def frame_filter(self) -> FrameFilter:
        return self._filter

    def on_frame(
        self, bus_id: int, address: int, length: int, data: Sequence[int]
    ) -> str | None:
        """Handle one received frame.

        Args:
            bus_id: Bus the frame arrived on.
            address: CAN identifier (0-0x7FF).
            length: Data length code (0-8).
            data: Data bytes; only the first ``length`` are used.

        Returns:
            The emitted line, or ``None`` if the frame was rejected.
        """
        self.received += 1
        if not self._filter.accepts(bus_id, address):
            return None
        try:
            payload = bytes(data[:length])
        except (TypeError, ValueError) as e:
            logger.debug("Frame 0x%X carries non-byte data: %s", address, e)
            return None
        if len(payload) < length:
            logger.debug(
                "Frame 0x%X declares %d bytes but carries %d", address, length, len(payload)
            )
            return None
        if not payload:
            return None
        line = decode(address, payload[0], payload)
        if line is None:
            return None
        self.emitted += 1
        self._emit(line)
        return line

    def replay(self, frames: Iterable[RawFrame]) -> int:
        """Feed ``frames`` through :meth:`on_frame` in order.

        Returns:
            Number of lines emitted.
        """
        before = self.emitted
        for frame in frames:
            self.on_frame(frame.bus, frame.address, frame.length, frame.payload)
        return self.emitted - before
