"""Replay of recorded CAN traffic from ``candump`` capture files.

Usage::

    reader = CaptureReader("session.log")
    for frame in reader:
        print(decode_frame(frame))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from ..protocol.framing import RawFrame, parse_candump_line

logger = logging.getLogger(__name__)


class CaptureReader:
    """Iterates frames from a capture file in recorded order."""

    def __init__(self, path: str | Path, encoding: str = "utf-8") -> None:
        self._path = Path(path)
        self._encoding = encoding
        self._frames = 0
        self._skipped = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def frames(self) -> int:
        return self._frames

    @property
    def skipped(self) -> int:
        return self._skipped

    def __iter__(self) -> Iterator[RawFrame]:
        """Yield every parseable frame.

        Raises:
            FileNotFoundError: If the capture file does not exist.
        """
        self._frames = 0
        self._skipped = 0
        with self._path.open("r", encoding=self._encoding, errors="replace") as fh:
            for lineno, line in enumerate(fh, start=1):
                frame = parse_candump_line(line)
                if frame is None:
                    if line.strip():
                        self._skipped += 1
                        logger.debug("%s:%d: skipped %r", self._path, lineno, line.rstrip())
                    continue
                self._frames += 1
                yield frame
        logger.info(
            "Read %d frames from %s (%d lines skipped)",
            self._frames, self._path, self._skipped,
        )
