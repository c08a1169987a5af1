"""Tests for candump capture replay."""

import pytest

from mks_servo_mcp.transport.capture import CaptureReader

CAPTURE = """\
# motor bring-up
(1700000000.000100) can0 001#3001
(1700000000.001200) can0 001#3000000000400070
can0  002   [3]  F1 04 F7
garbage line
(1700000000.002000) can1 001#F10
"""


def test_reads_frames_in_order(tmp_path):
    path = tmp_path / "session.log"
    path.write_text(CAPTURE)

    reader = CaptureReader(path)
    frames = list(reader)

    assert [f.address for f in frames] == [0x01, 0x01, 0x02]
    assert frames[0].payload == b"\x30\x01"
    assert frames[2].payload == b"\xF1\x04\xF7"
    assert reader.frames == 3
    assert reader.skipped == 3  # comment, garbage and odd-length data


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(CaptureReader(tmp_path / "missing.log"))
