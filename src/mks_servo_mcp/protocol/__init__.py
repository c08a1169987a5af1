"""Protocol layer: field extraction, framing, command builders, and frame decoding."""

from .framing import RawFrame, parse_candump_line, verify_checksum
from .commands import Command, build_command
from .decoder import decode, decode_fields, decode_frame
