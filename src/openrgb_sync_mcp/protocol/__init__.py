"""Protocol layer: packet headers, command builders, and payload parsing."""

from .framing import build_header, build_packet, parse_header, FrameAssembler
from .commands import Command, build_command
from .reader import BinaryReader
from .parser import parse_controller_count, parse_controller_data
