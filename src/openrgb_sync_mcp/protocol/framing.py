"""Packet header codec and incremental frame assembly.

Packet layout::

    +---------+-----------+------------+----------------+------------------+
    |  Magic  | Device ID | Command ID | Payload Length |     Payload      |
    | 4 bytes |  uint32   |   uint32   |     uint32     | variable length  |
    +---------+-----------+------------+----------------+------------------+

- Magic: ASCII ``ORGB``
- All integers are little-endian
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from ..errors import OpenRGBProtocolError

MAGIC = b"ORGB"
HEADER_SIZE = 16
MAX_PACKET_SIZE = 1024 * 1024  # 1 MiB
UINT32_MAX = 0xFFFFFFFF

_HEADER = struct.Struct("<4sIII")


@dataclass(frozen=True)
class PacketHeader:
    """A decoded 16-byte packet header."""

    device_id: int
    command_id: int
    payload_length: int


@dataclass
class Packet:
    """A complete response: header plus exactly ``payload_length`` bytes."""

    header: PacketHeader
    payload: bytes

    def __repr__(self) -> str:
        return (
            f"Packet(device_id={self.header.device_id}, "
            f"command_id={self.header.command_id}, "
            f"payload_len={len(self.payload)})"
        )


def build_header(device_id: int, command_id: int, payload_length: int) -> bytes:
    """Build the 16-byte request header."""
    for label, value in (
        ("device_id", device_id),
        ("command_id", command_id),
        ("payload_length", payload_length),
    ):
        if not 0 <= value <= UINT32_MAX:
            raise ValueError(f"{label} must fit in uint32, got {value}")
    return _HEADER.pack(MAGIC, device_id, command_id, payload_length)


def build_packet(device_id: int, command_id: int, payload: bytes = b"") -> bytes:
    """Header and payload as one buffer, ready for a single write."""
    return build_header(device_id, command_id, len(payload)) + payload


def parse_header(data: bytes) -> PacketHeader:
    """Decode the first 16 bytes of ``data``.

    Raises:
        OpenRGBProtocolError: If the buffer is short or the magic is wrong.
    """
    if len(data) < HEADER_SIZE:
        raise OpenRGBProtocolError(
            f"Header needs {HEADER_SIZE} bytes, got {len(data)}"
        )
    magic, device_id, command_id, payload_length = _HEADER.unpack_from(data)
    if magic != MAGIC:
        raise OpenRGBProtocolError(
            f"Bad packet magic {magic!r}", command_id=command_id
        )
    return PacketHeader(device_id, command_id, payload_length)


class FrameAssembler:
    """Accumulates stream chunks until one complete packet is buffered.

    The header is decoded as soon as 16 bytes have arrived; its payload
    length then decides how many more bytes to wait for. Bytes past the end
    of the packet are kept in :attr:`leftover`.
    """

    def __init__(self, max_packet_size: int = MAX_PACKET_SIZE) -> None:
        self._buffer = bytearray()
        self._header: PacketHeader | None = None
        self._max_packet_size = max_packet_size

    @property
    def header(self) -> PacketHeader | None:
        return self._header

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    @property
    def bytes_needed(self) -> int:
        """How many more bytes are required before :meth:`packet` succeeds."""
        if self._header is None:
            return HEADER_SIZE - len(self._buffer)
        total = HEADER_SIZE + self._header.payload_length
        return max(0, total - len(self._buffer))

    def feed(self, chunk: bytes) -> bool:
        """Append ``chunk``; return True once the packet is complete."""
        self._buffer.extend(chunk)
        if self._header is None and len(self._buffer) >= HEADER_SIZE:
            self._header = parse_header(self._buffer)
            if self._header.payload_length > self._max_packet_size:
                raise OpenRGBProtocolError(
                    f"Payload of {self._header.payload_length} bytes exceeds "
                    f"limit of {self._max_packet_size}",
                    command_id=self._header.command_id,
                )
        return self.complete

    @property
    def complete(self) -> bool:
        return self._header is not None and self.bytes_needed == 0

    def packet(self) -> Packet:
        if not self.complete:
            raise OpenRGBProtocolError("Packet is not complete yet")
        end = HEADER_SIZE + self._header.payload_length
        return Packet(header=self._header, payload=bytes(self._buffer[HEADER_SIZE:end]))

    @property
    def leftover(self) -> bytes:
        if not self.complete:
            return b""
        return bytes(self._buffer[HEADER_SIZE + self._header.payload_length :])
