"""Cursor-based reader for little-endian OpenRGB payloads.

Every read checks the requested span against the buffer before consuming
it and raises :class:`OpenRGBParseError` on shortfall; nothing is ever
returned truncated or zero-filled.
"""

from __future__ import annotations

import struct

from ..errors import OpenRGBParseError
from ..models.color import RGBColor

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")


class BinaryReader:
    """Reads fields sequentially from a fixed byte buffer.

    Usage::

        reader = BinaryReader(payload)
        size = reader.read_uint32()
        name = reader.read_string()
    """

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self._data = bytes(data)
        self._offset = offset

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def length(self) -> int:
        return len(self._data)

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def has_more_data(self) -> bool:
        return self._offset < len(self._data)

    def _require(self, size: int, what: str) -> None:
        if size < 0 or self._offset + size > len(self._data):
            raise OpenRGBParseError(
                f"Cannot read {what} at offset {self._offset}, "
                f"buffer size: {len(self._data)}",
                offset=self._offset,
                buffer_size=len(self._data),
            )

    def read_uint32(self) -> int:
        self._require(4, "uint32")
        (value,) = _U32.unpack_from(self._data, self._offset)
        self._offset += 4
        return value

    def read_uint16(self) -> int:
        self._require(2, "uint16")
        (value,) = _U16.unpack_from(self._data, self._offset)
        self._offset += 2
        return value

    def read_string(self) -> str:
        """Read a uint16 length followed by that many UTF-8 bytes.

        The length prefix is only consumed when the whole string fits.
        """
        self._require(2, "string length")
        (length,) = _U16.unpack_from(self._data, self._offset)
        if self._offset + 2 + length > len(self._data):
            raise OpenRGBParseError(
                f"Cannot read string of length {length} at offset "
                f"{self._offset}, buffer size: {len(self._data)}",
                offset=self._offset,
                buffer_size=len(self._data),
            )
        start = self._offset + 2
        raw = self._data[start : start + length]
        self._offset = start + length
        # The terminating NUL is kept; stable ids are hashed over it
        return raw.decode("utf-8", errors="replace")

    def read_color(self) -> RGBColor:
        self._require(4, "RGBColor")
        r, g, b, a = self._data[self._offset : self._offset + 4]
        self._offset += 4
        return RGBColor(r, g, b, a)

    def skip(self, count: int) -> None:
        self._require(count, f"{count} bytes")
        self._offset += count
