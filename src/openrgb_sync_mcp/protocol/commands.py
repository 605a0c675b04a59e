"""Command identifiers and request payload builders.

Each request is a 16-byte header (see :mod:`.framing`) followed by a
command-specific payload built here.
"""

from __future__ import annotations

import struct
from enum import IntEnum

from ..models.color import RGBColor
from .framing import build_packet

MAX_LED_COUNT = 0xFFFF


class Command(IntEnum):
    """Packet command identifiers."""

    REQUEST_CONTROLLER_COUNT = 0
    REQUEST_CONTROLLER_DATA = 1
    SET_CLIENT_NAME = 50
    RGBCONTROLLER_UPDATELEDS = 1050
    RGBCONTROLLER_UPDATEMODE = 1054


def build_command(
    command: Command, device_id: int = 0, payload: bytes = b""
) -> bytes:
    """Build a complete request packet for a command."""
    return build_packet(device_id, command.value, payload)


def build_set_client_name(name: str) -> bytes:
    """Payload for SET_CLIENT_NAME: uint16 length + UTF-8 name."""
    encoded = name.encode("utf-8")
    if len(encoded) > 0xFFFF:
        raise ValueError(f"Client name too long ({len(encoded)} bytes)")
    return struct.pack("<H", len(encoded)) + encoded


def build_update_leds(color: RGBColor, led_count: int) -> bytes:
    """Payload for RGBCONTROLLER_UPDATELEDS painting every LED one color.

    Layout: uint32 total size, uint16 LED count, then R, G, B, 0 per LED.
    """
    if not 0 <= led_count <= MAX_LED_COUNT:
        raise ValueError(f"LED count must be 0-{MAX_LED_COUNT}, got {led_count}")
    color = RGBColor.validate(color)
    total_size = 6 + led_count * 4
    return (
        struct.pack("<IH", total_size, led_count)
        + bytes((color.r, color.g, color.b, 0)) * led_count
    )


def build_update_mode(mode_index: int) -> bytes:
    """Payload for RGBCONTROLLER_UPDATEMODE: the uint32 mode index."""
    if not 0 <= mode_index <= 0xFFFFFFFF:
        raise ValueError(f"Mode index must fit in uint32, got {mode_index}")
    return struct.pack("<I", mode_index)
