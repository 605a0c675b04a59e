"""Builders for synthetic controller data payloads used across tests."""

from __future__ import annotations

import struct


def encode_string(text: str) -> bytes:
    raw = text.encode("utf-8")
    return struct.pack("<H", len(raw)) + raw


def encode_mode(name: str, value: int = 0, colors: list[tuple] = ()) -> bytes:
    body = encode_string(name)
    # value, flags, speed min/max, colors min/max, speed, direction, color mode
    body += struct.pack("<9I", value, 0x20, 1, 10, 0, 4, 5, 0, 1)
    body += struct.pack("<H", len(colors))
    for color in colors:
        body += bytes(color)
    return body


def encode_zone(
    name: str,
    leds: int,
    matrix: tuple[int, int] | None = None,
    matrix_extra: int = 0,
) -> bytes:
    body = encode_string(name) + struct.pack("<4I", 1, leds, leds, leds)
    if matrix is None:
        body += struct.pack("<H", 0)
    else:
        body += struct.pack("<H", 8 + matrix_extra)
        body += struct.pack("<II", *matrix)
        body += b"\xEE" * matrix_extra
    return body


def build_controller_payload(
    name: str = "Alpha",
    description: str = "Test controller",
    version: str = "1.0",
    serial: str = "A1B2C3D4",
    location: str = "usb-0000:00:14.0-1",
    modes: list[str] = ("Static", "Direct"),
    active_mode: int = 1,
    zones: list[bytes] | None = None,
    led_count: int = 5,
    colors: list[tuple] | None = None,
) -> bytes:
    """Controller data payload in the layout REQUEST_CONTROLLER_DATA returns."""
    body = b""
    for key in (name, description, version, serial, location):
        body += encode_string(key)

    body += struct.pack("<HI", len(modes), active_mode)
    for i, mode in enumerate(modes):
        body += encode_mode(mode, value=i, colors=[(255, 0, 0, 0)] if i == 0 else [])

    if zones is None:
        zones = [encode_zone("Strip", led_count)]
    body += struct.pack("<H", len(zones))
    for zone in zones:
        body += zone

    body += struct.pack("<H", led_count)
    for i in range(led_count):
        body += encode_string(f"LED {i}") + struct.pack("<I", i)

    if colors is None:
        colors = [(10, 20, 30, 0)] * led_count
    body += struct.pack("<H", len(colors))
    for color in colors:
        body += bytes(color)

    # Leading data size and command type fields
    return struct.pack("<II", len(body) + 8, 1) + body
