"""Response parsing for controller count and controller data payloads."""

from __future__ import annotations

import logging

from ..errors import OpenRGBParseError, OpenRGBProtocolError
from ..models.device import (
    DeviceDescriptor,
    DeviceLED,
    DeviceMode,
    DeviceZone,
)
from .reader import BinaryReader

logger = logging.getLogger(__name__)

# Matrix zones prefix their map with two uint32 dimensions
MATRIX_DIMENSIONS_SIZE = 8


def parse_controller_count(payload: bytes) -> int:
    """Decode the uint32 count carried by a REQUEST_CONTROLLER_COUNT reply."""
    if len(payload) < 4:
        raise OpenRGBProtocolError(
            f"Controller count payload needs 4 bytes, got {len(payload)}",
            command_id=0,
        )
    return BinaryReader(payload).read_uint32()


def _parse_mode(reader: BinaryReader) -> DeviceMode:
    name = reader.read_string()
    value = reader.read_uint32()
    flags = reader.read_uint32()
    speed_min = reader.read_uint32()
    speed_max = reader.read_uint32()
    colors_min = reader.read_uint32()
    colors_max = reader.read_uint32()
    speed = reader.read_uint32()
    direction = reader.read_uint32()
    color_mode = reader.read_uint32()
    color_count = reader.read_uint16()
    colors = tuple(reader.read_color() for _ in range(color_count))
    return DeviceMode(
        name=name,
        value=value,
        flags=flags,
        speed_min=speed_min,
        speed_max=speed_max,
        colors_min=colors_min,
        colors_max=colors_max,
        speed=speed,
        direction=direction,
        color_mode=color_mode,
        colors=colors,
    )


def _parse_zone(reader: BinaryReader) -> DeviceZone:
    name = reader.read_string()
    zone_type = reader.read_uint32()
    leds_min = reader.read_uint32()
    leds_max = reader.read_uint32()
    leds_count = reader.read_uint32()
    matrix_length = reader.read_uint16()
    matrix_height = matrix_width = None
    if matrix_length > 0:
        matrix_height = reader.read_uint32()
        matrix_width = reader.read_uint32()
        if matrix_length > MATRIX_DIMENSIONS_SIZE:
            reader.skip(matrix_length - MATRIX_DIMENSIONS_SIZE)
    return DeviceZone(
        name=name,
        type=zone_type,
        leds_min=leds_min,
        leds_max=leds_max,
        leds_count=leds_count,
        matrix_height=matrix_height,
        matrix_width=matrix_width,
        matrix_length=matrix_length,
    )


def parse_controller_data(payload: bytes) -> DeviceDescriptor:
    """Decode a REQUEST_CONTROLLER_DATA payload into a descriptor.

    Parsing never raises. If the payload is truncated or corrupt, the
    descriptor is returned with every field read before the failure and
    defaults for the rest, so one bad controller cannot break a batch.
    """
    reader = BinaryReader(payload)
    fields: dict = {}
    modes: list[DeviceMode] = []
    zones: list[DeviceZone] = []
    leds: list[DeviceLED] = []
    colors: list = []

    try:
        fields["data_size"] = reader.read_uint32()
        fields["command_type"] = reader.read_uint32()
        for key in ("name", "description", "version", "serial", "location"):
            fields[key] = reader.read_string()

        mode_count = reader.read_uint16()
        fields["active_mode"] = reader.read_uint32()
        for _ in range(mode_count):
            modes.append(_parse_mode(reader))

        zone_count = reader.read_uint16()
        for _ in range(zone_count):
            zones.append(_parse_zone(reader))

        led_count = reader.read_uint16()
        for _ in range(led_count):
            leds.append(DeviceLED(name=reader.read_string(), value=reader.read_uint32()))

        color_count = reader.read_uint16()
        for _ in range(color_count):
            colors.append(reader.read_color())

        logger.debug(
            "Parsed controller %r: %d modes, %d zones, %d LEDs",
            fields.get("name"), len(modes), len(zones), len(leds),
        )
    except OpenRGBParseError as e:
        logger.warning(
            "Controller data truncated at offset %s of %s bytes (%r so far): %s",
            e.offset, e.buffer_size, fields.get("name", ""), e.message,
        )
        logger.debug(
            "Context around offset %s: %s",
            e.offset,
            payload[max(0, reader.offset - 20) : reader.offset + 20].hex(" "),
        )

    return DeviceDescriptor(
        modes=tuple(modes),
        zones=tuple(zones),
        leds=tuple(leds),
        colors=tuple(colors),
        **fields,
    )
