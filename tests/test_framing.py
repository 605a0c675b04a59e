"""Tests for packet header building, parsing, and frame assembly."""

import struct

import pytest

from openrgb_sync_mcp.errors import OpenRGBProtocolError
from openrgb_sync_mcp.protocol.framing import (
    HEADER_SIZE,
    MAGIC,
    FrameAssembler,
    Packet,
    PacketHeader,
    build_header,
    build_packet,
    parse_header,
)


def test_header_size():
    assert len(build_header(0, 0, 0)) == HEADER_SIZE


def test_header_layout():
    """ORGB magic followed by three little-endian uint32 fields."""
    header = build_header(3, 1050, 26)
    assert header[:4] == MAGIC == b"ORGB"
    assert header[4:8] == b"\x03\x00\x00\x00"
    assert header[8:12] == struct.pack("<I", 1050)
    assert header[12:16] == b"\x1A\x00\x00\x00"


@pytest.mark.parametrize(
    "device_id, command_id, length",
    [(0, 0, 0), (7, 1054, 4), (0xFFFFFFFF, 0xFFFFFFFF, 0xFFFFFFFF)],
)
def test_header_roundtrip(device_id, command_id, length):
    header = parse_header(build_header(device_id, command_id, length))
    assert header == PacketHeader(device_id, command_id, length)


def test_header_rejects_out_of_range():
    with pytest.raises(ValueError):
        build_header(-1, 0, 0)
    with pytest.raises(ValueError):
        build_header(0, 0x1_0000_0000, 0)


def test_build_packet_appends_payload():
    packet = build_packet(2, 1054, b"\x01\x00\x00\x00")
    assert len(packet) == HEADER_SIZE + 4
    assert parse_header(packet).payload_length == 4
    assert packet[HEADER_SIZE:] == b"\x01\x00\x00\x00"


def test_parse_header_short():
    with pytest.raises(OpenRGBProtocolError):
        parse_header(b"ORGB\x00")


def test_parse_header_bad_magic():
    data = b"XRGB" + bytes(12)
    with pytest.raises(OpenRGBProtocolError, match="magic"):
        parse_header(data)


def test_assembler_header_then_payload():
    """Header arrives first, payload trickles in afterwards."""
    raw = build_packet(0, 1, b"abcdef")
    assembler = FrameAssembler()

    assert not assembler.feed(raw[:10])
    assert assembler.header is None
    assert assembler.bytes_needed == 6

    assert not assembler.feed(raw[10:18])
    assert assembler.header == PacketHeader(0, 1, 6)
    assert assembler.bytes_needed == 4

    assert assembler.feed(raw[18:])
    packet = assembler.packet()
    assert packet.payload == b"abcdef"
    assert assembler.leftover == b""


def test_assembler_single_chunk_with_leftover():
    raw = build_packet(0, 0, b"\x02\x00\x00\x00") + b"extra"
    assembler = FrameAssembler()
    assert assembler.feed(raw)
    assert assembler.packet().payload == b"\x02\x00\x00\x00"
    assert assembler.leftover == b"extra"


def test_assembler_empty_payload():
    assembler = FrameAssembler()
    assert assembler.feed(build_header(0, 50, 0))
    assert assembler.packet().payload == b""


def test_assembler_incomplete_packet_raises():
    assembler = FrameAssembler()
    assembler.feed(build_header(0, 1, 10))
    with pytest.raises(OpenRGBProtocolError):
        assembler.packet()


def test_assembler_rejects_oversized_payload():
    assembler = FrameAssembler(max_packet_size=100)
    with pytest.raises(OpenRGBProtocolError, match="exceeds"):
        assembler.feed(build_header(0, 1, 101))


def test_packet_repr():
    packet = Packet(header=PacketHeader(1, 1, 3), payload=b"abc")
    assert "command_id=1" in repr(packet)
    assert "payload_len=3" in repr(packet)
