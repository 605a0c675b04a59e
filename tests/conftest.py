"""Shared fixtures: an in-process fake OpenRGB server and a fake transport."""

from __future__ import annotations

import asyncio
import socket
import struct

import pytest
import pytest_asyncio

from openrgb_sync_mcp.errors import OpenRGBConnectionError
from openrgb_sync_mcp.protocol.commands import Command
from openrgb_sync_mcp.protocol.framing import HEADER_SIZE, build_packet, parse_header

from payloads import build_controller_payload


class FakeOpenRGBServer:
    """Speaks just enough of the SDK protocol for transport tests.

    Responses to controller data requests are written in ``chunk_size``
    pieces so the client has to assemble them.
    """

    def __init__(self, controllers: list[bytes]) -> None:
        self.controllers = controllers
        self.received: list[tuple[int, int, bytes]] = []
        self.silent_devices: set[int] = set()
        self.count_reply_command = Command.REQUEST_CONTROLLER_COUNT
        self.reset_on_count = False
        self.chunk_size = 7
        self.port = 0
        self._server: asyncio.AbstractServer | None = None

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        self._server.close()
        await self._server.wait_closed()

    def commands(self) -> list[int]:
        return [command for _, command, _ in self.received]

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            while True:
                header = parse_header(await reader.readexactly(HEADER_SIZE))
                payload = await reader.readexactly(header.payload_length)
                self.received.append((header.device_id, header.command_id, payload))
                if self.reset_on_count and header.command_id == Command.REQUEST_CONTROLLER_COUNT:
                    self._reset(writer)
                    return
                await self._respond(writer, header.device_id, header.command_id)
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()

    @staticmethod
    def _reset(writer: asyncio.StreamWriter) -> None:
        """Abort with SO_LINGER 0 so the peer sees a connection reset."""
        sock = writer.get_extra_info("socket")
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
        writer.transport.abort()

    async def _respond(self, writer: asyncio.StreamWriter, device_id: int, command_id: int) -> None:
        if command_id == Command.REQUEST_CONTROLLER_COUNT:
            writer.write(
                build_packet(0, self.count_reply_command, struct.pack("<I", len(self.controllers)))
            )
            await writer.drain()
        elif command_id == Command.REQUEST_CONTROLLER_DATA:
            if device_id in self.silent_devices:
                return
            raw = build_packet(device_id, command_id, self.controllers[device_id])
            for start in range(0, len(raw), self.chunk_size):
                writer.write(raw[start : start + self.chunk_size])
                await writer.drain()
                await asyncio.sleep(0)


@pytest_asyncio.fixture
async def openrgb_server():
    server = FakeOpenRGBServer(
        [
            build_controller_payload(name="Alpha", serial="A1B2C3D4", location="usb-0000:00:14.0-1"),
            build_controller_payload(name="Beta", serial="A1B2C3D5", location="usb-0000:00:14.0-2"),
        ]
    )
    await server.start()
    yield server
    await server.stop()


class FakeTransport:
    """Stands in for PacketTransport in client tests.

    ``controllers`` maps ephemeral ids to payload bytes, or to an exception
    instance raised when that controller is requested.
    """

    def __init__(self, controllers: list) -> None:
        self.controllers = controllers
        self.connected = False
        self.calls: list[tuple] = []
        self.fail_connect: Exception | None = None
        self.fail_register: Exception | None = None
        self.fail_count: Exception | None = None
        self.fail_mode: set[int] = set()
        self.fail_update: set[int] = set()

    async def connect(self) -> None:
        self.calls.append(("connect",))
        if self.fail_connect is not None:
            raise self.fail_connect
        self.connected = True

    def disconnect(self) -> None:
        self.calls.append(("disconnect",))
        self.connected = False

    def _check(self) -> None:
        if not self.connected:
            raise OpenRGBConnectionError("Not connected to OpenRGB server")

    async def register_client(self) -> None:
        self._check()
        self.calls.append(("register",))
        if self.fail_register is not None:
            raise self.fail_register

    async def request_controller_count(self) -> int:
        self._check()
        self.calls.append(("count",))
        if self.fail_count is not None:
            raise self.fail_count
        return len(self.controllers)

    async def request_controller_data(self, device_id: int) -> bytes:
        self._check()
        self.calls.append(("data", device_id))
        entry = self.controllers[device_id]
        if isinstance(entry, Exception):
            raise entry
        return entry

    async def set_device_mode(self, device_id: int, mode_index: int) -> None:
        self._check()
        self.calls.append(("mode", device_id, mode_index))
        if device_id in self.fail_mode:
            raise OpenRGBConnectionError("mode write failed")

    async def update_leds(self, device_id: int, color, led_count: int) -> None:
        self._check()
        self.calls.append(("leds", device_id, color, led_count))
        if device_id in self.fail_update:
            raise OpenRGBConnectionError("led write failed")


@pytest.fixture
def fake_transport():
    return FakeTransport(
        [
            build_controller_payload(name="Alpha", serial="A1B2C3D4", location="usb-0000:00:14.0-1", led_count=5),
            build_controller_payload(name="Beta", serial="A1B2C3D5", location="usb-0000:00:14.0-2", led_count=5),
        ]
    )


@pytest.fixture
def transport_factory():
    """Build a FakeTransport over arbitrary controller entries."""
    return FakeTransport
