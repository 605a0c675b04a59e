"""TCP connection to an OpenRGB server.

The server answers requests strictly in order and responses carry no
request id, so framing relies on one outstanding request at a time.
:meth:`PacketTransport.request` serialises request/response pairs with a
lock, and :meth:`PacketTransport.send_packet` refuses to write while a
response is still being assembled.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..config import ClientConfig
from ..errors import (
    OpenRGBConnectionError,
    OpenRGBProtocolError,
    OpenRGBTimeoutError,
)
from ..models.color import RGBColor
from ..protocol.commands import (
    Command,
    build_set_client_name,
    build_update_leds,
    build_update_mode,
)
from ..protocol.framing import FrameAssembler, Packet, build_packet
from ..protocol.parser import parse_controller_count

logger = logging.getLogger(__name__)

READ_BUFFER_SIZE = 4096


class PacketTransport:
    """Owns one stream connection to the server.

    Usage::

        transport = PacketTransport(ClientConfig())
        await transport.connect()
        count = await transport.request_controller_count()
        transport.disconnect()
    """

    def __init__(self, config: ClientConfig | None = None) -> None:
        self._config = config or ClientConfig()
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._connected = False
        self._receiving = False
        self._lock = asyncio.Lock()
        self._timers: set[asyncio.TimerHandle] = set()
        self._waiters: set[asyncio.Future] = set()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    def _connection_error(self, message: str) -> OpenRGBConnectionError:
        return OpenRGBConnectionError(
            message, address=self._config.host, port=self._config.port
        )

    async def connect(self) -> None:
        """Open the connection, closing any previous one first.

        Raises:
            OpenRGBConnectionError: If the server cannot be reached.
        """
        self.disconnect()
        host, port = self._config.host, self._config.port
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=self._config.connect_timeout,
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.error("Connection to %s:%s failed: %s", host, port, e)
            raise self._connection_error(
                f"Could not connect to OpenRGB server at {host}:{port}: {e}"
            ) from e

        self._connected = True
        logger.info("Connected to %s:%s", host, port)

    def disconnect(self) -> None:
        """Close the connection and cancel every scheduled timer. Idempotent."""
        self.clear_all_timeouts()

        if self._writer is not None:
            try:
                self._writer.close()
                logger.info("Connection closed")
            except Exception as e:
                logger.warning("Error closing connection: %s", e)
        self._writer = None
        self._reader = None
        self._connected = False

    # ─── TIMERS ──────────────────────────────────────────────────────

    def add_timeout(self, callback: Callable[[], object], delay: float) -> asyncio.TimerHandle:
        """Schedule ``callback`` after ``delay`` seconds and track the handle
        until it fires or is cancelled."""
        loop = asyncio.get_running_loop()

        def fire() -> None:
            self._timers.discard(handle)
            callback()

        handle = loop.call_later(delay, fire)
        self._timers.add(handle)
        return handle

    def cancel_timeout(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()
        self._timers.discard(handle)

    def clear_all_timeouts(self) -> None:
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()

        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_exception(
                    self._connection_error("Connection closed while waiting")
                )
        self._waiters.clear()

    async def _sleep(self, delay: float) -> None:
        """Wait on a tracked timer so :meth:`disconnect` can interrupt it."""
        waiter = asyncio.get_running_loop().create_future()

        def wake() -> None:
            if not waiter.done():
                waiter.set_result(None)

        handle = self.add_timeout(wake, delay)
        self._waiters.add(waiter)
        try:
            await waiter
        finally:
            self._waiters.discard(waiter)
            self.cancel_timeout(handle)

    # ─── FRAMING ─────────────────────────────────────────────────────

    async def send_packet(
        self, device_id: int, command_id: int, payload: bytes = b""
    ) -> None:
        """Write one packet and wait until it is flushed.

        Raises:
            OpenRGBConnectionError: If not connected or the write fails.
            OpenRGBProtocolError: If a response is still being assembled.
        """
        if not self._connected or self._writer is None:
            raise self._connection_error("Not connected to OpenRGB server")
        if self._receiving:
            raise OpenRGBProtocolError(
                "Cannot send while a response is pending", command_id=command_id
            )

        self._writer.write(build_packet(device_id, command_id, payload))
        try:
            await self._writer.drain()
        except (OSError, ConnectionError) as e:
            self.disconnect()
            raise self._connection_error(f"Write failed: {e}") from e

    async def _accumulate(
        self, reader: asyncio.StreamReader, assembler: FrameAssembler
    ) -> Packet:
        while not assembler.complete:
            try:
                chunk = await reader.read(min(READ_BUFFER_SIZE, assembler.bytes_needed))
            except OSError as e:
                raise self._connection_error(f"Read failed: {e}") from e
            if not chunk:
                raise self._connection_error(
                    f"Connection closed with {assembler.buffered} bytes of "
                    f"response buffered"
                )
            assembler.feed(chunk)
        return assembler.packet()

    async def receive_framed_response(
        self,
        expected_command: int | None = None,
        timeout: float | None = None,
    ) -> Packet:
        """Read exactly one packet: the 16-byte header, then the payload
        length it announces.

        A timer races the read. If it fires first the read is abandoned and
        the connection dropped, since whatever arrives later would be
        mistaken for the next response.

        Raises:
            OpenRGBTimeoutError: If the packet is not complete in time.
            OpenRGBProtocolError: On bad magic, oversized payloads, or a
                command id different from ``expected_command``.
            OpenRGBConnectionError: If not connected or the stream closes.
        """
        if not self._connected or self._reader is None:
            raise self._connection_error("Not connected to OpenRGB server")
        if self._receiving:
            raise OpenRGBProtocolError(
                "A response is already being received", command_id=expected_command
            )

        timeout = self._config.timeout if timeout is None else timeout
        assembler = FrameAssembler()
        read_task = asyncio.ensure_future(self._accumulate(self._reader, assembler))
        timed_out = False

        def on_timeout() -> None:
            nonlocal timed_out
            if not read_task.done():
                timed_out = True
                read_task.cancel()

        self._receiving = True
        handle = self.add_timeout(on_timeout, timeout)
        try:
            packet = await read_task
        except asyncio.CancelledError:
            if not timed_out:
                raise
            logger.warning(
                "No complete response for command %s after %.1fs (%d bytes buffered)",
                expected_command, timeout, assembler.buffered,
            )
            self.disconnect()
            raise OpenRGBTimeoutError(
                f"Timeout waiting for response after {timeout}s", timeout=timeout
            ) from None
        except (OpenRGBProtocolError, OpenRGBConnectionError):
            self.disconnect()
            raise
        finally:
            self.cancel_timeout(handle)
            self._receiving = False

        if expected_command is not None and packet.header.command_id != expected_command:
            self.disconnect()
            raise OpenRGBProtocolError(
                f"Expected response to command {expected_command}, "
                f"got {packet.header.command_id}",
                command_id=packet.header.command_id,
            )
        logger.debug("Received %r", packet)
        return packet

    async def request(
        self, device_id: int, command_id: int, payload: bytes = b""
    ) -> Packet:
        """Send a request and wait for its response."""
        async with self._lock:
            await self.send_packet(device_id, command_id, payload)
            return await self.receive_framed_response(command_id)

    async def send(self, device_id: int, command_id: int, payload: bytes = b"") -> None:
        """Send a request that has no response."""
        async with self._lock:
            await self.send_packet(device_id, command_id, payload)

    # ─── COMMANDS ────────────────────────────────────────────────────

    async def register_client(self) -> None:
        await self.send(0, Command.SET_CLIENT_NAME, build_set_client_name(self._config.client_name))
        logger.info("Registered client %r", self._config.client_name)

    async def request_controller_count(self) -> int:
        packet = await self.request(0, Command.REQUEST_CONTROLLER_COUNT)
        return parse_controller_count(packet.payload)

    async def request_controller_data(self, device_id: int) -> bytes:
        """Fetch the raw controller data payload for one controller."""
        packet = await self.request(device_id, Command.REQUEST_CONTROLLER_DATA)
        logger.debug(
            "Device %d - received %d bytes of controller data",
            device_id, len(packet.payload),
        )
        return packet.payload

    async def update_leds(self, device_id: int, color: RGBColor, led_count: int) -> None:
        await self.send(
            device_id,
            Command.RGBCONTROLLER_UPDATELEDS,
            build_update_leds(color, led_count),
        )

    async def set_device_mode(self, device_id: int, mode_index: int) -> None:
        """Select a mode, then pause for the configured settle delay."""
        if not self._connected:
            raise self._connection_error("Not connected to OpenRGB server")
        logger.debug("Setting device %d to mode %d", device_id, mode_index)
        await self.send(
            device_id,
            Command.RGBCONTROLLER_UPDATEMODE,
            build_update_mode(mode_index),
        )
        if self._config.mode_settle_delay > 0:
            await self._sleep(self._config.mode_settle_delay)
