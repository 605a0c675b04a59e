"""High-level OpenRGB client: discovery and solid-color pushes.

The client reports failures; it never retries or reconnects on its own.
Callers decide that from the error type, or from a color push in which
every device failed.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Iterable, Sequence

from .config import ClientConfig
from .errors import DiscoveryError, OpenRGBConnectionError, OpenRGBError
from .identity import DigestFactory, stable_id_for
from .models.color import RGBColor
from .models.device import Device, DeviceProbe, SyncResult
from .protocol.parser import parse_controller_data
from .transport.tcp_connection import PacketTransport

logger = logging.getLogger(__name__)

ZERO_LED_ERROR = "Device skipped (0 LEDs)"


class OpenRGBClient:
    """Discovers controllers and pushes colors to them.

    Usage::

        client = OpenRGBClient(ClientConfig(host="127.0.0.1"))
        await client.connect()
        devices = await client.discover_devices()
        results = await client.set_all_devices_color(RGBColor(255, 0, 0))
        client.disconnect()
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        transport: PacketTransport | None = None,
        digest: DigestFactory = hashlib.sha256,
    ) -> None:
        self._config = config or ClientConfig()
        self._transport = transport or PacketTransport(self._config)
        self._digest = digest
        self._connected = False
        self._devices: tuple[Device, ...] = ()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def connected(self) -> bool:
        # A timeout or write failure drops the transport underneath us
        return self._connected and self._transport.connected

    def _require_connected(self) -> None:
        if not self.connected:
            raise OpenRGBConnectionError(
                "Client is not connected to OpenRGB server",
                address=self._config.host,
                port=self._config.port,
            )

    async def connect(self) -> None:
        """Connect to the server. On failure the client stays disconnected."""
        self._connected = False
        await self._transport.connect()
        self._connected = True

    def disconnect(self) -> None:
        self._transport.disconnect()
        self._connected = False

    # ─── DISCOVERY ───────────────────────────────────────────────────

    async def _probe(self, index: int) -> DeviceProbe:
        """Fetch and parse one controller, capturing any failure."""
        try:
            payload = await self._transport.request_controller_data(index)
            descriptor = parse_controller_data(payload)
        except Exception as e:
            logger.warning("Failed to get device %d: %s", index, e)
            return DeviceProbe(ephemeral_id=index, error=str(e))

        mode_error = None
        if descriptor.led_count > 0:
            direct_mode = descriptor.find_direct_mode()
            try:
                await self._transport.set_device_mode(index, direct_mode)
                logger.debug(
                    "Device %d - set to direct mode %d during discovery",
                    index, direct_mode,
                )
            except Exception as e:
                logger.warning(
                    "Failed to set device %d to direct mode during discovery: %s",
                    index, e,
                )
                mode_error = str(e)
        return DeviceProbe(
            ephemeral_id=index, descriptor=descriptor, mode_error=mode_error
        )

    def _to_device(self, probe: DeviceProbe) -> Device:
        if not probe.ok:
            return Device.failed(probe.ephemeral_id)
        descriptor = probe.descriptor
        return Device(
            ephemeral_id=probe.ephemeral_id,
            stable_id=stable_id_for(descriptor, self._digest),
            name=descriptor.name,
            led_count=descriptor.led_count,
            direct_mode_index=descriptor.find_direct_mode(),
            data=descriptor,
        )

    async def probe_devices(self) -> list[DeviceProbe]:
        """Register, count, and fetch every controller one at a time.

        Raises:
            OpenRGBConnectionError: If not connected.
            DiscoveryError: If registration or the count query fails.
        """
        self._require_connected()
        try:
            await self._transport.register_client()
            count = await self._transport.request_controller_count()
        except OpenRGBError as e:
            logger.error("Device discovery failed: %s", e)
            raise DiscoveryError(f"Device discovery failed: {e.message}") from e
        logger.info("Found %d devices", count)

        probes = []
        for index in range(count):
            probes.append(await self._probe(index))
        return probes

    async def discover_devices(self) -> tuple[Device, ...]:
        """Enumerate controllers and replace the device list.

        A controller that cannot be fetched still occupies its slot as a
        placeholder with ``stable_id == f"failed-{index}"`` and no LEDs.
        """
        logger.info("Starting device discovery...")
        probes = await self.probe_devices()
        devices = tuple(self._to_device(p) for p in probes)
        for device in devices:
            logger.info(
                "Device %d: %s (%d LEDs, direct mode: %d, stable id: %s)",
                device.ephemeral_id, device.name, device.led_count,
                device.direct_mode_index, device.stable_id,
            )
        self._devices = devices
        logger.info("Device discovery complete - %d devices", len(devices))
        return devices

    # ─── COLOR ───────────────────────────────────────────────────────

    async def set_devices_color(
        self,
        devices: Iterable[Device],
        color: RGBColor,
        set_direct_mode_first: bool = False,
    ) -> list[SyncResult]:
        """Paint each device a solid color, one device at a time.

        Failures are recorded per device and never stop the batch.

        Raises:
            OpenRGBConnectionError: If not connected.
        """
        self._require_connected()
        color = RGBColor.validate(color)
        devices = list(devices)
        logger.info("Syncing %d devices to %s", len(devices), color.to_hex())

        results = []
        for device in devices:
            if device.led_count == 0:
                logger.debug("Skipping device %d - 0 LEDs", device.ephemeral_id)
                results.append(
                    SyncResult(device.ephemeral_id, success=False, error=ZERO_LED_ERROR)
                )
                continue

            try:
                if set_direct_mode_first:
                    try:
                        await self._transport.set_device_mode(
                            device.ephemeral_id, device.direct_mode_index
                        )
                    except Exception as e:
                        logger.warning(
                            "Failed to set device %d to direct mode before update: %s",
                            device.ephemeral_id, e,
                        )
                await self._transport.update_leds(
                    device.ephemeral_id, color, device.led_count
                )
            except Exception as e:
                logger.error("Failed to update device %d: %s", device.ephemeral_id, e)
                results.append(SyncResult(device.ephemeral_id, success=False, error=str(e)))
                continue

            logger.debug("Device %d - color update sent", device.ephemeral_id)
            results.append(SyncResult(device.ephemeral_id, success=True))

        return results

    async def set_all_devices_color(
        self, color: RGBColor, set_direct_mode_first: bool = False
    ) -> list[SyncResult]:
        return await self.set_devices_color(self._devices, color, set_direct_mode_first)

    # ─── STATE ───────────────────────────────────────────────────────

    def get_devices(self) -> list[Device]:
        return list(self._devices)

    def get_device_count(self) -> int:
        return len(self._devices)

    def get_device_by_stable_id(self, stable_id: str) -> Device | None:
        for device in self._devices:
            if device.stable_id == stable_id:
                return device
        return None

    def select_devices(
        self,
        stable_ids: Sequence[str] | None = None,
        ignored: Iterable[str] = (),
    ) -> list[Device]:
        """Current devices, optionally limited to ``stable_ids`` and minus
        anything in ``ignored``."""
        ignored = set(ignored)
        devices = self._devices
        if stable_ids is not None:
            wanted = set(stable_ids)
            devices = tuple(d for d in devices if d.stable_id in wanted)
        return [d for d in devices if d.stable_id not in ignored]
