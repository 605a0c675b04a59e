"""Accent color sync loop built on :class:`OpenRGBClient`.

This is the policy layer the client deliberately leaves out: it filters
ignored devices, waits the configured sync delay, guards against
overlapping syncs, and reconnects with linear backoff when a sync fails
or every device in a non-empty batch fails. A successful reconnection
replays the last requested color.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from .client import OpenRGBClient
from .config import SyncConfig
from .errors import (
    OpenRGBConnectionError,
    OpenRGBError,
    OpenRGBTimeoutError,
    format_error_message,
)
from .models.color import RGBColor
from .models.device import SyncReport

logger = logging.getLogger(__name__)


class AccentSync:
    """Keeps the connected controllers painted with the latest color.

    Usage::

        sync = AccentSync(OpenRGBClient(), SyncConfig(sync_delay=0.5))
        report = await sync.sync(RGBColor(53, 132, 228))
    """

    def __init__(
        self,
        client: OpenRGBClient,
        config: SyncConfig | None = None,
        ignored: Iterable[str] = (),
    ) -> None:
        self._client = client
        self._config = config or SyncConfig()
        self._ignored: frozenset[str] = frozenset(ignored)
        self._in_progress = False
        self._attempts = 0
        self._last_color: RGBColor | None = None
        self._reconnect_task: asyncio.Task | None = None

    @property
    def client(self) -> OpenRGBClient:
        return self._client

    @property
    def ignored(self) -> frozenset[str]:
        return self._ignored

    @property
    def reconnection_attempts(self) -> int:
        return self._attempts

    @property
    def reconnecting(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    @property
    def reconnect_task(self) -> asyncio.Task | None:
        return self._reconnect_task

    @property
    def last_color(self) -> RGBColor | None:
        return self._last_color

    def attach(self, client: OpenRGBClient) -> None:
        """Switch to another client, dropping any reconnection pending for
        the old one. Config and ignore list are kept."""
        self.cancel_reconnect()
        self._client = client

    def set_ignored(self, stable_ids: Iterable[str]) -> None:
        self._ignored = frozenset(stable_ids)

    async def ensure_connected(self) -> bool:
        """Connect and discover if the client is not connected.

        Returns False instead of raising when the server is unreachable.
        """
        if self._client.connected:
            return True
        logger.info("OpenRGB not connected, attempting to connect...")
        try:
            await self._client.connect()
            await self._client.discover_devices()
        except OpenRGBError as e:
            logger.error("Failed to initialize OpenRGB: %s", format_error_message(e))
            self._client.disconnect()
            return False
        self._attempts = 0
        return True

    async def reconnect(self) -> bool:
        """Retry :meth:`ensure_connected` with linear backoff until it works
        or the retry policy runs out."""
        policy = self._config.retry
        self._client.disconnect()
        while self._attempts < policy.max_attempts:
            self._attempts += 1
            delay = policy.delay_for(self._attempts)
            logger.info(
                "Attempting reconnection in %.1f seconds (attempt %d/%d)",
                delay, self._attempts, policy.max_attempts,
            )
            await asyncio.sleep(delay)
            if await self.ensure_connected():
                return True
        logger.error("Max reconnection attempts reached, giving up")
        return False

    def schedule_reconnect(self) -> asyncio.Task | None:
        """Start :meth:`reconnect` in the background unless one is pending.

        Once reconnected, the last requested color is pushed again.
        """
        if self.reconnecting:
            logger.debug("Reconnection already scheduled")
            return self._reconnect_task
        if self._attempts >= self._config.retry.max_attempts:
            logger.error("Max reconnection attempts reached, giving up")
            return None
        self._reconnect_task = asyncio.ensure_future(self._reconnect_and_resync())
        return self._reconnect_task

    def cancel_reconnect(self) -> None:
        """Stop a pending background reconnection and reset the attempt count."""
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self._reconnect_task = None
        self._attempts = 0

    async def _reconnect_and_resync(self) -> SyncReport | None:
        try:
            connected = await self.reconnect()
        finally:
            if self._reconnect_task is asyncio.current_task():
                self._reconnect_task = None
        if not connected or self._last_color is None:
            return None
        logger.info(
            "Syncing current color after reconnection: %s", self._last_color.to_hex()
        )
        return await self.sync(self._last_color)

    async def sync(self, color: RGBColor) -> SyncReport:
        """Push ``color`` to every connected, non-ignored device.

        Raises nothing for device-level or connection failures; those are
        logged, visible in the report, and start a background reconnection.
        """
        if self._in_progress:
            logger.info("Sync already in progress, skipping duplicate call")
            return SyncReport(skipped="in progress")

        self._in_progress = True
        try:
            self._last_color = color
            if not self._config.sync_enabled:
                logger.info("Sync is disabled, skipping color update")
                return SyncReport(skipped="disabled")

            if self.reconnecting and not self._client.connected:
                logger.info("Reconnection already in progress, skipping")
                return SyncReport(skipped="reconnecting")

            if not await self.ensure_connected():
                logger.warning(
                    "Unable to establish OpenRGB connection, will retry when "
                    "OpenRGB becomes available"
                )
                self.schedule_reconnect()
                return SyncReport(skipped="not connected")

            if self._config.sync_delay > 0:
                await asyncio.sleep(self._config.sync_delay)

            return await self._push(color)
        finally:
            self._in_progress = False

    async def _push(self, color: RGBColor) -> SyncReport:
        devices = self._client.get_devices()
        targets = [d for d in devices if d.stable_id not in self._ignored]
        ignored = tuple(d.stable_id for d in devices if d.stable_id in self._ignored)
        logger.info("Syncing %d devices (%d ignored)", len(targets), len(ignored))

        try:
            results = await self._client.set_devices_color(
                targets, color, self._config.set_direct_mode_on_update
            )
        except OpenRGBError as e:
            if isinstance(e, OpenRGBConnectionError):
                logger.error("Connection error at %s:%s", e.address, e.port)
            elif isinstance(e, OpenRGBTimeoutError):
                logger.error("Operation timed out after %ss", e.timeout)
            logger.error("Color sync failed - %s", format_error_message(e))
            self._client.disconnect()
            self.schedule_reconnect()
            return SyncReport(ignored=ignored, error=format_error_message(e))

        report = SyncReport(results=tuple(results), ignored=ignored)
        logger.info(
            "Color sync complete (%d/%d devices successful)",
            report.succeeded, len(report.results),
        )
        if report.all_failed:
            logger.error("All devices failed to sync, starting reconnection...")
            self._client.disconnect()
            self.schedule_reconnect()
        return report
