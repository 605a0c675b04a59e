"""MCP server entry point for OpenRGB color sync.

Exposes the client's operation set as tools and the current device list
as a resource, using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any

from mcp.server.fastmcp import FastMCP

from .client import OpenRGBClient
from .config import ClientConfig
from .errors import OpenRGBError, format_error_message
from .identity import build_fingerprint, hash_fingerprint
from .models.color import RGBColor
from .sync import AccentSync

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "openrgb-sync",
    instructions="Discover OpenRGB controllers and set them to a solid color",
)

# Global connection state
_client: OpenRGBClient | None = None
_sync: AccentSync | None = None


def _get_client() -> OpenRGBClient:
    """Get the connected client, raising if not connected."""
    if _client is None or not _client.connected:
        raise RuntimeError(
            "Not connected to OpenRGB. Use the 'connect' tool first."
        )
    return _client


def _ensure_sync() -> AccentSync:
    """The sync layer, bound to the one shared client."""
    global _client, _sync
    if _client is None:
        _client = OpenRGBClient(ClientConfig.from_env())
    if _sync is None:
        _sync = AccentSync(_client)
    elif _sync.client is not _client:
        _sync.attach(_client)
    return _sync


def _resolve_color(
    color: str | None, r: int | None, g: int | None, b: int | None
) -> RGBColor:
    if color:
        return RGBColor.from_hex(color)
    return RGBColor.validate({"r": r, "g": g, "b": b})


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
async def connect(
    host: str | None = None,
    port: int | None = None,
    client_name: str | None = None,
) -> dict[str, Any]:
    """Connect to an OpenRGB server and discover its controllers.

    Defaults come from OPENRGB_HOST / OPENRGB_PORT / OPENRGB_CLIENT_NAME,
    then 127.0.0.1:6742.
    """
    global _client
    if _client is not None and _client.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "devices": _client.get_device_count(),
        }

    try:
        base = ClientConfig.from_env()
        config = replace(
            base,
            host=host or base.host,
            port=port or base.port,
            client_name=client_name or base.client_name,
        )
    except ValueError as e:
        return {"error": str(e)}

    if _sync is not None:
        _sync.cancel_reconnect()
    if _client is not None:
        # Never leave a stale connection behind
        _client.disconnect()
    client = OpenRGBClient(config)
    try:
        await client.connect()
        devices = await client.discover_devices()
    except OpenRGBError as e:
        logger.warning("Connect to %s:%d failed: %s", config.host, config.port, e)
        client.disconnect()
        return {"connected": False, "error": format_error_message(e)}

    _client = client
    _ensure_sync()
    return {
        "connected": True,
        "host": config.host,
        "port": config.port,
        "devices": [d.to_dict() for d in devices],
    }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the connection to the OpenRGB server."""
    global _client
    if _sync is not None:
        _sync.cancel_reconnect()
    if _client is not None:
        _client.disconnect()
        _client = None
    return {"disconnected": True}


# ─── DEVICE TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
async def discover_devices() -> dict[str, Any]:
    """Re-enumerate controllers. Replaces the current device list."""
    client = _get_client()
    try:
        devices = await client.discover_devices()
    except OpenRGBError as e:
        return {"error": format_error_message(e)}
    return {"devices": [d.to_dict() for d in devices]}


@mcp.tool()
def list_devices() -> dict[str, Any]:
    """List devices from the last discovery without contacting the server."""
    client = _get_client()
    ignored = _sync.ignored if _sync else frozenset()
    return {
        "devices": [
            dict(d.to_dict(), ignored=d.stable_id in ignored)
            for d in client.get_devices()
        ],
        "count": client.get_device_count(),
    }


@mcp.tool()
def get_device_details(stable_id: str) -> dict[str, Any]:
    """Full descriptor (modes, zones, LED count) of one device.

    Args:
        stable_id: The device's stable id from list_devices.
    """
    client = _get_client()
    device = client.get_device_by_stable_id(stable_id)
    if device is None:
        return {"error": f"No device with stable id {stable_id!r}"}
    result = device.to_dict()
    if device.data is not None:
        result["descriptor"] = device.data.to_dict()
    return result


@mcp.tool()
def fingerprint_device(
    serial: str | None = None,
    location: str | None = None,
    name: str | None = None,
    led_count: int = 0,
) -> dict[str, str]:
    """Compute the fingerprint and stable id for a set of device attributes."""
    fingerprint = build_fingerprint(serial, location, name, led_count)
    return {"fingerprint": fingerprint, "stable_id": hash_fingerprint(fingerprint)}


# ─── COLOR TOOLS ──────────────────────────────────────────────────────

@mcp.tool()
async def set_color(
    color: str | None = None,
    r: int | None = None,
    g: int | None = None,
    b: int | None = None,
    devices: list[str] | None = None,
    set_direct_mode: bool = False,
) -> dict[str, Any]:
    """Set devices to a solid color.

    Args:
        color: Hex color like "#3584e4". Takes precedence over r/g/b.
        r: Red 0-255.
        g: Green 0-255.
        b: Blue 0-255.
        devices: Stable ids to target. Defaults to every non-ignored device.
        set_direct_mode: Re-select direct mode before each update.
    """
    client = _get_client()
    try:
        rgb = _resolve_color(color, r, g, b)
    except ValueError as e:
        return {"error": str(e)}

    ignored = _sync.ignored if _sync else frozenset()
    targets = client.select_devices(devices, ignored=ignored)
    try:
        results = await client.set_devices_color(targets, rgb, set_direct_mode)
    except OpenRGBError as e:
        return {"error": format_error_message(e)}

    succeeded = sum(1 for res in results if res.success)
    return {
        "color": rgb.to_hex(),
        "results": [res.to_dict() for res in results],
        "succeeded": succeeded,
        "total": len(results),
        "connection_suspect": bool(results) and succeeded == 0,
    }


@mcp.tool()
async def sync_color(color: str) -> dict[str, Any]:
    """Run one accent sync: reconnect if needed, skip ignored devices.

    Args:
        color: Hex color like "#3584e4".
    """
    try:
        rgb = RGBColor.from_hex(color)
        sync = _ensure_sync()
    except ValueError as e:
        return {"error": str(e)}
    report = await sync.sync(rgb)
    return report.to_dict()


@mcp.tool()
def set_ignored_devices(stable_ids: list[str]) -> dict[str, Any]:
    """Replace the set of stable ids excluded from color pushes."""
    try:
        sync = _ensure_sync()
    except ValueError as e:
        return {"error": str(e)}
    sync.set_ignored(stable_ids)
    return {"ignored": sorted(sync.ignored)}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("openrgb://devices")
def resource_devices() -> str:
    """Devices from the last discovery as JSON."""
    if _client is None:
        return json.dumps({"connected": False, "devices": []})
    return json.dumps(
        {
            "connected": _client.connected,
            "devices": [d.to_dict() for d in _client.get_devices()],
        },
        indent=2,
    )


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
