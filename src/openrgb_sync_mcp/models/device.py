"""Controller descriptors as reported by the server, and the device records
built from them during discovery."""

from __future__ import annotations

from dataclasses import dataclass, field

from .color import RGBColor


@dataclass(frozen=True)
class DeviceMode:
    """One selectable lighting mode of a controller."""

    name: str = ""
    value: int = 0
    flags: int = 0
    speed_min: int = 0
    speed_max: int = 0
    colors_min: int = 0
    colors_max: int = 0
    speed: int = 0
    direction: int = 0
    color_mode: int = 0
    colors: tuple[RGBColor, ...] = ()

    def is_direct(self) -> bool:
        return "direct" in self.name.lower()


@dataclass(frozen=True)
class DeviceZone:
    """A group of LEDs. Matrix zones carry their dimensions; the matrix
    map itself is skipped and only its length kept."""

    name: str = ""
    type: int = 0
    leds_min: int = 0
    leds_max: int = 0
    leds_count: int = 0
    matrix_height: int | None = None
    matrix_width: int | None = None
    matrix_length: int = 0


@dataclass(frozen=True)
class DeviceLED:
    name: str = ""
    value: int = 0


@dataclass(frozen=True)
class DeviceDescriptor:
    """Full capability payload of one controller."""

    name: str = ""
    description: str = ""
    version: str = ""
    serial: str = ""
    location: str = ""
    modes: tuple[DeviceMode, ...] = ()
    zones: tuple[DeviceZone, ...] = ()
    leds: tuple[DeviceLED, ...] = ()
    colors: tuple[RGBColor, ...] = ()
    active_mode: int = 0
    data_size: int = 0
    command_type: int = 0

    @property
    def led_count(self) -> int:
        return len(self.leds)

    def find_direct_mode(self) -> int:
        """Index of the first mode whose name contains "direct", else 0."""
        for index, mode in enumerate(self.modes):
            if mode.is_direct():
                return index
        return 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "serial": self.serial,
            "location": self.location,
            "active_mode": self.active_mode,
            "modes": [m.name for m in self.modes],
            "zones": [
                {
                    "name": z.name,
                    "type": z.type,
                    "leds": z.leds_count,
                    "matrix": (
                        [z.matrix_height, z.matrix_width]
                        if z.matrix_height is not None
                        else None
                    ),
                }
                for z in self.zones
            ],
            "led_count": self.led_count,
        }


@dataclass(frozen=True)
class Device:
    """A controller found during one discovery pass.

    ``ephemeral_id`` is the enumeration index on the server and is only
    meaningful for the current pass. ``stable_id`` is derived from the
    descriptor and survives re-enumeration.
    """

    ephemeral_id: int
    stable_id: str
    name: str
    led_count: int
    direct_mode_index: int = 0
    data: DeviceDescriptor | None = None

    @classmethod
    def failed(cls, ephemeral_id: int) -> Device:
        """Placeholder for a slot whose descriptor could not be fetched."""
        return cls(
            ephemeral_id=ephemeral_id,
            stable_id=f"failed-{ephemeral_id}",
            name=f"Device {ephemeral_id} (Failed)",
            led_count=0,
            direct_mode_index=0,
            data=None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.ephemeral_id,
            "stable_id": self.stable_id,
            "name": self.name,
            "led_count": self.led_count,
            "direct_mode_index": self.direct_mode_index,
            "failed": self.data is None,
        }


@dataclass(frozen=True)
class DeviceProbe:
    """Outcome of fetching one controller during discovery: either a
    descriptor or the error that prevented it."""

    ephemeral_id: int
    descriptor: DeviceDescriptor | None = None
    error: str | None = None
    mode_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.descriptor is not None


@dataclass(frozen=True)
class SyncResult:
    """Per-device outcome of a color push."""

    device_id: int
    success: bool
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {"device_id": self.device_id, "success": self.success}
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class SyncReport:
    """Outcome of one accent sync: push results plus what was filtered."""

    results: tuple[SyncResult, ...] = ()
    ignored: tuple[str, ...] = ()
    skipped: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def all_failed(self) -> bool:
        return bool(self.results) and self.succeeded == 0

    def to_dict(self) -> dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "ignored": list(self.ignored),
            "skipped": self.skipped,
            "error": self.error,
            "succeeded": self.succeeded,
            "total": len(self.results),
        }
