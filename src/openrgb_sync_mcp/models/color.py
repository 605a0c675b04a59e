"""RGBA color with forgiving channel validation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

CHANNEL_MIN = 0
CHANNEL_MAX = 255
DEFAULT_ALPHA = 255


def _clamp_channel(value: Any, default: int) -> int:
    """Floor and clamp a channel; anything that is not a finite number
    becomes ``default``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return max(CHANNEL_MIN, min(CHANNEL_MAX, math.floor(value)))


@dataclass(frozen=True)
class RGBColor:
    """Four 8-bit channels. Construction floors and clamps every channel,
    so an instance always holds integers within 0-255."""

    r: int = 0
    g: int = 0
    b: int = 0
    a: int = DEFAULT_ALPHA

    def __post_init__(self) -> None:
        object.__setattr__(self, "r", _clamp_channel(self.r, 0))
        object.__setattr__(self, "g", _clamp_channel(self.g, 0))
        object.__setattr__(self, "b", _clamp_channel(self.b, 0))
        object.__setattr__(self, "a", _clamp_channel(self.a, DEFAULT_ALPHA))

    @classmethod
    def create(
        cls,
        r: Any = 0,
        g: Any = 0,
        b: Any = 0,
        a: Any = DEFAULT_ALPHA,
    ) -> RGBColor:
        return cls(r, g, b, a)

    @classmethod
    def validate(cls, value: RGBColor | Mapping[str, Any]) -> RGBColor:
        """Return a clamped copy of a color or ``{"r", "g", "b", "a"}`` mapping.

        Missing or invalid channels default to 0, alpha to 255.
        """
        if isinstance(value, RGBColor):
            return cls.create(value.r, value.g, value.b, value.a)
        return cls.create(
            value.get("r"),
            value.get("g"),
            value.get("b"),
            value.get("a", DEFAULT_ALPHA),
        )

    @classmethod
    def from_hex(cls, text: str) -> RGBColor:
        """Parse ``#rrggbb`` or ``#rrggbbaa``."""
        digits = text.strip().lstrip("#")
        if len(digits) not in (6, 8):
            raise ValueError(f"Expected #rrggbb or #rrggbbaa, got {text!r}")
        try:
            channels = bytes.fromhex(digits)
        except ValueError as e:
            raise ValueError(f"Invalid hex color {text!r}") from e
        return cls(*channels)

    def to_hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    def to_dict(self) -> dict[str, int]:
        return {"r": self.r, "g": self.g, "b": self.b, "a": self.a}


def is_valid_rgb_color(value: Any) -> bool:
    """True if ``value`` already has four finite channels within 0-255."""
    if isinstance(value, RGBColor):
        channels = [value.r, value.g, value.b, value.a]
    elif isinstance(value, Mapping):
        if not all(key in value for key in ("r", "g", "b", "a")):
            return False
        channels = [value["r"], value["g"], value["b"], value["a"]]
    else:
        return False

    for channel in channels:
        if isinstance(channel, bool) or not isinstance(channel, (int, float)):
            return False
        if isinstance(channel, float) and not math.isfinite(channel):
            return False
        if not CHANNEL_MIN <= channel <= CHANNEL_MAX:
            return False
    return True
