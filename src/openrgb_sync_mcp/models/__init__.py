"""Data models for colors, controller descriptors and devices."""

from .color import RGBColor, is_valid_rgb_color
from .device import (
    DeviceMode,
    DeviceZone,
    DeviceLED,
    DeviceDescriptor,
    Device,
    DeviceProbe,
    SyncResult,
    SyncReport,
)
