"""OpenRGB SDK client with stable device identity and solid-color sync."""

from .client import OpenRGBClient
from .config import ClientConfig, RetryPolicy, SyncConfig
from .errors import (
    OpenRGBError,
    OpenRGBConnectionError,
    OpenRGBProtocolError,
    OpenRGBParseError,
    OpenRGBTimeoutError,
    DiscoveryError,
)
from .models import RGBColor, Device, DeviceDescriptor, SyncResult

__version__ = "0.1.0"
