"""Connection and sync settings.

Every setting is validated once, when the record is built. Environment
overrides are read by :meth:`ClientConfig.from_env`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6742
DEFAULT_CLIENT_NAME = "GNOME-OpenRGB-AccentSync"
DEFAULT_TIMEOUT = 10.0
DEFAULT_CONNECT_TIMEOUT = 5.0
# Pause after a mode change before the next request; observed, not documented.
DEFAULT_MODE_SETTLE_DELAY = 0.2


@dataclass(frozen=True)
class ClientConfig:
    """Where the OpenRGB server lives and how long to wait for it."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    client_name: str = DEFAULT_CLIENT_NAME
    timeout: float = DEFAULT_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    mode_settle_delay: float = DEFAULT_MODE_SETTLE_DELAY

    def __post_init__(self) -> None:
        if not self.host or not self.host.strip():
            raise ValueError("host must not be empty")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be 1-65535, got {self.port}")
        if not self.client_name:
            raise ValueError("client_name must not be empty")
        if len(self.client_name.encode("utf-8")) > 0xFFFF:
            raise ValueError("client_name is too long")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.connect_timeout <= 0:
            raise ValueError(
                f"connect_timeout must be positive, got {self.connect_timeout}"
            )
        if self.mode_settle_delay < 0:
            raise ValueError(
                f"mode_settle_delay must be >= 0, got {self.mode_settle_delay}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientConfig:
        """Build a config from ``OPENRGB_*`` environment variables."""
        env = os.environ if environ is None else environ
        kwargs: dict = {}
        if env.get("OPENRGB_HOST"):
            kwargs["host"] = env["OPENRGB_HOST"]
        if env.get("OPENRGB_PORT"):
            kwargs["port"] = int(env["OPENRGB_PORT"])
        if env.get("OPENRGB_CLIENT_NAME"):
            kwargs["client_name"] = env["OPENRGB_CLIENT_NAME"]
        if env.get("OPENRGB_TIMEOUT"):
            kwargs["timeout"] = float(env["OPENRGB_TIMEOUT"])
        return cls(**kwargs)


@dataclass(frozen=True)
class RetryPolicy:
    """Linear reconnection backoff: ``base_delay * attempt``, capped."""

    max_attempts: int = 10
    base_delay: float = 5.0
    max_delay: float = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be >= 0")

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * attempt, self.max_delay)


@dataclass(frozen=True)
class SyncConfig:
    """Behaviour of the accent sync loop built on top of the client."""

    sync_enabled: bool = True
    sync_delay: float = 0.0
    set_direct_mode_on_update: bool = False
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        if self.sync_delay < 0:
            raise ValueError(f"sync_delay must be >= 0, got {self.sync_delay}")
