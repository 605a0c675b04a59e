"""Stable controller identity.

The server numbers controllers by enumeration order, which changes when
hardware is added or the server restarts. A stable id is instead derived
from the attributes that identify the hardware itself::

    fingerprint = "{serial}|{location}|{name}|leds:{led_count}"
    stable_id   = sha256(fingerprint).hexdigest()[:16]
"""

from __future__ import annotations

import hashlib
import re
from typing import Any, Callable

from .models.device import DeviceDescriptor

SERIAL_PLACEHOLDER = "serial:false"
LOCATION_PLACEHOLDER = "loc:false"
NAME_PLACEHOLDER = "name:false"
STABLE_ID_LENGTH = 16

DigestFactory = Callable[[bytes], Any]

_WHITESPACE = re.compile(r"\s+")
_ALL_ZEROS = re.compile(r"0+")


def _normalize(value: str | None, placeholder: str, zeros_missing: bool = False) -> str:
    if not value:
        return placeholder
    text = _WHITESPACE.sub(" ", value.strip().lower())
    if not text:
        return placeholder
    # Uninitialised hardware often reports a serial of all zeros
    if zeros_missing and _ALL_ZEROS.fullmatch(text):
        return placeholder
    return text


def build_fingerprint(
    serial: str | None,
    location: str | None,
    name: str | None,
    led_count: int,
) -> str:
    """Build the normalized fingerprint string for a controller."""
    return "|".join(
        (
            _normalize(serial, SERIAL_PLACEHOLDER, zeros_missing=True),
            _normalize(location, LOCATION_PLACEHOLDER),
            _normalize(name, NAME_PLACEHOLDER),
            f"leds:{led_count}",
        )
    )


def hash_fingerprint(
    fingerprint: str, digest: DigestFactory = hashlib.sha256
) -> str:
    """First 16 hex characters of the fingerprint digest."""
    return digest(fingerprint.encode("utf-8")).hexdigest()[:STABLE_ID_LENGTH]


def stable_id_for(
    descriptor: DeviceDescriptor, digest: DigestFactory = hashlib.sha256
) -> str:
    fingerprint = build_fingerprint(
        descriptor.serial,
        descriptor.location,
        descriptor.name,
        descriptor.led_count,
    )
    return hash_fingerprint(fingerprint, digest)
