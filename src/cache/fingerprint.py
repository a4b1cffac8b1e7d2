# src/cache/fingerprint.py — v2
"""Fingerprint construction and cache keys.

The cache key is the SHA-256 of the serialized header, so two fingerprints
share a key exactly when their stored headers would be byte-identical.
"""

from __future__ import annotations

import hashlib
from typing import Any

from voxcache.cache.header_codec import encode_header
from voxcache.cache.models import Fingerprint


def device_display_name(device: Any) -> str:
    """Name used for the device_name field.

    Accepts a plain string, an object with ``name``, or an object whose
    ``info`` carries the ``name``.
    """
    if isinstance(device, str):
        return device
    info = getattr(device, "info", None)
    if info is not None and isinstance(getattr(info, "name", None), str):
        return info.name
    name = getattr(device, "name", None)
    if isinstance(name, str):
        return name
    raise TypeError(f"cannot derive a device name from {type(device).__name__}")


def fingerprint_for_device(
    device: Any,
    box_size: Any,
    center: Any,
    rotation: Any,
    size: float,
) -> Fingerprint:
    """Build the fingerprint for a voxelization run on ``device``."""
    return Fingerprint(
        device_name=device_display_name(device),
        box_size=box_size,
        center=center,
        rotation=rotation,
        size=size,
    )


def cache_key(fingerprint: Fingerprint) -> str:
    """Filename-safe key identifying the artifact for ``fingerprint``."""
    return hashlib.sha256(encode_header(fingerprint)).hexdigest()
