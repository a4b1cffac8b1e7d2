# tests/conftest.py — v2
"""Shared test fixtures for unit and integration tests.

Provides sample fingerprints, flag volumes and artifact paths.
No external dependencies; all I/O goes to tmp_path.
"""

from __future__ import annotations

import errno
import io
from pathlib import Path

import numpy as np
import pytest

from voxcache.cache.models import Fingerprint
from voxcache.logging.context import clear_context

IDENTITY = ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))


def _make_fingerprint(**overrides: object) -> Fingerprint:
    """Fingerprint with sensible defaults, any field overridable."""
    fields: dict[str, object] = {
        "device_name": "GPU0",
        "box_size": (1.0, 1.0, 1.0),
        "center": (0.0, 0.0, 0.0),
        "rotation": IDENTITY,
        "size": 0.01,
    }
    fields.update(overrides)
    return Fingerprint(**fields)


@pytest.fixture
def make_fingerprint():
    """Factory for fingerprints that differ from the default in chosen fields."""
    return _make_fingerprint


@pytest.fixture
def fingerprint() -> Fingerprint:
    """GPU0, unit box at the origin, identity rotation, 0.01 cell size."""
    return _make_fingerprint()


@pytest.fixture
def artifact_path(tmp_path: Path) -> Path:
    return tmp_path / "mesh.vox"


@pytest.fixture
def random_flags() -> np.ndarray:
    """100k voxels of reproducible random content."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=100_000, dtype=np.uint8)


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()


class _FullDiskFile(io.FileIO):
    """Real file whose writes fail like a full disk."""

    def write(self, b):
        raise OSError(errno.ENOSPC, "No space left on device")


def _open_on_full_disk(path, mode="r", *args, **kwargs):
    if "w" in mode:
        return io.BufferedWriter(_FullDiskFile(path, "wb"))
    return open(path, mode, *args, **kwargs)


@pytest.fixture
def disk_full(monkeypatch):
    """Make every artifact write fail with ENOSPC after the file is created."""
    import voxcache.cache.voxel_codec as voxel_codec

    monkeypatch.setattr(voxel_codec, "open", _open_on_full_disk, raising=False)
