# src/cache/models.py — v1
"""Cache domain models: Fingerprint, ArtifactInfo.

Float fields are rounded to float32 on construction, which is the precision
they are stored with on disk. Header validation relies on this so that a
freshly built Fingerprint compares equal to the one read back from a file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, field_validator

# Length prefixes at or above this value are rejected when reading a header.
MAX_DEVICE_NAME_BYTES = 1024

Vec3 = tuple[float, float, float]
Mat3 = tuple[Vec3, Vec3, Vec3]


def _to_float32(value: Any, shape: tuple[int, ...]) -> Any:
    """Round to float32 and reshape, returning nested Python floats."""
    try:
        arr = np.asarray(value, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise ValueError(f"expected numeric values, got {value!r}") from e
    if arr.size != int(np.prod(shape)):
        raise ValueError(f"expected {int(np.prod(shape))} values, got {arr.size}")
    # Adding +0.0 folds -0.0 into 0.0, so == and the stored bytes agree.
    arr = np.asarray(arr + np.float32(0.0), dtype=np.float32)
    return arr.reshape(shape).tolist()


class Fingerprint(BaseModel):
    """Geometry parameters a voxelized flag volume was produced with."""

    model_config = ConfigDict(frozen=True)

    device_name: str
    box_size: Vec3
    center: Vec3
    rotation: Mat3
    size: float

    @field_validator("device_name")
    @classmethod
    def validate_device_name(cls, v: str) -> str:
        if len(v.encode("utf-8")) >= MAX_DEVICE_NAME_BYTES:
            raise ValueError(
                f"device_name must encode to fewer than {MAX_DEVICE_NAME_BYTES} bytes"
            )
        return v

    @field_validator("box_size", "center", mode="before")
    @classmethod
    def round_vector(cls, v: Any) -> Any:
        return _to_float32(v, (3,))

    @field_validator("rotation", mode="before")
    @classmethod
    def round_matrix(cls, v: Any) -> Any:
        return _to_float32(v, (3, 3))

    @field_validator("size", mode="before")
    @classmethod
    def round_scalar(cls, v: Any) -> Any:
        return _to_float32(v, ())


class ArtifactInfo(BaseModel):
    """Summary of a stored artifact, as reported by inspect_artifact()."""

    path: Path
    fingerprint: Fingerprint
    header_bytes: int
    body_bytes: int
