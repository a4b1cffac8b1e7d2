# src/cache/header_codec.py — v1
"""Field-by-field serialization of the artifact header.

Layout, in this order and never reordered:

    device_name  size_t length prefix (native width and byte order) + raw bytes
    box_size     3 x float32
    center       3 x float32
    rotation     9 x float32, row-major
    size         1 x float32

Every read returns None rather than a partial value when the stream runs out.
"""

from __future__ import annotations

import io
import struct
from enum import Enum
from typing import Any, BinaryIO

from voxcache.cache.models import MAX_DEVICE_NAME_BYTES, Fingerprint


class FieldKind(str, Enum):
    """Wire type of a header field."""

    TEXT = "text"
    VEC3 = "vec3"
    MAT3 = "mat3"
    SCALAR = "scalar"


# "@N" is only valid in native mode; a lone item carries no alignment padding.
_LENGTH = struct.Struct("@N")

_FLOATS: dict[FieldKind, struct.Struct] = {
    FieldKind.VEC3: struct.Struct("=3f"),
    FieldKind.MAT3: struct.Struct("=9f"),
    FieldKind.SCALAR: struct.Struct("=f"),
}

HEADER_LAYOUT: tuple[tuple[str, FieldKind], ...] = (
    ("device_name", FieldKind.TEXT),
    ("box_size", FieldKind.VEC3),
    ("center", FieldKind.VEC3),
    ("rotation", FieldKind.MAT3),
    ("size", FieldKind.SCALAR),
)


def write_field(stream: BinaryIO, kind: FieldKind, value: Any) -> None:
    """Write one field. Raises OSError if the stream rejects the write."""
    if kind is FieldKind.TEXT:
        raw = value.encode("utf-8")
        stream.write(_LENGTH.pack(len(raw)))
        stream.write(raw)
        return
    stream.write(_FLOATS[kind].pack(*_flatten(kind, value)))


def read_field(stream: BinaryIO, kind: FieldKind) -> Any | None:
    """Read one field, or None if the stream is short or the length is oversized."""
    if kind is FieldKind.TEXT:
        prefix = stream.read(_LENGTH.size)
        if len(prefix) != _LENGTH.size:
            return None
        (length,) = _LENGTH.unpack(prefix)
        if length >= MAX_DEVICE_NAME_BYTES:
            return None
        raw = stream.read(length)
        if len(raw) != length:
            return None
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return None

    layout = _FLOATS[kind]
    raw = stream.read(layout.size)
    if len(raw) != layout.size:
        return None
    values = layout.unpack(raw)
    if kind is FieldKind.SCALAR:
        return values[0]
    if kind is FieldKind.MAT3:
        return (values[0:3], values[3:6], values[6:9])
    return values


def fields_equal(read_value: Any, expected_value: Any) -> bool:
    """Exact equality. No tolerance is applied to float fields."""
    if read_value is None:
        return False
    return read_value == expected_value


def write_header(stream: BinaryIO, fingerprint: Fingerprint) -> None:
    """Write every fingerprint field in layout order."""
    for name, kind in HEADER_LAYOUT:
        write_field(stream, kind, getattr(fingerprint, name))


def check_header(stream: BinaryIO, fingerprint: Fingerprint) -> str | None:
    """Validate the stored header against ``fingerprint``.

    Returns None when every field matches, otherwise the name of the first
    field that was missing or different. Reading stops at that field.
    """
    for name, kind in HEADER_LAYOUT:
        if not fields_equal(read_field(stream, kind), getattr(fingerprint, name)):
            return name
    return None


def read_header(stream: BinaryIO) -> Fingerprint | None:
    """Read a stored header without validating it against anything."""
    values: dict[str, Any] = {}
    for name, kind in HEADER_LAYOUT:
        value = read_field(stream, kind)
        if value is None:
            return None
        values[name] = value
    try:
        return Fingerprint(**values)
    except ValueError:
        return None


def encode_header(fingerprint: Fingerprint) -> bytes:
    """Serialized header bytes, as they would appear at the start of a file."""
    buf = io.BytesIO()
    write_header(buf, fingerprint)
    return buf.getvalue()


def _flatten(kind: FieldKind, value: Any) -> tuple[float, ...]:
    if kind is FieldKind.SCALAR:
        return (value,)
    if kind is FieldKind.MAT3:
        return tuple(x for row in value for x in row)
    return tuple(value)
