# src/cache/compression.py — v1
"""Chunked zlib pipeline between a flag volume and a byte stream.

Working memory stays O(CHUNK) regardless of the volume length. Chunk size
and effort level are part of the artifact format and are not configurable.
"""

from __future__ import annotations

import logging
import zlib
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, BinaryIO

import numpy as np

from voxcache.cache.errors import (
    BufferInconsistencyError,
    CompressionEngineError,
    EngineInitError,
)

logger = logging.getLogger(__name__)

CHUNK = 16384
LEVEL = 6


def as_flag_view(flags: Any, writable: bool = False) -> np.ndarray:
    """Return a flat uint8 view over ``flags`` without copying.

    Accepts numpy uint8 arrays and any object exposing the buffer protocol
    (bytes, bytearray, memoryview).

    Raises:
        TypeError: If the buffer is not contiguous uint8 data.
        ValueError: If ``writable`` is requested on a read-only buffer.
    """
    if isinstance(flags, np.ndarray):
        arr = flags
    else:
        try:
            arr = np.frombuffer(flags, dtype=np.uint8)
        except (TypeError, ValueError) as e:
            raise TypeError(f"flag volume must be a uint8 buffer, got {type(flags).__name__}") from e
    if arr.dtype != np.uint8:
        raise TypeError(f"flag volume must have dtype uint8, got {arr.dtype}")
    if not arr.flags.c_contiguous:
        raise TypeError("flag volume must be C-contiguous")
    if writable and not arr.flags.writeable:
        raise ValueError("destination flag volume is read-only")
    return arr.reshape(-1)


@contextmanager
def deflate_engine(level: int = LEVEL) -> Iterator[Any]:
    """Scoped zlib compressor. Allocation failure raises EngineInitError."""
    try:
        engine = zlib.compressobj(level)
    except MemoryError as e:
        raise EngineInitError("could not allocate deflate stream") from e
    try:
        yield engine
    finally:
        del engine
        logger.debug("Released deflate stream")


@contextmanager
def inflate_engine() -> Iterator[Any]:
    """Scoped zlib decompressor. Allocation failure raises EngineInitError."""
    try:
        engine = zlib.decompressobj()
    except MemoryError as e:
        raise EngineInitError("could not allocate inflate stream") from e
    try:
        yield engine
    finally:
        del engine
        logger.debug("Released inflate stream")


def compress_to_stream(flags: Any, stream: BinaryIO) -> int:
    """Compress the whole volume into ``stream``.

    Returns the number of compressed bytes written.

    Raises:
        CompressionEngineError: zlib reported an error.
        OSError: The stream rejected a write.
    """
    view = as_flag_view(flags)
    total = len(view)
    written = 0
    with deflate_engine() as engine:
        offset = 0
        # An empty volume still gets a terminated (empty) zlib stream.
        while True:
            chunk = view[offset : offset + CHUNK]
            offset += len(chunk)
            last = offset >= total
            try:
                segments = [engine.compress(chunk.data)]
                if last:
                    segments.append(engine.flush(zlib.Z_FINISH))
            except zlib.error as e:
                raise CompressionEngineError(f"Error compressing memory: {e}") from e
            for segment in segments:
                if segment:
                    stream.write(segment)
                    written += len(segment)
            if last:
                break
    return written


def decompress_from_stream(stream: BinaryIO, flags: Any) -> None:
    """Inflate ``stream`` into ``flags``, which must be filled exactly.

    On any failure the destination is zeroed before the exception leaves
    this function, so a failed load never looks like valid data.

    Raises:
        CompressionEngineError: zlib reported an error.
        BufferInconsistencyError: Too much data, or the stream ended early.
    """
    view = as_flag_view(flags, writable=True)
    try:
        _inflate_into(stream, view)
    except Exception:
        view.fill(0)
        raise


def _inflate_into(stream: BinaryIO, view: np.ndarray) -> None:
    total = len(view)
    remaining = total
    with inflate_engine() as engine:
        while remaining > 0:
            chunk = stream.read(CHUNK)
            if chunk is None:
                # Non-blocking source with nothing ready yet.
                continue
            if not chunk:
                break
            out = _inflate(engine, chunk, remaining)
            have = len(out)
            if have > remaining:
                raise BufferInconsistencyError("Buffer overflow after decompressing data")
            start = total - remaining
            view[start : start + have] = np.frombuffer(out, dtype=np.uint8)
            remaining -= have

        if remaining > 0:
            raise BufferInconsistencyError(
                f"Buffer not complete after decompressing data ({remaining} bytes missing)"
            )

        # The volume is full; the stream must end here, trailer included.
        # An empty volume may also come with no body at all.
        started = total > 0
        while not engine.eof:
            chunk = engine.unconsumed_tail or stream.read(CHUNK)
            if chunk is None:
                continue
            if not chunk:
                if not started:
                    return
                raise BufferInconsistencyError("Compressed stream ended before its trailer")
            started = True
            if _inflate(engine, chunk, 1):
                raise BufferInconsistencyError("Buffer overflow after decompressing data")


def _inflate(engine: Any, data: bytes, limit: int) -> bytes:
    try:
        return engine.decompress(data, limit)
    except zlib.error as e:
        raise CompressionEngineError(f"Error decompressing memory: {e}") from e
