# src/cache/errors.py — v1
"""Failure taxonomy for the voxel artifact codec.

These never escape save/load as exceptions (except EngineInitError); the
codec turns them into a False outcome plus a log line.
"""

from __future__ import annotations


class VoxelCacheError(Exception):
    """Base class for recoverable codec failures."""


class ArtifactUnavailableError(VoxelCacheError):
    """Artifact path could not be opened for reading or writing."""


class HeaderMismatchError(VoxelCacheError):
    """Stored header is truncated or does not match the expected fingerprint."""


class CompressionEngineError(VoxelCacheError):
    """zlib reported an error while compressing or decompressing."""


class BufferInconsistencyError(VoxelCacheError):
    """Decompressed size disagrees with the destination buffer length."""


class EngineInitError(MemoryError):
    """zlib stream state could not be allocated."""
