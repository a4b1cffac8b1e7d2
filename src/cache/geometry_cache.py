# src/cache/geometry_cache.py — v1
"""Directory-backed cache of voxelized flag volumes.

One artifact file per fingerprint, named by cache_key(). Writes for the
same key are serialized within the process.
"""

from __future__ import annotations

import logging
import os
import threading
import weakref
from collections.abc import Callable
from pathlib import Path
from typing import Any

from voxcache.cache.fingerprint import cache_key
from voxcache.cache.models import Fingerprint
from voxcache.cache.voxel_codec import load_voxelized_mesh, save_voxelized_mesh
from voxcache.logging.context import clear_context, set_artifact_context

logger = logging.getLogger(__name__)


class GeometryCache:
    """Load-or-compute cache for voxelized geometry."""

    def __init__(
        self,
        cache_root: Path | str,
        atomic_writes: bool = True,
        suffix: str = ".vox",
    ) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)
        self._atomic_writes = atomic_writes
        self._suffix = suffix
        # Entries vanish once no caller holds the lock.
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def artifact_path(self, fingerprint: Fingerprint) -> Path:
        """Return file path for a fingerprint."""
        return self._root / f"{cache_key(fingerprint)}{self._suffix}"

    def load(self, fingerprint: Fingerprint, flags: Any) -> bool:
        """Fill ``flags`` from the cached artifact. False on a miss."""
        path = self.artifact_path(fingerprint)
        with self._lock_for(fingerprint):
            set_artifact_context(path.name, "load", fingerprint.device_name)
            try:
                return load_voxelized_mesh(path, fingerprint, flags)
            finally:
                clear_context()

    def store(self, fingerprint: Fingerprint, flags: Any) -> bool:
        """Persist ``flags`` for ``fingerprint``.

        With atomic writes the artifact only appears once it is complete; a
        failed write never replaces an existing good artifact.
        """
        path = self.artifact_path(fingerprint)
        with self._lock_for(fingerprint):
            set_artifact_context(path.name, "store", fingerprint.device_name)
            try:
                if not self._atomic_writes:
                    ok = save_voxelized_mesh(path, fingerprint, flags)
                    if not ok:
                        _unlink_quietly(path)
                    return ok

                tmp = path.with_name(path.name + ".tmp")
                if not save_voxelized_mesh(tmp, fingerprint, flags):
                    _unlink_quietly(tmp)
                    return False
                try:
                    os.replace(tmp, path)
                except OSError as e:
                    logger.warning("Failed to publish artifact %s: %s", path, e)
                    _unlink_quietly(tmp)
                    return False
                return True
            finally:
                clear_context()

    def load_or_voxelize(
        self,
        fingerprint: Fingerprint,
        flags: Any,
        voxelize: Callable[[Any], None],
    ) -> bool:
        """Load ``flags`` from cache, or run ``voxelize(flags)`` and store it.

        Returns True on a cache hit, False when ``voxelize`` had to run.
        """
        if self.load(fingerprint, flags):
            logger.info("Loaded voxelized geometry from %s", self.artifact_path(fingerprint))
            return True
        voxelize(flags)
        if not self.store(fingerprint, flags):
            logger.warning("Voxelized geometry could not be cached")
        return False

    def evict(self, fingerprint: Fingerprint) -> bool:
        """Remove the artifact for ``fingerprint``. True if a file was removed."""
        path = self.artifact_path(fingerprint)
        with self._lock_for(fingerprint):
            if not path.exists():
                return False
            path.unlink()
            return True

    def list_artifacts(self) -> list[Path]:
        """List all artifact files, sorted by name."""
        if not self._root.is_dir():
            return []
        return sorted(self._root.glob(f"*{self._suffix}"))

    def purge(self) -> int:
        """Delete every artifact and leftover temp file. Returns the count removed."""
        removed = 0
        for path in self.list_artifacts() + sorted(self._root.glob(f"*{self._suffix}.tmp")):
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                continue
        return removed

    def _lock_for(self, fingerprint: Fingerprint) -> threading.Lock:
        key = cache_key(fingerprint)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
