# tests/unit/cache/test_unit_geometry_cache.py — v1
"""Tests for cache/geometry_cache.py."""

from __future__ import annotations

import gc
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from voxcache.cache.fingerprint import cache_key
from voxcache.cache.geometry_cache import GeometryCache


@pytest.fixture
def cache(tmp_path: Path) -> GeometryCache:
    return GeometryCache(cache_root=tmp_path / "cache")


class TestArtifactPath:
    def test_named_by_key(self, cache, fingerprint):
        path = cache.artifact_path(fingerprint)
        assert path.parent == cache.root
        assert path.name == f"{cache_key(fingerprint)}.vox"

    def test_custom_suffix(self, tmp_path, fingerprint):
        cache = GeometryCache(tmp_path, suffix=".flags")
        assert cache.artifact_path(fingerprint).suffix == ".flags"

    def test_creates_root(self, tmp_path):
        GeometryCache(tmp_path / "a" / "b")
        assert (tmp_path / "a" / "b").is_dir()


class TestStoreAndLoad:
    def test_roundtrip(self, cache, fingerprint, random_flags):
        assert cache.store(fingerprint, random_flags)
        dest = np.zeros_like(random_flags)
        assert cache.load(fingerprint, dest)
        assert np.array_equal(dest, random_flags)

    def test_miss(self, cache, fingerprint):
        dest = bytearray(b"\x02") * 10
        assert not cache.load(fingerprint, dest)
        assert dest == bytearray(b"\x02") * 10

    def test_distinct_fingerprints(self, cache, fingerprint, make_fingerprint):
        other = make_fingerprint(center=(1.0, 0.0, 0.0))
        cache.store(fingerprint, bytes([1]) * 10)
        cache.store(other, bytes([2]) * 10)
        dest = bytearray(10)
        assert cache.load(other, dest)
        assert dest == bytearray([2]) * 10
        assert len(cache.list_artifacts()) == 2

    def test_no_temp_file_left(self, cache, fingerprint):
        cache.store(fingerprint, bytes(100))
        assert not list(cache.root.glob("*.tmp"))

    def test_failed_store_keeps_previous_artifact(self, cache, fingerprint):
        cache.store(fingerprint, bytes([5]) * 10)
        with patch("voxcache.cache.geometry_cache.save_voxelized_mesh", return_value=False):
            assert not cache.store(fingerprint, bytes([6]) * 10)
        dest = bytearray(10)
        assert cache.load(fingerprint, dest)
        assert dest == bytearray([5]) * 10
        assert not list(cache.root.glob("*.tmp"))

    def test_failed_publish(self, cache, fingerprint):
        with patch("voxcache.cache.geometry_cache.os.replace", side_effect=OSError("busy")):
            assert not cache.store(fingerprint, bytes(10))
        assert not cache.artifact_path(fingerprint).exists()
        assert not list(cache.root.glob("*.tmp"))

    def test_disk_full_returns_false_and_cleans_up(self, cache, fingerprint, disk_full):
        assert cache.store(fingerprint, bytes(1000)) is False
        assert not list(cache.root.iterdir())

    def test_disk_full_non_atomic(self, tmp_path, fingerprint, disk_full):
        cache = GeometryCache(tmp_path, atomic_writes=False)
        assert cache.store(fingerprint, bytes(1000)) is False
        assert not cache.artifact_path(fingerprint).exists()

    def test_negative_zero_hits_same_artifact(self, cache, make_fingerprint):
        cache.store(make_fingerprint(center=(0.0, 0.0, 0.0)), bytes([4]) * 16)
        dest = bytearray(16)
        assert cache.load(make_fingerprint(center=(-0.0, 0.0, -0.0)), dest)
        assert dest == bytearray([4]) * 16

    def test_non_atomic_failure_removes_file(self, tmp_path, fingerprint):
        cache = GeometryCache(tmp_path, atomic_writes=False)

        def _half_write(path, fp, flags):
            Path(path).write_bytes(b"partial")
            return False

        with patch("voxcache.cache.geometry_cache.save_voxelized_mesh", side_effect=_half_write):
            assert not cache.store(fingerprint, bytes(10))
        assert not cache.artifact_path(fingerprint).exists()

    def test_non_atomic_roundtrip(self, tmp_path, fingerprint):
        cache = GeometryCache(tmp_path, atomic_writes=False)
        assert cache.store(fingerprint, bytes([8]) * 20)
        dest = bytearray(20)
        assert cache.load(fingerprint, dest)
        assert dest == bytearray([8]) * 20


class TestLoadOrVoxelize:
    def test_miss_then_hit(self, cache, fingerprint):
        def _voxelize(flags):
            flags[:] = 1

        voxelize = MagicMock(side_effect=_voxelize)
        first = np.zeros(64, dtype=np.uint8)
        assert cache.load_or_voxelize(fingerprint, first, voxelize) is False
        assert voxelize.call_count == 1
        assert first.all()

        second = np.zeros(64, dtype=np.uint8)
        assert cache.load_or_voxelize(fingerprint, second, voxelize) is True
        assert voxelize.call_count == 1
        assert np.array_equal(first, second)

    def test_store_failure_is_not_fatal(self, cache, fingerprint):
        flags = bytearray(4)
        with patch.object(cache, "store", return_value=False):
            assert cache.load_or_voxelize(fingerprint, flags, lambda f: None) is False


class TestMaintenance:
    def test_evict(self, cache, fingerprint):
        cache.store(fingerprint, bytes(4))
        assert cache.evict(fingerprint)
        assert not cache.evict(fingerprint)
        assert cache.list_artifacts() == []

    def test_purge(self, cache, fingerprint, make_fingerprint):
        cache.store(fingerprint, bytes(4))
        cache.store(make_fingerprint(size=0.5), bytes(4))
        (cache.root / "stale.vox.tmp").write_bytes(b"x")
        (cache.root / "notes.txt").write_text("keep")
        assert cache.purge() == 3
        assert cache.list_artifacts() == []
        assert (cache.root / "notes.txt").exists()


class TestConcurrency:
    def test_same_key_shares_lock(self, cache, fingerprint, make_fingerprint):
        assert cache._lock_for(fingerprint) is cache._lock_for(make_fingerprint())
        assert cache._lock_for(fingerprint) is not cache._lock_for(make_fingerprint(size=1.0))

    def test_locks_are_released(self, cache, fingerprint, make_fingerprint):
        for size in (0.1, 0.2, 0.3):
            cache.store(make_fingerprint(size=size), bytes(4))
        gc.collect()
        assert len(cache._locks) == 0

        held = cache._lock_for(fingerprint)
        assert len(cache._locks) == 1
        assert cache._lock_for(fingerprint) is held

    def test_parallel_stores(self, cache, fingerprint):
        volume = np.random.default_rng(2).integers(0, 256, size=200_000, dtype=np.uint8)
        results: list[bool] = []

        def _worker():
            results.append(cache.store(fingerprint, volume))

        threads = [threading.Thread(target=_worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == [True] * 4
        dest = np.zeros_like(volume)
        assert cache.load(fingerprint, dest)
        assert np.array_equal(dest, volume)
