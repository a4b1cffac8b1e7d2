# src/cache/cache_factory.py — v3
"""Factory for geometry cache instantiation."""

from __future__ import annotations

from voxcache.cache.geometry_cache import GeometryCache
from voxcache.config.settings import Settings


def create_geometry_cache(settings: Settings | None = None) -> GeometryCache | None:
    """Instantiate the configured geometry cache.

    Args:
        settings: Application settings. Defaults to a cache under ~/.voxcache.

    Returns:
        Configured GeometryCache, or None when caching is disabled.
    """
    if settings is None:
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
    if not settings.cache_enabled:
        return None
    return GeometryCache(
        cache_root=settings.cache_root,
        atomic_writes=settings.cache_atomic_writes,
        suffix=settings.cache_file_suffix,
    )
