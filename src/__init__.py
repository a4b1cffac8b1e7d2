"""voxcache: fingerprinted on-disk cache for voxelized geometry."""
