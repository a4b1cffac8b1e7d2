# src/cache/voxel_codec.py — v1
"""Save and load voxelized flag volumes keyed by their geometry fingerprint.

Both entry points report a boolean outcome. Diagnostics go to the logger;
callers decide whether a failed load means "voxelize again" or a real fault.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from voxcache.cache.compression import as_flag_view, compress_to_stream, decompress_from_stream
from voxcache.cache.errors import HeaderMismatchError, VoxelCacheError
from voxcache.cache.header_codec import check_header, read_header, write_header
from voxcache.cache.models import ArtifactInfo, Fingerprint

logger = logging.getLogger(__name__)


def save_voxelized_mesh(
    path: str | os.PathLike[str],
    fingerprint: Fingerprint,
    flags: Any,
) -> bool:
    """Write ``fingerprint`` and the compressed ``flags`` to ``path``.

    Existing content is truncated. A False result may leave a malformed file
    behind; callers must not treat it as a usable artifact.
    """
    view = as_flag_view(flags)
    try:
        out_file = open(path, "wb")
    except OSError as e:
        logger.warning("%s: could not open file to write (%s)", path, e)
        return False

    # close() flushes buffered bytes too, so it stays inside the guarded block.
    try:
        with out_file:
            write_header(out_file, fingerprint)
            body = compress_to_stream(view, out_file)
    except VoxelCacheError as e:
        logger.error("%s: %s", path, e)
        return False
    except OSError as e:
        logger.error("%s: write failed (%s)", path, e)
        return False

    logger.debug("%s: saved %d voxels into %d compressed bytes", path, len(view), body)
    return True


def load_voxelized_mesh(
    path: str | os.PathLike[str],
    fingerprint: Fingerprint,
    flags: Any,
) -> bool:
    """Fill ``flags`` from the artifact at ``path`` if its header matches.

    ``flags`` must already have the expected length. It is left untouched
    when the file is missing or the header does not match, and zeroed when
    the body turns out to be unusable.
    """
    view = as_flag_view(flags, writable=True)
    try:
        in_file = open(path, "rb")
    except OSError:
        logger.info("%s: could not open file to read", path)
        return False

    with in_file:
        try:
            mismatch = check_header(in_file, fingerprint)
            if mismatch is not None:
                raise HeaderMismatchError(f"Header does not match (field {mismatch!r})")
            decompress_from_stream(in_file, view)
        except HeaderMismatchError as e:
            logger.info("%s: %s", path, e)
            return False
        except VoxelCacheError as e:
            logger.warning("%s: %s", path, e)
            return False
        except OSError as e:
            logger.warning("%s: read failed (%s)", path, e)
            return False

    logger.debug("%s: loaded %d voxels", path, len(view))
    return True


def inspect_artifact(path: str | os.PathLike[str]) -> ArtifactInfo | None:
    """Describe a stored artifact without decompressing its body."""
    p = Path(path)
    try:
        with open(p, "rb") as f:
            stored = read_header(f)
            header_bytes = f.tell()
            file_bytes = os.fstat(f.fileno()).st_size
    except OSError as e:
        logger.warning("%s: could not open file to read (%s)", p, e)
        return None
    if stored is None:
        logger.info("%s: header is truncated or corrupt", p)
        return None
    return ArtifactInfo(
        path=p,
        fingerprint=stored,
        header_bytes=header_bytes,
        body_bytes=file_bytes - header_bytes,
    )
