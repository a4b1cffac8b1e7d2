# src/main.py — v2
"""CLI entry point: inspect, list, purge commands.

Usage:
    voxcache inspect <file>
    voxcache list [--cache-root DIR]
    voxcache purge [--cache-root DIR]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from voxcache.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="voxcache",
        description=f"voxcache v{__version__} - cache of voxelized geometry",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- inspect ---
    p_inspect = subparsers.add_parser(
        "inspect", help="Show the stored fingerprint of an artifact",
    )
    p_inspect.add_argument("file", type=Path, help="Path to artifact")
    p_inspect.set_defaults(func=_cmd_inspect)

    # --- list ---
    p_list = subparsers.add_parser("list", help="List cached artifacts")
    p_list.add_argument(
        "--cache-root", type=Path, default=None,
        help="Cache directory (default: CACHE_ROOT setting)",
    )
    p_list.set_defaults(func=_cmd_list)

    # --- purge ---
    p_purge = subparsers.add_parser("purge", help="Delete all cached artifacts")
    p_purge.add_argument(
        "--cache-root", type=Path, default=None,
        help="Cache directory (default: CACHE_ROOT setting)",
    )
    p_purge.set_defaults(func=_cmd_purge)

    return parser


def _cmd_inspect(args: argparse.Namespace) -> int:
    from voxcache.cache.voxel_codec import inspect_artifact

    info = inspect_artifact(args.file)
    if info is None:
        print(f"{args.file}: not a readable voxel artifact", file=sys.stderr)
        return 1

    fp = info.fingerprint
    print(f"  Artifact:     {info.path}")
    print(f"  Device:       {fp.device_name}")
    print(f"  Box size:     {_fmt_vec(fp.box_size)}")
    print(f"  Center:       {_fmt_vec(fp.center)}")
    for i, row in enumerate(fp.rotation):
        label = "Rotation:" if i == 0 else ""
        print(f"  {label:<13} {_fmt_vec(row)}")
    print(f"  Cell size:    {fp.size:g}")
    print(f"  Header:       {info.header_bytes} bytes")
    print(f"  Body:         {info.body_bytes} bytes (compressed)")
    return 0


def _cmd_list(args: argparse.Namespace) -> int:
    from voxcache.cache.voxel_codec import inspect_artifact

    cache = _open_cache(args.cache_root)
    if cache is None:
        print("Cache is disabled", file=sys.stderr)
        return 1

    artifacts = cache.list_artifacts()
    for path in artifacts:
        info = inspect_artifact(path)
        if info is None:
            print(f"  {path.name}  <unreadable>")
            continue
        print(
            f"  {path.name}  {info.fingerprint.device_name}  "
            f"size={info.fingerprint.size:g}  {info.body_bytes} bytes"
        )
    print(f"{len(artifacts)} artifact(s) in {cache.root}")
    return 0


def _cmd_purge(args: argparse.Namespace) -> int:
    cache = _open_cache(args.cache_root)
    if cache is None:
        print("Cache is disabled", file=sys.stderr)
        return 1
    removed = cache.purge()
    print(f"Removed {removed} file(s) from {cache.root}")
    return 0


def _open_cache(cache_root: Path | None):
    from voxcache.cache.cache_factory import create_geometry_cache
    from voxcache.config.settings import load_settings

    overrides: dict[str, object] = {}
    if cache_root is not None:
        overrides["cache_root"] = cache_root
    return create_geometry_cache(load_settings(**overrides))


def _fmt_vec(values) -> str:
    return "(" + ", ".join(f"{v:g}" for v in values) + ")"


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from voxcache.config.settings import load_settings
    from voxcache.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
