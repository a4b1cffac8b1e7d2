# src/logging/logger.py — v3
"""Log formatters and setup for the ``voxcache`` logger tree.

Both formatters pick up the artifact/operation/device context set by the
geometry cache, so a line can be traced back to the file it concerns.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from voxcache.logging.context import LogContext, get_context

ROOT_LOGGER = "voxcache"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _utc_now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Single-line human-readable output for the CLI.

    ``2026-01-01 12:00:00 [INFO    ] voxcache.cache [load] <GPU0> (ab12.vox) - msg``
    """

    def format(self, record: logging.LogRecord) -> str:
        line = " ".join(
            [
                _utc_now().strftime("%Y-%m-%d %H:%M:%S"),
                f"[{record.levelname:8s}]",
                record.name,
                *_context_tags(get_context()),
                f"- {record.getMessage()}",
            ]
        )
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _context_tags(ctx: LogContext) -> list[str]:
    tags: list[str] = []
    if ctx.operation:
        tags.append(f"[{ctx.operation}]")
    if ctx.device:
        tags.append(f"<{ctx.device}>")
    if ctx.artifact:
        tags.append(f"({ctx.artifact})")
    return tags


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 5,
) -> None:
    """(Re)configure the ``voxcache`` logger.

    Existing handlers are replaced, so calling this twice does not duplicate
    output. Records always go to stderr; ``log_file`` adds a rotating file.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter = JsonFormatter() if log_format == "json" else TextFormatter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        from voxcache.logging.handlers import create_rotating_handler

        handlers.append(
            create_rotating_handler(log_file, rotation=rotation, retention=retention)
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
