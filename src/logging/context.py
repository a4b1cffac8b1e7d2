# src/logging/context.py — v2
"""Contextual logging support: attach artifact, operation and device to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per cache operation.
_artifact: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "artifact", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)
_device: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "device", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    artifact: str | None = None
    operation: str | None = None
    device: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        artifact=_artifact.get(),
        operation=_operation.get(),
        device=_device.get(),
    )


def set_artifact_context(
    artifact: str, operation: str, device: str | None = None
) -> None:
    """Set context for one cache operation (load, store, evict)."""
    _artifact.set(artifact)
    _operation.set(operation)
    _device.set(device)


def clear_context() -> None:
    """Reset all context variables."""
    _artifact.set(None)
    _operation.set(None)
    _device.set(None)
