"""Error taxonomy for the selection core."""

from __future__ import annotations


class SelectionError(RuntimeError):
    """Fatal failure inside the selection core. Never retried."""


class InvariantViolation(SelectionError):
    """Algorithm state is corrupted (rank out of range, empty shard, runaway loop)."""


class StoreUnavailableError(SelectionError):
    """The coordination store cannot be reached or holds unreadable state."""


class InvalidParameterError(ValueError):
    """A caller supplied parameter was rejected before the core started."""


__all__ = [
    "InvalidParameterError",
    "InvariantViolation",
    "SelectionError",
    "StoreUnavailableError",
]
