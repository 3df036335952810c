"""Coordination store holding scalar selection state across rounds."""

from __future__ import annotations

from .base import (
    KEY_K,
    KEY_K_VALUES,
    KEY_N,
    KEY_NUMBER_OF_ITERATIONS,
    KEY_RESULT,
    KEY_RESULT_FOUND,
    KEY_T,
    CoordinationStore,
)
from .file import JsonFileCoordinationStore
from .memory import InMemoryCoordinationStore
from ..config import StoreConfig
from ..errors import InvalidParameterError


def create_store(config: StoreConfig) -> CoordinationStore:
    """Open the backend named by ``config.adapter``."""

    if config.adapter == "memory":
        return InMemoryCoordinationStore(namespace=config.namespace)
    if config.adapter == "file":
        if config.path is None:
            raise InvalidParameterError("The 'file' store adapter requires a path.")
        return JsonFileCoordinationStore(config.path, namespace=config.namespace)
    raise InvalidParameterError(f"Unsupported store adapter: {config.adapter!r}")


__all__ = [
    "KEY_K",
    "KEY_K_VALUES",
    "KEY_N",
    "KEY_NUMBER_OF_ITERATIONS",
    "KEY_RESULT",
    "KEY_RESULT_FOUND",
    "KEY_T",
    "CoordinationStore",
    "InMemoryCoordinationStore",
    "JsonFileCoordinationStore",
    "create_store",
]
