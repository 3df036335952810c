"""Process-local coordination store."""

from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Optional, Sequence

from .base import CoordinationStore


class InMemoryCoordinationStore(CoordinationStore):
    """Dictionary backed store for single-process runs and tests.

    Reads return copies so callers never mutate stored lists in place. Closing
    only revokes access through this handle; :meth:`snapshot` keeps working.
    """

    def __init__(self, *, namespace: str = "percentiles") -> None:
        super().__init__(namespace=namespace)
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def _read(self, key: str) -> Optional[Any]:
        with self._lock:
            return copy.deepcopy(self._data.get(key))

    def _write(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def _delete(self, keys: Sequence[str]) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)

    def snapshot(self) -> Dict[str, Any]:
        """Return a copy of every stored key, for diagnostics."""

        with self._lock:
            return copy.deepcopy(self._data)


__all__ = ["InMemoryCoordinationStore"]
