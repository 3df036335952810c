"""JSON document backed coordination store surviving process boundaries."""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .base import CoordinationStore
from ..errors import StoreUnavailableError
from ..utils.logging import get_logger

LOGGER = get_logger("store.file")


class JsonFileCoordinationStore(CoordinationStore):
    """Persists the namespace state as one JSON document.

    The document is re-read on every access so a fresh handle (another process,
    or the resolver after the coordinator closed its own) observes the latest
    writes. Writes go through a temporary file and ``os.replace``.
    """

    def __init__(self, path: Path, *, namespace: str = "percentiles") -> None:
        super().__init__(namespace=namespace)
        self.path = Path(path)
        self._lock = threading.Lock()
        parent = self.path.parent
        if not parent.is_dir():
            raise StoreUnavailableError(f"Coordination store directory {parent} does not exist.")
        if self.path.exists():
            self._load()
        else:
            self._dump({})
        LOGGER.debug("store_opened | path=%s | namespace=%s", self.path, namespace)

    def _read(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._load().get(key)

    def _write(self, key: str, value: Any) -> None:
        with self._lock:
            payload = self._load()
            payload[key] = value
            self._dump(payload)

    def _delete(self, keys: Sequence[str]) -> None:
        with self._lock:
            payload = self._load()
            for key in keys:
                payload.pop(key, None)
            self._dump(payload)

    def _load(self) -> Dict[str, Any]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot read coordination store {self.path}: {exc}") from exc
        if not text.strip():
            return {}
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StoreUnavailableError(
                f"Coordination store {self.path} holds malformed JSON."
            ) from exc
        if not isinstance(payload, dict):
            raise StoreUnavailableError(f"Coordination store {self.path} must hold a JSON object.")
        return payload

    def _dump(self, payload: Dict[str, Any]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StoreUnavailableError(
                f"Cannot write coordination store {self.path}: {exc}"
            ) from exc


__all__ = ["JsonFileCoordinationStore"]
