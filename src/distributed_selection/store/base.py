"""Typed accessors over a namespaced key-value coordination store.

Every round of the exact path is executed by stateless tasks, so the scalar
selection state (rank, candidate count, threshold, result) has to live outside
of them. Backends only implement raw ``_read``/``_write``/``_delete``;
the key schema and value coercion live here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from ..errors import StoreUnavailableError
from ..utils.logging import get_logger

LOGGER = get_logger("store")

KEY_K = "k"
KEY_N = "n"
KEY_T = "t"
KEY_RESULT_FOUND = "result-found"
KEY_RESULT = "result"
KEY_NUMBER_OF_ITERATIONS = "number-of-iterations"
KEY_K_VALUES = "k-values"

SCHEMA_KEYS = (
    KEY_K,
    KEY_N,
    KEY_T,
    KEY_RESULT_FOUND,
    KEY_RESULT,
    KEY_NUMBER_OF_ITERATIONS,
    KEY_K_VALUES,
)


class CoordinationStore(ABC):
    """Scoped handle on the cross-round selection state of one solve."""

    def __init__(self, *, namespace: str = "percentiles") -> None:
        self.namespace = namespace
        self._closed = False

    # -- backend hooks -------------------------------------------------------------
    @abstractmethod
    def _read(self, key: str) -> Optional[Any]:
        """Return the raw value for a fully qualified key or ``None`` when absent."""

    @abstractmethod
    def _write(self, key: str, value: Any) -> None:
        """Store a raw value under a fully qualified key."""

    @abstractmethod
    def _delete(self, keys: Sequence[str]) -> None:
        """Remove the given fully qualified keys; absent keys are ignored."""

    def _release(self) -> None:
        """Free backend resources. Called once by :meth:`close`."""

    # -- lifecycle -----------------------------------------------------------------
    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._release()
        self._closed = True
        LOGGER.debug("store_closed | namespace=%s", self.namespace)

    def __enter__(self) -> "CoordinationStore":
        self._ensure_open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def reset(self) -> None:
        """Drop all state of this namespace."""

        self._ensure_open()
        self._delete([self._qualify(key) for key in SCHEMA_KEYS])

    # -- scalar state --------------------------------------------------------------
    def set_k(self, k: int) -> None:
        self._set(KEY_K, int(k))

    def get_k(self) -> int:
        return int(self._get(KEY_K))

    def set_n(self, n: int) -> None:
        self._set(KEY_N, int(n))

    def get_n(self) -> int:
        return int(self._get(KEY_N))

    def set_t(self, t: int) -> None:
        self._set(KEY_T, int(t))

    def get_t(self) -> int:
        return int(self._get(KEY_T))

    def set_result_found(self, found: bool) -> None:
        self._set(KEY_RESULT_FOUND, bool(found))

    def get_result_found(self) -> bool:
        """Return whether a result was recorded. Absent means not found."""

        self._ensure_open()
        raw = self._read(self._qualify(KEY_RESULT_FOUND))
        if raw is None:
            return False
        if isinstance(raw, str):
            return raw.strip().lower() == "true"
        return bool(raw)

    def set_result(self, value: float) -> None:
        self._set(KEY_RESULT, float(value))

    def get_result(self) -> float:
        return float(self._get(KEY_RESULT))

    def set_number_of_iterations(self, count: int) -> None:
        self._set(KEY_NUMBER_OF_ITERATIONS, int(count))

    def get_number_of_iterations(self) -> int:
        self._ensure_open()
        raw = self._read(self._qualify(KEY_NUMBER_OF_ITERATIONS))
        return 0 if raw is None else int(raw)

    def increment_iterations(self) -> int:
        count = self.get_number_of_iterations() + 1
        self.set_number_of_iterations(count)
        return count

    # -- batch ranks ---------------------------------------------------------------
    def add_k(self, k: int) -> None:
        """Append a rank to the batch solved against one shared reduced set."""

        values = self.get_k_values()
        values.append(int(k))
        self._set(KEY_K_VALUES, values)

    def set_k_values(self, values: List[int]) -> None:
        self._set(KEY_K_VALUES, [int(value) for value in values])

    def get_k_values(self) -> List[int]:
        self._ensure_open()
        raw = self._read(self._qualify(KEY_K_VALUES))
        if raw is None:
            return []
        return [int(value) for value in raw]

    # -- helpers -------------------------------------------------------------------
    def _qualify(self, key: str) -> str:
        return f"{self.namespace}-{key}"

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreUnavailableError(
                f"Coordination store for namespace {self.namespace!r} is closed."
            )

    def _set(self, key: str, value: Any) -> None:
        self._ensure_open()
        self._write(self._qualify(key), value)

    def _get(self, key: str) -> Any:
        self._ensure_open()
        raw = self._read(self._qualify(key))
        if raw is None:
            raise StoreUnavailableError(
                f"Coordination store key {self._qualify(key)!r} has not been initialised."
            )
        return raw


__all__ = [
    "SCHEMA_KEYS",
    "KEY_K",
    "KEY_K_VALUES",
    "KEY_N",
    "KEY_NUMBER_OF_ITERATIONS",
    "KEY_RESULT",
    "KEY_RESULT_FOUND",
    "KEY_T",
    "CoordinationStore",
]
