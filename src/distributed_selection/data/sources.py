"""Producers of the value collection a selection runs over.

Every source knows its element count up front and materialises its values
lazily, once.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence, Union, runtime_checkable

import numpy as np
import torch

from ..errors import InvalidParameterError


@runtime_checkable
class Source(Protocol):
    def count(self) -> int:
        ...

    def values(self) -> torch.Tensor:
        ...


class _CachedSource:
    def __init__(self) -> None:
        self._cache: Optional[torch.Tensor] = None

    def values(self) -> torch.Tensor:
        if self._cache is None:
            values = torch.as_tensor(self._generate(), dtype=torch.float64).reshape(-1)
            if not bool(torch.isfinite(values).all()):
                raise InvalidParameterError(
                    f"{type(self).__name__} produced NaN or infinite values."
                )
            self._cache = values
        return self._cache

    def _generate(self) -> Any:  # pragma: no cover - abstract hook
        raise NotImplementedError


def _require_count(n: int) -> int:
    if int(n) < 1:
        raise InvalidParameterError(f"Sources need at least one value, received n={n}.")
    return int(n)


class ValuesSource(_CachedSource):
    """Wraps an in-memory collection. Values are checked for finiteness up front."""

    def __init__(self, values: Union[Sequence[float], np.ndarray, torch.Tensor]) -> None:
        super().__init__()
        self._raw = values
        self._count = _require_count(len(values))
        self.values()

    def count(self) -> int:
        return self._count

    def _generate(self) -> Any:
        return self._raw


class UniformSource(_CachedSource):
    """``n`` values drawn uniformly from ``[low, high)``."""

    def __init__(
        self, n: int, *, low: float = 0.0, high: float = 1.0, seed: Optional[int] = None
    ) -> None:
        super().__init__()
        if high <= low:
            raise InvalidParameterError("UniformSource requires high > low.")
        self.n = _require_count(n)
        self.low = low
        self.high = high
        self.seed = seed

    def count(self) -> int:
        return self.n

    def _generate(self) -> Any:
        rng = np.random.default_rng(self.seed)
        return rng.uniform(self.low, self.high, size=self.n)


class ExponentialSource(_CachedSource):
    """``n`` exponentially distributed values."""

    def __init__(self, n: int, *, scale: float = 1.0, seed: Optional[int] = None) -> None:
        super().__init__()
        if scale <= 0.0:
            raise InvalidParameterError("ExponentialSource requires a positive scale.")
        self.n = _require_count(n)
        self.scale = scale
        self.seed = seed

    def count(self) -> int:
        return self.n

    def _generate(self) -> Any:
        rng = np.random.default_rng(self.seed)
        return rng.exponential(self.scale, size=self.n)


class SortedDescSource(_CachedSource):
    """``n, n-1, ..., 1``."""

    def __init__(self, n: int) -> None:
        super().__init__()
        self.n = _require_count(n)

    def count(self) -> int:
        return self.n

    def _generate(self) -> Any:
        return np.arange(self.n, 0, -1, dtype=np.float64)


class AllEqualSource(_CachedSource):
    """``n`` copies of one value."""

    def __init__(self, n: int, *, value: float = 1.0) -> None:
        super().__init__()
        self.n = _require_count(n)
        self.value = float(value)

    def count(self) -> int:
        return self.n

    def _generate(self) -> Any:
        return np.full(self.n, self.value, dtype=np.float64)


class FileSource(_CachedSource):
    """One number per line; blank lines are skipped."""

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__()
        self.path = Path(path)
        if not self.path.exists():
            raise InvalidParameterError(f"Input file {self.path} does not exist.")
        self._parsed = self._parse()
        self._count = _require_count(len(self._parsed))

    def count(self) -> int:
        return self._count

    def _generate(self) -> Any:
        return self._parsed

    def _parse(self) -> list[float]:
        parsed: list[float] = []
        with self.path.open("r", encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                text = line.strip()
                if not text:
                    continue
                try:
                    value = float(text)
                except ValueError as exc:
                    raise InvalidParameterError(
                        f"{self.path}:{line_number} is not numeric: {text!r}"
                    ) from exc
                if not math.isfinite(value):
                    raise InvalidParameterError(
                        f"{self.path}:{line_number} is not a finite number: {text!r}"
                    )
                parsed.append(value)
        return parsed


def build_source(
    kind: str,
    *,
    n: Optional[int] = None,
    path: Optional[Union[str, Path]] = None,
    seed: Optional[int] = None,
) -> Source:
    """Construct a source by name, as used by the command line."""

    normalised = kind.strip().lower()
    if normalised == "file":
        if path is None:
            raise InvalidParameterError("The 'file' source requires an input path.")
        return FileSource(path)
    if n is None:
        raise InvalidParameterError(f"The {normalised!r} source requires a value count n.")
    if normalised == "uniform":
        return UniformSource(n, seed=seed)
    if normalised == "exponential":
        return ExponentialSource(n, seed=seed)
    if normalised == "sorted-desc":
        return SortedDescSource(n)
    if normalised == "all-equal":
        return AllEqualSource(n)
    raise InvalidParameterError(f"Unknown source kind: {kind!r}")


__all__ = [
    "AllEqualSource",
    "ExponentialSource",
    "FileSource",
    "SortedDescSource",
    "Source",
    "UniformSource",
    "ValuesSource",
    "build_source",
]
