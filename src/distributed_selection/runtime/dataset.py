"""Partitioned tensors with map/reduce/broadcast primitives.

Operations run every partition task on a thread pool and only return once all
of them finished, which gives the barrier between rounds that the selection
rounds rely on.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import reduce as _reduce
from typing import Callable, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

import torch

from .partitioners import Partitioner, build_partitioner
from ..config import RuntimeConfig
from ..utils.logging import get_logger

LOGGER = get_logger("runtime")

T = TypeVar("T")
R = TypeVar("R")


def resolve_dtype(alias: str) -> torch.dtype:
    mapping = {
        "float32": torch.float32,
        "fp32": torch.float32,
        "float": torch.float32,
        "float64": torch.float64,
        "fp64": torch.float64,
        "double": torch.float64,
    }
    try:
        return mapping[alias]
    except KeyError as exc:
        raise ValueError(f"Unsupported dtype alias: {alias!r}") from exc


@dataclass(frozen=True, slots=True)
class Broadcast(Generic[T]):
    """Read-only value shipped to every partition task of one step."""

    value: T


class PartitionedDataset:
    """Immutable collection of 1-D value shards."""

    def __init__(
        self,
        partitions: Sequence[torch.Tensor],
        *,
        runtime: "LocalRuntime",
    ) -> None:
        self._partitions: Tuple[torch.Tensor, ...] = tuple(
            partition.reshape(-1) for partition in partitions
        )
        self._runtime = runtime

    @property
    def partitions(self) -> Tuple[torch.Tensor, ...]:
        return self._partitions

    @property
    def num_partitions(self) -> int:
        return len(self._partitions)

    @property
    def runtime(self) -> "LocalRuntime":
        return self._runtime

    def count(self) -> int:
        return int(sum(partition.numel() for partition in self._partitions))

    def collect(self) -> torch.Tensor:
        if not self._partitions:
            return torch.empty(0, dtype=self._runtime.dtype)
        return torch.cat(self._partitions)

    def repartition(self, partitioner: Optional[Partitioner] = None) -> "PartitionedDataset":
        """Redistribute values; shards that end up empty are dropped."""

        values = self.collect()
        active = partitioner or self._runtime.partitioner
        if values.numel() == 0:
            return PartitionedDataset([], runtime=self._runtime)
        assignment = active.assign(values)
        shards: List[torch.Tensor] = []
        for index in range(active.parallelism):
            shard = values[assignment == index]
            if shard.numel():
                shards.append(shard)
        return PartitionedDataset(shards, runtime=self._runtime)

    def map_partitions(self, fn: Callable[[torch.Tensor], R]) -> List[R]:
        """Apply ``fn`` to every shard concurrently; results keep partition order."""

        return self._runtime.run_tasks(fn, self._partitions)

    def map_partitions_with_index(self, fn: Callable[[int, torch.Tensor], R]) -> List[R]:
        """Like :meth:`map_partitions` but also hands the shard index to ``fn``."""

        indexed = list(enumerate(self._partitions))
        return self._runtime.run_tasks(lambda item: fn(item[0], item[1]), indexed)

    def filter_partitions(
        self, fn: Callable[[torch.Tensor], torch.Tensor]
    ) -> "PartitionedDataset":
        """Replace every shard by ``fn(shard)`` (expected to be a subset of it)."""

        filtered = self._runtime.run_tasks(fn, self._partitions)
        return PartitionedDataset(filtered, runtime=self._runtime)

    def reduce(self, fn: Callable[[R, R], R], values: Iterable[R]) -> R:
        items = list(values)
        if not items:
            raise ValueError("Cannot reduce an empty sequence of partition results.")
        return _reduce(fn, items)

    def broadcast(self, value: T) -> Broadcast[T]:
        return Broadcast(value)


class LocalRuntime:
    """Single-process data-parallel runtime driven by a thread pool."""

    def __init__(self, config: Optional[RuntimeConfig] = None) -> None:
        self.config = config or RuntimeConfig()
        self.dtype = resolve_dtype(self.config.dtype)
        self.partitioner = build_partitioner(
            self.config.partitioner, self.config.parallelism, seed=self.config.seed
        )
        self._max_workers = self.config.max_workers or self.config.parallelism

    @property
    def parallelism(self) -> int:
        return self.config.parallelism

    def parallelize(self, values: torch.Tensor | Sequence[float]) -> PartitionedDataset:
        tensor = torch.as_tensor(values, dtype=self.dtype).reshape(-1)
        dataset = PartitionedDataset([tensor], runtime=self)
        return dataset.repartition()

    def run_tasks(self, fn: Callable[[T], R], shards: Sequence[T]) -> List[R]:
        if not shards:
            return []
        if len(shards) == 1 or self._max_workers == 1:
            return [fn(shard) for shard in shards]
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(shards))) as executor:
            return list(executor.map(fn, shards))


__all__ = ["Broadcast", "LocalRuntime", "PartitionedDataset", "resolve_dtype"]
