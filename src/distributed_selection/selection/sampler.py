"""Random-priority reservoir sampling for the approximate path."""

from __future__ import annotations

import heapq
import random
from typing import Iterable, List, Optional, Tuple

import torch

from ..runtime import PartitionedDataset
from ..utils.random import build_generator
from ..utils.logging import get_logger

LOGGER = get_logger("sampler")


class ReservoirSampler:
    """Keeps the ``sample_size`` values with the largest random priorities.

    Priorities are drawn uniformly per offered value, independent of the value
    itself. The structure is a min-heap on priority, so a new value displaces
    the current minimum only when its own priority is larger.
    """

    def __init__(self, sample_size: int, *, rng: Optional[random.Random] = None) -> None:
        if sample_size < 1:
            raise ValueError("sample_size must be positive.")
        self.sample_size = sample_size
        self._rng = rng or random.Random()
        self._heap: List[Tuple[float, int, float]] = []
        self._seen = 0

    @property
    def seen(self) -> int:
        return self._seen

    def __len__(self) -> int:
        return len(self._heap)

    def offer(self, value: float) -> None:
        priority = self._rng.random()
        entry = (priority, self._seen, float(value))
        self._seen += 1
        if len(self._heap) < self.sample_size:
            heapq.heappush(self._heap, entry)
        elif self._heap[0][0] < priority:
            heapq.heapreplace(self._heap, entry)

    def extend(self, values: Iterable[float]) -> None:
        for value in values:
            self.offer(value)

    def values(self) -> List[float]:
        return [value for _, _, value in self._heap]


def sample_dataset(
    dataset: PartitionedDataset,
    sample_size: int,
    *,
    seed: Optional[int] = None,
) -> torch.Tensor:
    """Sample every shard independently and return the union sorted ascending."""

    def _sample(index: int, shard: torch.Tensor) -> List[float]:
        rng = build_generator(None if seed is None else seed + index)
        sampler = ReservoirSampler(sample_size, rng=rng)
        sampler.extend(shard.tolist())
        LOGGER.debug(
            "partition_sampled | partition=%d | seen=%d | kept=%d", index, sampler.seen, len(sampler)
        )
        return sampler.values()

    retained = dataset.map_partitions_with_index(_sample)
    flat = [value for shard_values in retained for value in shard_values]
    sample = torch.tensor(flat, dtype=dataset.runtime.dtype)
    return torch.sort(sample).values


__all__ = ["ReservoirSampler", "sample_dataset"]
