"""Partition assignment strategies for candidate sets."""

from __future__ import annotations

from typing import List, Optional, Protocol

import torch


class Partitioner(Protocol):
    parallelism: int

    def assign(self, values: torch.Tensor) -> torch.Tensor:
        """Return a partition index in ``[0, parallelism)`` for every value."""


class RandomPartitioner:
    """Assigns every value to a uniformly drawn partition.

    A fresh assignment is drawn per call, so every round reshuffles the
    candidate set and per-partition medians stay representative.
    """

    def __init__(self, parallelism: int, *, seed: Optional[int] = None) -> None:
        if parallelism < 1:
            raise ValueError("parallelism must be positive.")
        self.parallelism = parallelism
        self._generator = torch.Generator()
        if seed is None:
            self._generator.seed()
        else:
            self._generator.manual_seed(int(seed))

    def assign(self, values: torch.Tensor) -> torch.Tensor:
        return torch.randint(
            0, self.parallelism, (values.numel(),), generator=self._generator, dtype=torch.long
        )


class HashPartitioner:
    """Routes equal values to the same partition."""

    def __init__(self, parallelism: int) -> None:
        if parallelism < 1:
            raise ValueError("parallelism must be positive.")
        self.parallelism = parallelism

    def assign(self, values: torch.Tensor) -> torch.Tensor:
        hashed: List[int] = [hash(float(value)) % self.parallelism for value in values.tolist()]
        return torch.tensor(hashed, dtype=torch.long)


def build_partitioner(kind: str, parallelism: int, *, seed: Optional[int] = None) -> Partitioner:
    if kind == "random":
        return RandomPartitioner(parallelism, seed=seed)
    if kind == "hash":
        return HashPartitioner(parallelism)
    raise ValueError(f"Unsupported partitioner: {kind!r}")


__all__ = ["HashPartitioner", "Partitioner", "RandomPartitioner", "build_partitioner"]
