from __future__ import annotations

import random

import pytest
import torch

from distributed_selection.errors import InvariantViolation
from distributed_selection.runtime import LocalRuntime
from distributed_selection.selection.resolver import local_rank, resolve_remaining
from distributed_selection.selection.sampler import ReservoirSampler, sample_dataset
from distributed_selection.store import InMemoryCoordinationStore


def test_reservoir_keeps_everything_when_large_enough() -> None:
    sampler = ReservoirSampler(10, rng=random.Random(0))
    sampler.extend([3.0, 1.0, 2.0])
    assert sorted(sampler.values()) == [1.0, 2.0, 3.0]
    assert sampler.seen == 3


def test_reservoir_is_bounded() -> None:
    sampler = ReservoirSampler(5, rng=random.Random(1))
    sampler.extend(float(value) for value in range(100))
    kept = sampler.values()
    assert len(kept) == 5
    assert len(set(kept)) == 5
    assert set(kept) <= {float(value) for value in range(100)}


def test_reservoir_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError):
        ReservoirSampler(0)


def test_sample_dataset_with_large_reservoir_returns_all(runtime: LocalRuntime) -> None:
    values = torch.arange(1, 51, dtype=torch.float64)
    sample = sample_dataset(runtime.parallelize(values.flip(0)), 50, seed=5)
    assert torch.equal(sample, values)


def test_sample_dataset_is_sorted_and_seeded(runtime: LocalRuntime) -> None:
    dataset = runtime.parallelize(torch.arange(1000, dtype=torch.float64))
    first = sample_dataset(dataset, 20, seed=9)
    second = sample_dataset(dataset, 20, seed=9)
    assert torch.equal(first, second)
    assert first.numel() == 20 * dataset.num_partitions
    assert torch.equal(first, torch.sort(first).values)


def test_local_rank_rescales_with_ceiling() -> None:
    assert local_rank(5, 3, 5) == 3
    assert local_rank(3, 20, 30) == 2
    assert local_rank(100, 500, 1000) == 50
    assert local_rank(7, 1, 1000) == 1


def test_resolver_picks_rank_in_full_set() -> None:
    remaining = torch.tensor([5.0, 3.0, 1.0, 4.0, 2.0], dtype=torch.float64)
    assert resolve_remaining(remaining, 3, 5) == 3.0


def test_resolver_rescales_into_smaller_set() -> None:
    remaining = torch.tensor([10.0, 30.0, 20.0], dtype=torch.float64)
    assert resolve_remaining(remaining, 20, 30) == 20.0


def test_resolver_short_circuits_on_stored_result(
    memory_store: InMemoryCoordinationStore,
) -> None:
    memory_store.set_result(42.0)
    memory_store.set_result_found(True)
    assert resolve_remaining(torch.empty(0), 1, 1, store=memory_store) == 42.0


def test_resolver_failures() -> None:
    with pytest.raises(InvariantViolation):
        resolve_remaining(torch.empty(0), 1, 1)
    with pytest.raises(InvariantViolation):
        resolve_remaining(torch.tensor([1.0, 2.0]), 4, 3)
    with pytest.raises(InvariantViolation):
        local_rank(1, 1, 0)
