from __future__ import annotations

import operator

import pytest
import torch

from distributed_selection.config import RuntimeConfig
from distributed_selection.runtime import (
    Broadcast,
    HashPartitioner,
    LocalRuntime,
    RandomPartitioner,
    resolve_dtype,
)


def test_parallelize_keeps_every_value(runtime: LocalRuntime) -> None:
    values = torch.arange(1, 101, dtype=torch.float64)
    dataset = runtime.parallelize(values)
    assert dataset.count() == 100
    assert 1 <= dataset.num_partitions <= 4
    assert torch.equal(torch.sort(dataset.collect()).values, values)


def test_repartition_drops_empty_shards(runtime: LocalRuntime) -> None:
    dataset = runtime.parallelize([5.0, 5.0, 5.0])
    reshuffled = dataset.repartition(HashPartitioner(8))
    assert reshuffled.num_partitions == 1
    assert reshuffled.count() == 3
    assert all(partition.numel() > 0 for partition in reshuffled.partitions)


def test_map_and_reduce_follow_partition_order(runtime: LocalRuntime) -> None:
    dataset = runtime.parallelize(torch.arange(40, dtype=torch.float64))
    sizes = dataset.map_partitions(lambda shard: int(shard.numel()))
    assert sizes == [int(partition.numel()) for partition in dataset.partitions]
    assert dataset.reduce(operator.add, sizes) == 40
    indexed = dataset.map_partitions_with_index(lambda index, shard: index)
    assert indexed == list(range(dataset.num_partitions))


def test_reduce_of_nothing_fails(runtime: LocalRuntime) -> None:
    dataset = runtime.parallelize([1.0])
    with pytest.raises(ValueError):
        dataset.reduce(operator.add, [])


def test_filter_partitions_and_broadcast(runtime: LocalRuntime) -> None:
    dataset = runtime.parallelize(torch.arange(10, dtype=torch.float64))
    pivot = dataset.broadcast(4.0)
    assert isinstance(pivot, Broadcast)
    kept = dataset.filter_partitions(lambda shard: shard[shard < pivot.value])
    assert torch.equal(torch.sort(kept.collect()).values, torch.arange(4, dtype=torch.float64))


def test_empty_dataset_collects_runtime_dtype() -> None:
    runtime = LocalRuntime(RuntimeConfig(dtype="float32"))
    dataset = runtime.parallelize([1.0, 2.0]).filter_partitions(lambda shard: shard[:0])
    assert dataset.count() == 0
    assert dataset.collect().dtype == torch.float32
    assert dataset.repartition().num_partitions == 0


def test_seeded_random_partitioner_is_reproducible() -> None:
    values = torch.arange(50, dtype=torch.float64)
    first = RandomPartitioner(4, seed=3).assign(values)
    second = RandomPartitioner(4, seed=3).assign(values)
    assert torch.equal(first, second)
    assert int(first.min()) >= 0 and int(first.max()) < 4


def test_dtype_aliases() -> None:
    assert resolve_dtype("fp32") is torch.float32
    assert resolve_dtype("double") is torch.float64
    with pytest.raises(ValueError):
        resolve_dtype("bf16")
