"""Local stand-in for the data-parallel execution engine."""

from .dataset import Broadcast, LocalRuntime, PartitionedDataset, resolve_dtype
from .partitioners import HashPartitioner, Partitioner, RandomPartitioner, build_partitioner

__all__ = [
    "Broadcast",
    "HashPartitioner",
    "LocalRuntime",
    "PartitionedDataset",
    "Partitioner",
    "RandomPartitioner",
    "build_partitioner",
    "resolve_dtype",
]
