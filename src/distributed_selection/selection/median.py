"""Per-partition median and weight computation."""

from __future__ import annotations

from typing import List, Sequence

import torch

from .models import PartitionSummary, PivotCandidate
from ..errors import InvariantViolation


def partition_median(partition: torch.Tensor) -> PartitionSummary:
    """Return the local median and size of a shard.

    For even-sized shards the lower of the two middle elements is used, which
    is what ``torch.median`` returns.
    """

    values = partition.reshape(-1)
    if values.numel() == 0:
        raise InvariantViolation("Received an empty partition while computing medians.")
    return PartitionSummary(median=float(values.median().item()), count=int(values.numel()))


def weigh_candidates(summaries: Sequence[PartitionSummary], total: int) -> List[PivotCandidate]:
    """Attach the share of the current candidate count ``total`` to every median."""

    if total <= 0:
        raise InvariantViolation(f"Cannot weigh partition medians against N={total}.")
    counted = sum(summary.count for summary in summaries)
    if counted != total:
        raise InvariantViolation(
            f"Partitions hold {counted} values but the coordination store reports N={total}."
        )
    return [
        PivotCandidate(median=summary.median, weight=summary.count / total)
        for summary in summaries
    ]


__all__ = ["partition_median", "weigh_candidates"]
