"""Value objects exchanged between the selection steps."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import torch


@dataclass(frozen=True, slots=True)
class PivotCandidate:
    """Median of one partition and the partition's share of the current N."""

    median: float
    weight: float


@dataclass(frozen=True, slots=True)
class PartitionSummary:
    """Local median and element count of one shard."""

    median: float
    count: int


@dataclass(frozen=True, slots=True)
class ClassificationCounts:
    """Elements of the candidate set below, at, and above the pivot."""

    less: int
    equal: int
    greater: int

    @property
    def total(self) -> int:
        return self.less + self.equal + self.greater

    def __add__(self, other: "ClassificationCounts") -> "ClassificationCounts":
        return ClassificationCounts(
            less=self.less + other.less,
            equal=self.equal + other.equal,
            greater=self.greater + other.greater,
        )


class Action(str, enum.Enum):
    FOUND = "found"
    KEEP_LESS = "keep_less"
    KEEP_GREATER = "keep_greater"


@dataclass(frozen=True, slots=True)
class Decision:
    """Outcome of one decision step with the state for the next round."""

    action: Action
    k_next: int
    n_next: int


def keep_side(partition: torch.Tensor, pivot: float, action: Action) -> torch.Tensor:
    """Return the part of a shard that survives ``action`` around ``pivot``."""

    if action is Action.KEEP_LESS:
        return partition[partition < pivot]
    if action is Action.KEEP_GREATER:
        return partition[partition > pivot]
    return partition[:0]


@dataclass(frozen=True, slots=True)
class RoundContext:
    """Pivot and decision of one round, handed unchanged to the filter step."""

    round_index: int
    pivot: float
    counts: ClassificationCounts
    decision: Decision

    def keep(self, partition: torch.Tensor) -> torch.Tensor:
        return keep_side(partition, self.pivot, self.decision.action)


@dataclass(slots=True)
class SelectionState:
    """Local mirror of the cross-round state kept in the coordination store."""

    k: int
    n: int
    t: int
    iteration_count: int = 0
    result_found: bool = False
    result: Optional[float] = None


class Mode(str, enum.Enum):
    EXACT = "exact"
    APPROXIMATE = "approximate"
    MULTI = "multi"


@dataclass(slots=True)
class Result:
    """Final answer of one solve call.

    ``value`` holds the resolved order statistic. When only the candidate
    sequence is known, ``solution()`` resolves it lazily through the stored
    callable and caches the value.
    """

    k: int
    t: int
    mode: Mode = Mode.EXACT
    p: Optional[int] = None
    value: Optional[float] = None
    values: Optional[Dict[int, float]] = None
    iterations: int = 0
    remaining: int = 0
    _resolver: Optional[Callable[[], float]] = field(default=None, repr=False, compare=False)

    def solution(self) -> float:
        if self.value is None:
            if self._resolver is None:
                raise RuntimeError("Result carries neither a value nor a pending solution.")
            self.value = float(self._resolver())
            self._resolver = None
        return self.value

    def as_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "mode": self.mode.value,
            "k": self.k,
            "t": self.t,
            "iterations": self.iterations,
            "remaining": self.remaining,
        }
        if self.p is not None:
            payload["p"] = self.p
        if self.values is not None:
            payload["values"] = {str(rank): value for rank, value in sorted(self.values.items())}
        else:
            payload["value"] = self.solution()
        return payload


__all__ = [
    "Action",
    "ClassificationCounts",
    "Decision",
    "Mode",
    "PartitionSummary",
    "PivotCandidate",
    "Result",
    "RoundContext",
    "SelectionState",
    "keep_side",
]
