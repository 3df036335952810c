"""Less/equal/greater classification and the discard rule of one round."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import torch

from .models import Action, ClassificationCounts, Decision
from ..errors import InvariantViolation
from ..store import CoordinationStore
from ..utils.logging import get_logger

LOGGER = get_logger("decision")


def classify_partition(partition: torch.Tensor, pivot: float) -> ClassificationCounts:
    """Count the shard's elements below, at, and above ``pivot``."""

    less = int((partition < pivot).sum().item())
    equal = int((partition == pivot).sum().item())
    greater = int((partition > pivot).sum().item())
    return ClassificationCounts(less=less, equal=equal, greater=greater)


def check_rank(k: int, n: int) -> None:
    if n < 1 or not 1 <= k <= n:
        raise InvariantViolation(f"Rank k={k} lies outside [1, {n}] for the current candidate set.")


def decide(counts: ClassificationCounts, k: int, n: int) -> Decision:
    """Decide whether the pivot is the answer or which side survives."""

    check_rank(k, n)
    if counts.total != n:
        raise InvariantViolation(
            f"Classification counts {counts} do not add up to the candidate count N={n}."
        )
    if counts.less < k <= counts.less + counts.equal:
        return Decision(action=Action.FOUND, k_next=k, n_next=n)
    if k <= counts.less:
        return Decision(action=Action.KEEP_LESS, k_next=k, n_next=counts.less)
    return Decision(
        action=Action.KEEP_GREATER,
        k_next=k - counts.less - counts.equal,
        n_next=counts.greater,
    )


def record_decision(store: CoordinationStore, decision: Decision, pivot: float) -> None:
    """Write the outcome of one round. The only writer of the round state."""

    if decision.action is Action.FOUND:
        store.set_result(pivot)
        store.set_result_found(True)
        return
    store.set_k(decision.k_next)
    store.set_n(decision.n_next)
    LOGGER.debug(
        "decision_recorded | action=%s | k=%d | n=%d",
        decision.action.value,
        decision.k_next,
        decision.n_next,
    )


@dataclass(frozen=True, slots=True)
class BatchDecision:
    """Shared discard step for several pending ranks.

    ``shift`` is how many candidates were dropped below the kept side, i.e. how
    much every pending rank moved down.
    """

    action: Action
    ks_next: Tuple[int, ...]
    n_next: int
    shift: int


def decide_ranks(
    counts: ClassificationCounts, ks: Sequence[int], n: int
) -> Optional[BatchDecision]:
    """Discard a side only when every pending rank lies on the other one.

    Returns ``None`` when the ranks straddle the pivot, so the candidate set
    cannot shrink any further for all of them at once.
    """

    if not ks:
        raise InvariantViolation("Batch selection needs at least one pending rank.")
    for k in ks:
        check_rank(k, n)
    if counts.total != n:
        raise InvariantViolation(
            f"Classification counts {counts} do not add up to the candidate count N={n}."
        )
    boundary = counts.less + counts.equal
    if all(counts.less < k <= boundary for k in ks):
        return BatchDecision(action=Action.FOUND, ks_next=tuple(ks), n_next=n, shift=0)
    if all(k <= counts.less for k in ks):
        return BatchDecision(
            action=Action.KEEP_LESS, ks_next=tuple(ks), n_next=counts.less, shift=0
        )
    if all(k > boundary for k in ks):
        return BatchDecision(
            action=Action.KEEP_GREATER,
            ks_next=tuple(k - boundary for k in ks),
            n_next=counts.greater,
            shift=boundary,
        )
    return None


__all__ = [
    "BatchDecision",
    "check_rank",
    "classify_partition",
    "decide",
    "decide_ranks",
    "record_decision",
]
