"""Round driver for the exact distributed selection path.

Each round repartitions the current candidate set, derives one pivot from the
partition medians, counts the candidates around it, decides which side
survives and filters the candidate set with that very pivot and decision.
The coordination store is the only state that outlives a round.
"""

from __future__ import annotations

import enum
import operator
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .decision import check_rank, classify_partition, decide, record_decision
from .median import partition_median, weigh_candidates
from .models import Action, ClassificationCounts, RoundContext, SelectionState
from .weighted_median import weighted_median
from ..config import DEFAULT_MAX_ROUNDS
from ..errors import InvariantViolation
from ..runtime import PartitionedDataset
from ..store import CoordinationStore
from ..utils.logging import get_logger

LOGGER = get_logger("controller")


class Phase(str, enum.Enum):
    INIT = "init"
    ROUND = "round"
    TERMINATED = "terminated"


class TerminationReason(str, enum.Enum):
    RESULT_FOUND = "result_found"
    THRESHOLD_REACHED = "threshold_reached"


@dataclass(slots=True)
class IterationOutcome:
    """Candidate set left after the last round plus the final store state."""

    remaining: PartitionedDataset
    state: SelectionState
    reason: TerminationReason
    rounds: List[RoundContext] = field(default_factory=list)


def select_pivot(dataset: PartitionedDataset, n: int) -> Tuple[PartitionedDataset, float]:
    """Shuffle the candidate set and return it with the weighted median of its shard medians."""

    shuffled = dataset.repartition()
    if shuffled.count() != n:
        raise InvariantViolation(
            f"Candidate set holds {shuffled.count()} values but the coordination store reports N={n}."
        )
    summaries = shuffled.map_partitions(partition_median)
    pivot = weighted_median(weigh_candidates(summaries, n))
    return shuffled, pivot


def count_around(dataset: PartitionedDataset, pivot: float) -> ClassificationCounts:
    broadcast = dataset.broadcast(pivot)
    partials = dataset.map_partitions(lambda shard: classify_partition(shard, broadcast.value))
    return dataset.reduce(operator.add, partials)


class IterationController:
    """Runs selection rounds until the answer or the serial threshold is reached."""

    def __init__(self, store: CoordinationStore, *, max_rounds: int = DEFAULT_MAX_ROUNDS) -> None:
        if max_rounds < 1:
            raise ValueError("max_rounds must be positive.")
        self.store = store
        self.max_rounds = max_rounds
        self.phase = Phase.INIT

    def seed(self, *, k: int, n: int, t: int) -> None:
        """Initialise the store for a fresh solve."""

        check_rank(k, n)
        self.store.set_k(k)
        self.store.set_n(n)
        self.store.set_t(t)
        self.store.set_number_of_iterations(0)
        self.store.set_result_found(False)
        self.phase = Phase.INIT
        LOGGER.info("selection_seeded | k=%d | n=%d | t=%d", k, n, t)

    def state(self) -> SelectionState:
        found = self.store.get_result_found()
        return SelectionState(
            k=self.store.get_k(),
            n=self.store.get_n(),
            t=self.store.get_t(),
            iteration_count=self.store.get_number_of_iterations(),
            result_found=found,
            result=self.store.get_result() if found else None,
        )

    def run_round(self, dataset: PartitionedDataset) -> Tuple[RoundContext, PartitionedDataset]:
        """Execute one round and return its context with the filtered candidate set."""

        k = self.store.get_k()
        n = self.store.get_n()
        check_rank(k, n)
        shuffled, pivot = select_pivot(dataset, n)
        counts = count_around(shuffled, pivot)
        decision = decide(counts, k, n)
        if decision.action is not Action.FOUND and decision.n_next >= n:
            raise InvariantViolation(
                f"Round made no progress: N stayed at {n} with pivot {pivot} and counts {counts}."
            )
        record_decision(self.store, decision, pivot)
        round_index = self.store.increment_iterations()
        context = RoundContext(round_index=round_index, pivot=pivot, counts=counts, decision=decision)
        LOGGER.info(
            "round_decided | round=%d | pivot=%s | less=%d | equal=%d | greater=%d | action=%s",
            round_index,
            pivot,
            counts.less,
            counts.equal,
            counts.greater,
            decision.action.value,
        )
        remaining = shuffled.filter_partitions(context.keep)
        return context, remaining

    def run(self, dataset: PartitionedDataset) -> IterationOutcome:
        self.phase = Phase.ROUND
        rounds: List[RoundContext] = []
        current = dataset
        reason: Optional[TerminationReason] = self._termination_reason()
        while reason is None:
            if len(rounds) >= self.max_rounds:
                raise InvariantViolation(
                    f"Selection did not terminate within {self.max_rounds} rounds."
                )
            context, current = self.run_round(current)
            rounds.append(context)
            reason = self._termination_reason()
        self.phase = Phase.TERMINATED
        state = self.state()
        LOGGER.info(
            "selection_terminated | reason=%s | rounds=%d | k=%d | n=%d",
            reason.value,
            state.iteration_count,
            state.k,
            state.n,
        )
        return IterationOutcome(remaining=current, state=state, reason=reason, rounds=rounds)

    def _termination_reason(self) -> Optional[TerminationReason]:
        if self.store.get_result_found():
            return TerminationReason.RESULT_FOUND
        if self.store.get_n() <= self.store.get_t():
            return TerminationReason.THRESHOLD_REACHED
        return None


__all__ = [
    "IterationController",
    "IterationOutcome",
    "Phase",
    "TerminationReason",
    "count_around",
    "select_pivot",
]
